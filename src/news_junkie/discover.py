"""Discover other users and follow or unfollow them from one list."""

import asyncio
import logging

from .client import NewsJunkieClient
from .errors import FetchError
from .models import Profile
from .optimistic import FollowToggle

logger = logging.getLogger(__name__)


class Junkie:
    """A profile on the discover list, with the viewer's follow state."""

    def __init__(self, profile: Profile, follow: FollowToggle):
        self.profile = profile
        self.follow = follow

    @property
    def id(self) -> str:
        return self.profile.id

    @property
    def display_name(self) -> str:
        return (self.profile.name or "").strip() or "Unnamed"

    @property
    def is_following(self) -> bool:
        return self.follow.is_following


async def discover_junkies(
    client: NewsJunkieClient, current_user_id: str | None
) -> list[Junkie]:
    """Every profile except the viewer's, newest first.

    Profiles and the viewer's following set load concurrently. Signed-out
    viewers get an empty list.
    """
    if not current_user_id:
        return []

    profiles, following = await asyncio.gather(
        client.list_profiles(),
        client.fetch_following_user_ids(current_user_id),
    )
    following_ids = set(following)
    return [
        Junkie(
            profile,
            FollowToggle(
                client,
                current_user_id,
                profile.id,
                initial=profile.id in following_ids,
            ),
        )
        for profile in profiles
        if profile.id != current_user_id
    ]


class DiscoverList:
    """Loaded discover list with per-row optimistic follow toggles."""

    def __init__(self, client: NewsJunkieClient, current_user_id: str | None):
        self._client = client
        self.current_user_id = current_user_id
        self.junkies: list[Junkie] = []
        self.loading = False
        self.error: str | None = None

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.junkies = await discover_junkies(self._client, self.current_user_id)
        except FetchError as e:
            logger.warning("Loading users failed: %s", e)
            self.error = str(e) or "Failed to load users"
        finally:
            self.loading = False

    def find(self, user_id: str) -> Junkie | None:
        for junkie in self.junkies:
            if junkie.id == user_id:
                return junkie
        return None

    async def toggle_follow(self, user_id: str) -> bool:
        """Flip the follow state for ``user_id``; returns the settled state."""
        junkie = self.find(user_id)
        if junkie is None:
            return False
        following = await junkie.follow.toggle()
        if junkie.follow.error:
            self.error = junkie.follow.error
        return following
