"""Optimistic on/off toggles for following users and sharing posts.

The local value flips immediately; the remote call then either commits it
or, on FetchError, restores the previous value.
"""

import enum
import logging
from collections.abc import Awaitable, Callable

from .client import NewsJunkieClient
from .errors import FetchError

logger = logging.getLogger(__name__)


class ToggleState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled-back"


class OptimisticToggle:
    def __init__(self, initial: bool = False):
        self.value = initial
        self.state = ToggleState.IDLE
        self.error: str | None = None

    @property
    def pending(self) -> bool:
        return self.state is ToggleState.PENDING

    async def toggle(self, commit: Callable[[bool], Awaitable[None]]) -> bool:
        """Flip the value and persist it with ``commit(new_value)``.

        Returns the value after the transaction settles. A toggle issued
        while another is pending is ignored.
        """
        if self.pending:
            return self.value

        previous = self.value
        self.value = not previous
        self.state = ToggleState.PENDING
        self.error = None

        try:
            await commit(self.value)
        except FetchError as e:
            logger.warning("Rolling back optimistic update: %s", e)
            self.value = previous
            self.state = ToggleState.ROLLED_BACK
            self.error = str(e)
        else:
            self.state = ToggleState.COMMITTED
        return self.value


class FollowToggle:
    """Follow state of ``target_user_id`` as seen by ``current_user_id``."""

    def __init__(
        self,
        client: NewsJunkieClient,
        current_user_id: str | None,
        target_user_id: str | None,
        initial: bool = False,
    ):
        self._client = client
        self.current_user_id = current_user_id
        self.target_user_id = target_user_id
        self._toggle = OptimisticToggle(initial)

    @property
    def enabled(self) -> bool:
        # You can't follow yourself, and signed-out users can't follow anyone.
        return bool(
            self.current_user_id
            and self.target_user_id
            and self.current_user_id != self.target_user_id
        )

    @property
    def is_following(self) -> bool:
        return self._toggle.value

    @property
    def error(self) -> str | None:
        return self._toggle.error

    async def load(self) -> bool:
        if not self.enabled:
            self._toggle.value = False
            return False
        self._toggle.value = await self._client.is_following(
            self.current_user_id, self.target_user_id
        )
        return self._toggle.value

    async def toggle(self) -> bool:
        if not self.enabled:
            return self.is_following
        return await self._toggle.toggle(self._commit)

    async def _commit(self, following: bool) -> None:
        if following:
            await self._client.follow(self.current_user_id, self.target_user_id)
        else:
            await self._client.unfollow(self.current_user_id, self.target_user_id)


class ShareToggle:
    def __init__(
        self,
        client: NewsJunkieClient,
        user_id: str | None,
        post_id: str,
        initial: bool = False,
    ):
        self._client = client
        self.user_id = user_id
        self.post_id = post_id
        self._toggle = OptimisticToggle(initial)

    @property
    def shared(self) -> bool:
        return self._toggle.value

    @property
    def error(self) -> str | None:
        return self._toggle.error

    async def toggle(self) -> bool:
        if not self.user_id:
            return self.shared
        return await self._toggle.toggle(self._commit)

    async def _commit(self, shared: bool) -> None:
        if shared:
            await self._client.share_post(self.user_id, self.post_id)
        else:
            await self._client.unshare_post(self.user_id, self.post_id)
