"""Create, edit and delete posts.

Edits and deletions are announced on the PostEventBus once the backend has
accepted them, so open feeds can patch themselves without refetching.
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .client import NewsJunkieClient
from .errors import NotAuthenticatedError, ValidationError
from .events import PostEventBus
from .models import Post
from .query import is_valid_tag

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Description and link are required."
INVALID_URL_MESSAGE = "Please enter a valid URL."
INVALID_TAG_MESSAGE = "Tags must be a single lowercase word with no special characters."


@dataclass
class PostInput:
    description: str
    news_link: str
    tags: list[str] = field(default_factory=list)


def _is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def validate_post_input(
    description: str, news_link: str, tags: list[str] | None = None
) -> PostInput:
    """Trim and check post input, raising ValidationError on the first problem."""
    description = description.strip()
    news_link = news_link.strip()
    cleaned_tags = [t.strip().lower() for t in tags or [] if t.strip()]

    if not description or not news_link:
        raise ValidationError(REQUIRED_MESSAGE)
    if not _is_valid_url(news_link):
        raise ValidationError(INVALID_URL_MESSAGE)
    if any(not is_valid_tag(t) for t in cleaned_tags):
        raise ValidationError(INVALID_TAG_MESSAGE)

    return PostInput(description=description, news_link=news_link, tags=cleaned_tags)


class PostMutations:
    def __init__(
        self,
        client: NewsJunkieClient,
        bus: PostEventBus,
        user_id: str | None,
    ):
        self._client = client
        self._bus = bus
        self._user_id = user_id

    def _require_user(self) -> str:
        if not self._user_id:
            raise NotAuthenticatedError("You must be signed in to change posts.")
        return self._user_id

    async def create_post(self, data: PostInput, should_archive: bool = False) -> Post:
        user_id = self._require_user()
        data = validate_post_input(data.description, data.news_link, data.tags)

        archive_link = None
        if should_archive:
            archive_link = await self._client.create_archive_link(data.news_link)

        post = await self._client.insert_post(
            {
                "user_id": user_id,
                "description": data.description,
                "news_link": data.news_link,
                "archive_link": archive_link,
                "tags": data.tags,
            }
        )
        logger.info("Created post %s", post.id)
        return post

    async def update_post(
        self, post_id: str, data: PostInput, should_archive: bool = False
    ) -> Post | None:
        """Apply an edit; returns None if the post isn't yours or is gone."""
        user_id = self._require_user()
        data = validate_post_input(data.description, data.news_link, data.tags)

        values: dict = {
            "description": data.description,
            "news_link": data.news_link,
            "tags": data.tags,
        }
        if should_archive:
            values["archive_link"] = await self._client.create_archive_link(data.news_link)

        post = await self._client.update_post(post_id, user_id, values)
        if post is None:
            logger.warning("Post %s not updated: not found or not owned", post_id)
            return None

        self._bus.emit_post_updated(post)
        return post

    async def delete_post(self, post_id: str) -> None:
        user_id = self._require_user()
        await self._client.delete_post(post_id, user_id)
        logger.info("Deleted post %s", post_id)
        self._bus.emit_post_deleted(post_id)
