"""Data models for posts, authors and feed pages."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Author:
    id: str
    name: str | None = None
    profile_picture_url: str | None = None


@dataclass
class Post:
    id: str
    user_id: str
    description: str
    news_link: str
    created_at: datetime
    archive_link: str | None = None
    tags: list[str] = field(default_factory=list)  # lowercase, order irrelevant
    author: Author | None = None  # embedded at fetch time
    is_shared_by_me: bool = False


@dataclass(frozen=True)
class Cursor:
    """Keyset position: (created_at, id) of the last post of a page."""

    created_at: datetime
    id: str

    @classmethod
    def from_post(cls, post: Post) -> "Cursor":
        return cls(created_at=post.created_at, id=post.id)


@dataclass
class Page:
    posts: list[Post] = field(default_factory=list)
    has_more: bool = False


@dataclass
class Profile:
    id: str
    name: str | None = None
    description: str | None = None
    profile_picture_url: str | None = None
