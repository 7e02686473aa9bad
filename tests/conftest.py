"""Shared test fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from news_junkie.models import Author, Cursor, Post
from news_junkie.query import INTERSECTION, FeedQuery

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
SUPABASE_URL = "https://project.supabase.co"
POSTS_URL = f"{SUPABASE_URL}/rest/v1/posts"


def make_post(
    post_id: str,
    t: int,
    user_id: str = "u1",
    tags: list[str] | None = None,
    description: str | None = None,
    news_link: str | None = None,
) -> Post:
    """A post created ``t`` minutes after BASE_TIME (higher t = newer)."""
    return Post(
        id=post_id,
        user_id=user_id,
        description=description or f"Post {post_id}",
        news_link=news_link or f"https://news.example.com/{post_id.lower()}",
        created_at=BASE_TIME + timedelta(minutes=t),
        tags=list(tags or []),
        author=Author(id=user_id, name=f"User {user_id}"),
    )


def post_row(post: Post) -> dict:
    """Serialize a Post the way PostgREST returns it."""
    return {
        "id": post.id,
        "user_id": post.user_id,
        "description": post.description,
        "news_link": post.news_link,
        "archive_link": post.archive_link,
        "tags": post.tags or None,
        "created_at": post.created_at.isoformat(),
        "user_profiles": {
            "id": post.user_id,
            "name": f"User {post.user_id}",
            "profile_picture_url": None,
        },
    }


class FakeFeedBackend:
    """In-memory page fetcher applying the same filters as the posts query.

    Set ``gate`` to an asyncio.Event to hold fetches until it is set, which
    lets tests resolve overlapping requests in a chosen order.
    """

    def __init__(self, posts: list[Post]):
        self.posts = list(posts)
        self.calls: list[tuple[FeedQuery, Cursor | None]] = []
        self.fail_with: Exception | None = None
        self.gates: list[asyncio.Event] = []

    def _matches(self, post: Post, query: FeedQuery, cursor: Cursor | None) -> bool:
        if query.user_id and post.user_id != query.user_id:
            return False
        if not query.user_id and query.user_ids is not None and post.user_id not in query.user_ids:
            return False
        if query.search_text:
            needle = query.search_text.lower()
            if needle not in post.description.lower() and needle not in post.news_link.lower():
                return False
        if query.tags:
            wanted = set(query.tags)
            have = set(post.tags)
            if query.tag_mode == INTERSECTION and not wanted <= have:
                return False
            if query.tag_mode != INTERSECTION and not wanted & have:
                return False
        if cursor and (post.created_at, post.id) >= (cursor.created_at, cursor.id):
            return False
        return True

    async def fetch(self, query: FeedQuery, cursor: Cursor | None) -> list[Post]:
        self.calls.append((query, cursor))
        if self.gates:
            await self.gates.pop(0).wait()
        if self.fail_with is not None:
            raise self.fail_with
        if query.matches_nobody:
            return []
        matching = [p for p in self.posts if self._matches(p, query, cursor)]
        matching.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return matching[: query.page_size]


@pytest.fixture
def five_posts() -> list[Post]:
    """P5 (newest) .. P1 (oldest)."""
    return [make_post(f"P{t}", t) for t in range(5, 0, -1)]


@pytest.fixture
def backend(five_posts) -> FakeFeedBackend:
    return FakeFeedBackend(five_posts)
