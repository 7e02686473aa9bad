"""Parse PostgREST rows into Post/Profile model objects.

Post rows come back with the author embedded through the ``user_profiles``
relationship:
    {"id": ..., "tags": [...] | null, "user_profiles": {...} | [{...}] | null}

The embedding is a single object for a to-one relationship, but PostgREST
returns a list when it cannot infer the cardinality, so both are accepted.
"""

import logging
from datetime import datetime, timezone

from .models import Author, Post, Profile

logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """Parse a Postgres timestamptz string; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_posts(rows: list[dict]) -> list[Post]:
    """Parse post rows, skipping malformed ones."""
    posts = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Skipping non-object post row: %r", row)
            continue
        try:
            posts.append(parse_post(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed post row %s: %s", row.get("id", "?"), e)
    return posts


def parse_post(row: dict) -> Post:
    return Post(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        description=row["description"],
        news_link=row["news_link"],
        archive_link=row.get("archive_link"),
        tags=list(row.get("tags") or []),
        created_at=parse_timestamp(row["created_at"]),
        author=_parse_author(row.get("user_profiles")),
    )


def _parse_author(embedded: dict | list | None) -> Author | None:
    if not embedded:
        return None
    if isinstance(embedded, list):
        embedded = embedded[0]
    return Author(
        id=str(embedded["id"]),
        name=embedded.get("name"),
        profile_picture_url=embedded.get("profile_picture_url"),
    )


def parse_profile(row: dict) -> Profile:
    return Profile(
        id=str(row["id"]),
        name=row.get("name"),
        description=row.get("description"),
        profile_picture_url=row.get("profile_picture_url"),
    )
