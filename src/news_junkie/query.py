"""Normalize raw search/filter input into a canonical feed query.

Everything here is a pure transform and never raises: bad tags are dropped
or normalized, not rejected. Rejecting malformed tags is the job of
``is_valid_tag``, which the search input and post mutations call separately.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

UNION = "union"
INTERSECTION = "intersection"
TAG_MODES = (UNION, INTERSECTION)

DEFAULT_PAGE_SIZE = 30

_TAG_RE = re.compile(r"^[a-z0-9]+$")


@dataclass(frozen=True)
class FeedQuery:
    """An immutable, normalized feed query.

    ``user_ids`` distinguishes ``None`` (no author filter) from an empty
    tuple (filtered to nobody, e.g. a user who follows no one).
    """

    search_text: str = ""
    tags: tuple[str, ...] = ()
    tag_mode: str = UNION
    user_id: str | None = None
    user_ids: tuple[str, ...] | None = None
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def matches_nobody(self) -> bool:
        return not self.user_id and self.user_ids is not None and not self.user_ids


def is_valid_tag(tag: str) -> bool:
    """One lowercase word, no special characters."""
    return bool(_TAG_RE.match(tag))


def normalize_tags(raw: Iterable[str] | None) -> tuple[str, ...]:
    """Trim, lowercase, drop empties and dedupe, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in raw or ():
        cleaned = tag.strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def normalize_user_ids(raw: Iterable[str] | None) -> tuple[str, ...] | None:
    if raw is None:
        return None
    return tuple(dict.fromkeys(uid for uid in raw if uid))


def normalize_tag_mode(raw: str | None) -> str:
    return INTERSECTION if raw == INTERSECTION else UNION


def build_query(
    search_text: str | None = None,
    tags: Iterable[str] | None = None,
    tag_mode: str | None = None,
    user_id: str | None = None,
    user_ids: Iterable[str] | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> FeedQuery:
    """Build a FeedQuery from raw UI/CLI input."""
    normalized_tags = normalize_tags(tags)
    # Mode only matters once a tag is selected.
    mode = normalize_tag_mode(tag_mode) if normalized_tags else UNION
    return FeedQuery(
        search_text=(search_text or "").strip(),
        tags=normalized_tags,
        tag_mode=mode,
        user_id=user_id or None,
        user_ids=normalize_user_ids(user_ids),
        page_size=page_size,
    )
