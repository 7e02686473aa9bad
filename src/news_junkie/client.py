"""Async client for the News Junkie backend (Supabase PostgREST + functions).

Requests go to the REST surface at ``{url}/rest/v1`` and the edge functions
at ``{url}/functions/v1``. Every request carries the project's anon key as
``apikey``; the bearer token is the signed-in user's access token when one
is configured, otherwise the anon key itself (row-level security then only
exposes public rows).

Filter values are always double-quoted inside PostgREST logical trees and
array literals so that commas, parentheses and dots in user input cannot
change the shape of the query.
"""

import logging
from collections.abc import Iterable

import httpx

from .errors import ArchiveError, FetchError
from .models import Cursor, Post, Profile
from .parser import parse_post, parse_posts, parse_profile
from .query import INTERSECTION, FeedQuery

logger = logging.getLogger(__name__)

POST_SELECT = (
    "id,user_id,description,news_link,archive_link,tags,created_at,"
    "user_profiles(id,name,profile_picture_url)"
)
PROFILE_SELECT = "id,name,description,profile_picture_url"

# PostgREST error code for "JSON object requested, multiple (or no) rows returned"
NO_ROWS_CODE = "PGRST116"

ARCHIVE_FUNCTION = "archive-link"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _in_list(values: Iterable[str]) -> str:
    return "(" + ",".join(_quote(v) for v in values) + ")"


def _array_literal(values: Iterable[str]) -> str:
    return "{" + ",".join(_quote(v) for v in values) + "}"


def _search_clause(search_text: str) -> str:
    pattern = _quote(f"*{search_text}*")
    return f"description.ilike.{pattern},news_link.ilike.{pattern}"


def _cursor_clause(cursor: Cursor) -> str:
    ts = _quote(cursor.created_at.isoformat())
    return (
        f"created_at.lt.{ts},"
        f"and(created_at.eq.{ts},id.lt.{_quote(cursor.id)})"
    )


def build_posts_params(
    query: FeedQuery, cursor: Cursor | None = None
) -> list[tuple[str, str]]:
    """Translate a FeedQuery + cursor into PostgREST query parameters."""
    params: list[tuple[str, str]] = [
        ("select", POST_SELECT),
        ("order", "created_at.desc,id.desc"),
        ("limit", str(query.page_size)),
    ]

    if query.user_id:
        params.append(("user_id", f"eq.{query.user_id}"))
    elif query.user_ids:
        params.append(("user_id", f"in.{_in_list(query.user_ids)}"))

    if query.tags:
        op = "cs" if query.tag_mode == INTERSECTION else "ov"
        params.append(("tags", f"{op}.{_array_literal(query.tags)}"))

    # Only one top-level "or" is allowed, so search + cursor nest under "and".
    disjunctions = []
    if query.search_text:
        disjunctions.append(_search_clause(query.search_text))
    if cursor:
        disjunctions.append(_cursor_clause(cursor))

    if len(disjunctions) == 1:
        params.append(("or", f"({disjunctions[0]})"))
    elif disjunctions:
        params.append(
            ("and", "(" + ",".join(f"or({d})" for d in disjunctions) + ")")
        )

    return params


class NewsJunkieClient:
    """Client for the News Junkie data API using Supabase auth headers."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: str | None = None,
        user_id: str | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = url.rstrip("/")
        self.user_id = user_id
        self._rest_url = f"{self.base_url}/rest/v1"
        self._functions_url = f"{self.base_url}/functions/v1"
        self._client = httpx.AsyncClient(
            headers={
                "apikey": anon_key,
                "authorization": f"Bearer {access_token or anon_key}",
                "content-type": "application/json",
            },
            timeout=timeout,
            follow_redirects=True,
        )

    # ── Low-level request handling ──

    async def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        url = f"{self._rest_url}/{path}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise FetchError(f"Network error: {e}") from e

        if response.is_success:
            return response

        raise self._error_from_response(response)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> FetchError:
        code = None
        message = f"Request failed with status {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or message

        if response.status_code in (401, 403):
            message = (
                f"{message}. Authentication failed; your access token may "
                "be expired. Run `news-junkie setup` again."
            )

        return FetchError(message, status_code=response.status_code, code=code)

    @staticmethod
    def _decode(response: httpx.Response):
        """JSON body of a successful response; a non-JSON body is a FetchError."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                "Invalid response from server", status_code=response.status_code
            ) from e

    def _decode_rows(self, response: httpx.Response) -> list[dict]:
        rows = self._decode(response) or []
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise FetchError(
                "Invalid response from server", status_code=response.status_code
            )
        return rows

    async def _get_rows(self, path: str, params: list[tuple[str, str]]) -> list[dict]:
        response = await self._request("GET", path, params=params)
        return self._decode_rows(response)

    async def _get_single(
        self, path: str, params: list[tuple[str, str]]
    ) -> dict | None:
        """GET exactly one row; returns None when no row matches."""
        try:
            response = await self._request(
                "GET",
                path,
                params=params,
                headers={"accept": "application/vnd.pgrst.object+json"},
            )
        except FetchError as e:
            if e.code == NO_ROWS_CODE:
                return None
            raise
        row = self._decode(response)
        if row is not None and not isinstance(row, dict):
            raise FetchError(
                "Invalid response from server", status_code=response.status_code
            )
        return row

    # ── Feed ──

    async def fetch_posts_page(
        self, query: FeedQuery, cursor: Cursor | None = None
    ) -> list[Post]:
        """Fetch one page of posts, newest first, starting after ``cursor``."""
        if query.matches_nobody:
            logger.debug("Author filter is empty; skipping request.")
            return []

        rows = await self._get_rows("posts", build_posts_params(query, cursor))
        posts = parse_posts(rows)
        logger.info("Fetched %d posts (cursor=%s)", len(posts), cursor)

        if self.user_id and posts:
            shared = await self.fetch_shared_post_ids(
                self.user_id, [p.id for p in posts]
            )
            for post in posts:
                post.is_shared_by_me = post.id in shared

        return posts

    # ── Posts ──

    async def insert_post(self, values: dict) -> Post:
        response = await self._request(
            "POST",
            "posts",
            params=[("select", POST_SELECT)],
            json=values,
            headers={"prefer": "return=representation"},
        )
        rows = self._decode_rows(response)
        if not rows:
            raise FetchError(
                "Invalid response from server", status_code=response.status_code
            )
        return parse_post(rows[0])

    async def update_post(self, post_id: str, user_id: str, values: dict) -> Post | None:
        """Update an owned post; returns None when no owned row matched."""
        response = await self._request(
            "PATCH",
            "posts",
            params=[
                ("id", f"eq.{post_id}"),
                ("user_id", f"eq.{user_id}"),
                ("select", POST_SELECT),
            ],
            json=values,
            headers={"prefer": "return=representation"},
        )
        rows = self._decode_rows(response)
        return parse_post(rows[0]) if rows else None

    async def delete_post(self, post_id: str, user_id: str) -> None:
        await self._request(
            "DELETE",
            "posts",
            params=[("id", f"eq.{post_id}"), ("user_id", f"eq.{user_id}")],
        )

    # ── Following ──

    async def fetch_following_user_ids(self, follower_id: str) -> list[str]:
        rows = await self._get_rows(
            "followers",
            [("select", "user_id"), ("follower_id", f"eq.{follower_id}")],
        )
        return [row["user_id"] for row in rows]

    async def is_following(self, follower_id: str, user_id: str) -> bool:
        rows = await self._get_rows(
            "followers",
            [
                ("select", "id"),
                ("follower_id", f"eq.{follower_id}"),
                ("user_id", f"eq.{user_id}"),
                ("limit", "1"),
            ],
        )
        return bool(rows)

    async def follow(self, follower_id: str, user_id: str) -> None:
        await self._request(
            "POST", "followers", json={"user_id": user_id, "follower_id": follower_id}
        )

    async def unfollow(self, follower_id: str, user_id: str) -> None:
        await self._request(
            "DELETE",
            "followers",
            params=[("follower_id", f"eq.{follower_id}"), ("user_id", f"eq.{user_id}")],
        )

    # ── Sharing ──

    async def fetch_shared_post_ids(
        self, user_id: str, post_ids: list[str]
    ) -> set[str]:
        if not post_ids:
            return set()
        rows = await self._get_rows(
            "post_shares",
            [
                ("select", "post_id"),
                ("user_id", f"eq.{user_id}"),
                ("post_id", f"in.{_in_list(post_ids)}"),
            ],
        )
        return {row["post_id"] for row in rows}

    async def share_post(self, user_id: str, post_id: str) -> None:
        await self._request(
            "POST", "post_shares", json={"user_id": user_id, "post_id": post_id}
        )

    async def unshare_post(self, user_id: str, post_id: str) -> None:
        await self._request(
            "DELETE",
            "post_shares",
            params=[("user_id", f"eq.{user_id}"), ("post_id", f"eq.{post_id}")],
        )

    # ── Profiles ──

    async def fetch_profile(self, user_id: str) -> Profile | None:
        row = await self._get_single(
            "user_profiles",
            [("select", PROFILE_SELECT), ("id", f"eq.{user_id}")],
        )
        return parse_profile(row) if row else None

    async def list_profiles(self) -> list[Profile]:
        rows = await self._get_rows(
            "user_profiles",
            [("select", PROFILE_SELECT), ("order", "created_at.desc")],
        )
        return [parse_profile(row) for row in rows]

    async def fetch_usually_viewed_tags(self, user_id: str) -> list[str]:
        row = await self._get_single(
            "user_profiles",
            [("select", "usually_viewed_tags"), ("id", f"eq.{user_id}")],
        )
        if not row:
            return []
        return list(row.get("usually_viewed_tags") or [])

    # ── Archive function ──

    async def create_archive_link(self, target_url: str) -> str:
        """Ask the archive-link function for a snapshot URL of ``target_url``."""
        url = f"{self._functions_url}/{ARCHIVE_FUNCTION}"
        try:
            response = await self._client.post(url, json={"url": target_url})
        except httpx.HTTPError as e:
            raise ArchiveError(f"Archiving failed: {e}") from e

        if not response.is_success:
            parts = [f"status={response.status_code}"]
            body = response.text.strip()
            if body:
                parts.append(f"body={body[:300]}")
            message = f"Archiving failed: {response.reason_phrase} ({', '.join(parts)})"
            if "Invalid JWT" in message:
                message += (
                    " (auth token looks invalid; try logging out and in "
                    "again, then re-run setup)"
                )
            raise ArchiveError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        archive_url = data.get("archiveUrl") if isinstance(data, dict) else None
        if not isinstance(archive_url, str) or not archive_url:
            raise ArchiveError("Archive did not return a snapshot URL")

        logger.info("Archived %s -> %s", target_url, archive_url)
        return archive_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
