"""Infinite-scroll feed session: cursor pagination with stale-result protection.

A FeedSession owns the visible post list, the cursor and the has_more flag
for one query at a time. Every fetch runs under a CancellationToken; issuing
a new first-page load (query change or refetch) cancels the previous token,
and a completed fetch whose token was cancelled is dropped on arrival rather
than applied. Nothing is aborted at the network level.

While open, the session also listens on a PostEventBus and patches its list
in place for post edits and deletions, without refetching.
"""

import enum
import logging
from collections.abc import Awaitable, Callable

from .errors import FetchError
from .events import PostEventBus
from .models import Cursor, Page, Post
from .query import FeedQuery

logger = logging.getLogger(__name__)

PageFetcher = Callable[[FeedQuery, Cursor | None], Awaitable[list[Post]]]


class FeedState(enum.Enum):
    IDLE = "idle"
    LOADING_FIRST = "loading-first"
    READY = "ready"
    LOADING_MORE = "loading-more"
    ERROR = "error"


class CancellationToken:
    """Marks one fetch as superseded once a newer one is issued."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def next_cursor(page: list[Post], previous: Cursor | None) -> Cursor | None:
    """Cursor after ``page``; an empty page keeps the previous cursor."""
    if not page:
        return previous
    return Cursor.from_post(page[-1])


def page_has_more(page: list[Post], page_size: int) -> bool:
    # Exact-size heuristic: a full page means there may be more.
    return len(page) == page_size


class FeedSession:
    """Paginated, filterable view over the posts feed.

    Usage:
        async with FeedSession(client.fetch_posts_page, query, bus) as feed:
            await feed.load_more()
            print(feed.posts)
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        query: FeedQuery | None = None,
        bus: PostEventBus | None = None,
    ):
        self._fetch_page = fetch_page
        self._bus = bus
        self.query = query or FeedQuery()

        self.posts: list[Post] = []
        self.cursor: Cursor | None = None
        self.has_more = True
        self.error: str | None = None
        self.state = FeedState.IDLE

        self._token: CancellationToken | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._closed = False

    # ── Derived state ──

    @property
    def initial_loading(self) -> bool:
        return self.state in (FeedState.IDLE, FeedState.LOADING_FIRST)

    @property
    def loading_more(self) -> bool:
        return self.state is FeedState.LOADING_MORE

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def view(self) -> str:
        """Which of loading / error / empty / posts a UI should display."""
        if self.initial_loading:
            return "loading"
        if self.error:
            return "error"
        if not self.posts:
            return "empty"
        return "posts"

    # ── Lifecycle ──

    async def open(self) -> None:
        """Subscribe to post events and load the first page.

        A closed session stays closed; create a new one instead.
        """
        if self._closed:
            return
        if self._bus is not None and not self._unsubscribers:
            self._unsubscribers = [
                self._bus.on_post_updated(self._on_post_updated),
                self._bus.on_post_deleted(self._on_post_deleted),
            ]
        await self.refetch()

    def close(self) -> None:
        """Unsubscribe and drop any in-flight result."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._token is not None:
            self._token.cancel()
        self._closed = True

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *args):
        self.close()

    # ── Loading ──

    async def set_query(self, query: FeedQuery, force: bool = False) -> None:
        """Switch to ``query``, reloading from the first page if it changed."""
        if query == self.query and not force and self.state is not FeedState.IDLE:
            return
        self.query = query
        await self.refetch()

    async def refetch(self) -> None:
        if self._closed:
            return
        await self._load_first_page(self._issue_token())

    async def load_more(self) -> None:
        if self._closed or not self.has_more:
            return
        if self.state not in (FeedState.READY, FeedState.ERROR):
            return
        if self.cursor is None:
            # No cursor means nothing was loaded; treat as exhausted.
            self.has_more = False
            return

        token = self._issue_token()
        query, cursor = self.query, self.cursor
        self.state = FeedState.LOADING_MORE
        self.error = None

        try:
            page = await self._fetch(query, cursor, token)
        except FetchError as e:
            if self._is_stale(token):
                return
            logger.warning("Loading more posts failed: %s", e)
            self.error = str(e) or "Failed to load more posts"
            self.state = FeedState.ERROR
            return

        if page is None or self._is_stale(token):
            return

        seen = {p.id for p in self.posts}
        fresh = []
        for post in page.posts:
            if post.id not in seen:
                seen.add(post.id)
                fresh.append(post)
        self.posts = self.posts + fresh
        self.cursor = next_cursor(page.posts, cursor)
        self.has_more = page.has_more
        self.state = FeedState.READY
        logger.debug(
            "Appended %d posts (%d duplicates dropped), has_more=%s",
            len(fresh),
            len(page.posts) - len(fresh),
            self.has_more,
        )

    async def _load_first_page(self, token: CancellationToken) -> None:
        query = self.query
        self.state = FeedState.LOADING_FIRST
        self.error = None
        self.has_more = True
        self.cursor = None
        self.posts = []

        try:
            page = await self._fetch(query, None, token)
        except FetchError as e:
            if self._is_stale(token):
                return
            logger.warning("Loading posts failed: %s", e)
            self.error = str(e) or "Failed to load posts"
            self.has_more = False
            self.state = FeedState.ERROR
            return

        if page is None or self._is_stale(token):
            return

        self.posts = list(page.posts)
        self.cursor = next_cursor(page.posts, None)
        self.has_more = page.has_more
        self.state = FeedState.READY
        logger.info(
            "Loaded first page: %d posts, has_more=%s", len(page.posts), self.has_more
        )

    async def _fetch(
        self, query: FeedQuery, cursor: Cursor | None, token: CancellationToken
    ) -> Page | None:
        if token.cancelled:
            return None
        posts = await self._fetch_page(query, cursor)
        return Page(posts=posts, has_more=page_has_more(posts, query.page_size))

    def _issue_token(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel()
        self._token = CancellationToken()
        return self._token

    def _is_stale(self, token: CancellationToken) -> bool:
        if token.cancelled or self._closed:
            logger.debug("Discarding superseded feed result")
            return True
        return False

    # ── Live mutations ──

    def _on_post_updated(self, updated: Post) -> None:
        for index, post in enumerate(self.posts):
            if post.id == updated.id:
                posts = list(self.posts)
                posts[index] = updated
                self.posts = posts
                return

    def _on_post_deleted(self, post_id: str) -> None:
        if any(p.id == post_id for p in self.posts):
            self.posts = [p for p in self.posts if p.id != post_id]
