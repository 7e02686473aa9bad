"""In-process publish/subscribe for post edits and deletions.

A single PostEventBus is created by whoever owns the application wiring and
passed to both publishers (PostMutations) and subscribers (FeedSession).
Delivery is synchronous, to the listeners registered at emit time; nothing
is buffered for late subscribers.
"""

import logging
from collections.abc import Callable

from .models import Post

logger = logging.getLogger(__name__)

UpdatedListener = Callable[[Post], None]
DeletedListener = Callable[[str], None]


class PostEventBus:
    def __init__(self):
        self._updated: list[UpdatedListener] = []
        self._deleted: list[DeletedListener] = []

    def on_post_updated(self, listener: UpdatedListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        return self._subscribe(self._updated, listener)

    def on_post_deleted(self, listener: DeletedListener) -> Callable[[], None]:
        return self._subscribe(self._deleted, listener)

    def emit_post_updated(self, post: Post) -> None:
        self._emit(self._updated, post)

    def emit_post_deleted(self, post_id: str) -> None:
        self._emit(self._deleted, post_id)

    @property
    def listener_count(self) -> int:
        return len(self._updated) + len(self._deleted)

    @staticmethod
    def _subscribe(listeners: list, listener: Callable) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    @staticmethod
    def _emit(listeners: list, payload) -> None:
        # Snapshot: listeners may unsubscribe while being notified.
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception("Post event listener %r failed", listener)
