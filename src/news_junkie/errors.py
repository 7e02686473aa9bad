"""Exception types raised by the News Junkie client."""


class NewsJunkieError(Exception):
    """Base class for all client errors."""


class FetchError(NewsJunkieError):
    """A remote call failed (network error, rejected query, bad status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ArchiveError(FetchError):
    """The archive-link function failed or returned no snapshot."""


class ValidationError(NewsJunkieError):
    """Post input was rejected before reaching the backend."""


class NotAuthenticatedError(NewsJunkieError):
    """An operation needs a signed-in user and none is configured."""
