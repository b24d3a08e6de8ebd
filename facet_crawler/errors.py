from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .engines.base import TaskFailure
    from .filters import Filter, FilterPath


class CrawlError(Exception):
    """Base class for every error raised by the crawler."""


class SessionError(CrawlError):
    """
    A session capability call failed (navigation, reset, listing, ...).
    Every subclass is retried by the engine before a subtree is abandoned.
    """


class SessionTimeoutError(SessionError):
    """A session call did not finish within its bounded wait."""


class FilterApplicationError(SessionError):
    def __init__(self, message: str, filter: Optional["Filter"] = None) -> None:
        super().__init__(message)
        self.filter = filter


class ExtractionError(SessionError):
    """Items or filters could not be read from the current view."""


class PoolExhaustionError(CrawlError):
    """No session could be acquired for a lane."""


class CrawlFailedError(CrawlError):
    """The root task failed, so the crawl as a whole did not run."""

    def __init__(self, failure: "TaskFailure") -> None:
        super().__init__(f"root task failed: {failure.error!r}")
        self.failure = failure


class ConsistencyWarning(UserWarning):
    """
    Two observations of the same external id carried different metadata.
    Recorded and logged by the item store, never raised.
    """

    def __init__(
        self,
        external_id: str,
        canonical: Dict[str, Any],
        observed: Dict[str, Any],
        path: "FilterPath",
    ) -> None:
        super().__init__(f"metadata mismatch for {external_id}")
        self.external_id = external_id
        self.canonical = canonical
        self.observed = observed
        self.path = path
