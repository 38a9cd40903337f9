"""Exception types raised by the review triage pipeline."""

from __future__ import annotations

from typing import Optional


class ReviewTriageError(RuntimeError):
    """Base class for every error the pipeline raises on purpose."""


class ClientInputError(ReviewTriageError, ValueError):
    """Raised when caller supplied text or rating is missing or out of range."""


class TransientRemoteError(ReviewTriageError):
    """A remote call failed in a way that may succeed on a later attempt.

    ``kind`` selects the backoff used by :class:`review_triage.core.retry.RetryPolicy`:
    ``rate_limited`` (HTTP 429), ``unavailable`` (HTTP 503), ``timeout``,
    ``connection`` or ``http_error`` (any other non-success status).
    """

    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_ERROR = "http_error"

    def __init__(self, message: str, kind: str = HTTP_ERROR, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class RemoteProtocolError(ReviewTriageError):
    """The remote service answered with something that does not follow its contract."""


class VendorJobError(ReviewTriageError):
    """The crawl job ended in a failed state reported by the vendor."""

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status


class CrawlTimeoutError(VendorJobError):
    """The crawl job did not reach a terminal state within the wait budget."""
