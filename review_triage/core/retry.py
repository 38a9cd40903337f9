"""Retry policy shared by every call to the remote classifier."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from review_triage.core.errors import TransientRemoteError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retries with a backoff chosen by the kind of transient failure.

    Rate limiting backs off exponentially, a warming up service linearly, and
    everything else (timeouts, dropped connections, other HTTP errors)
    exponentially from a smaller base. Only :class:`TransientRemoteError` is
    retried; any other exception propagates on the first occurrence.
    """

    max_attempts: int = 3
    rate_limit_base_delay: float = 2.0
    unavailable_delay: float = 5.0
    error_base_delay: float = 1.0

    def delay_for(self, error: TransientRemoteError, attempt: int) -> float:
        if error.kind == TransientRemoteError.RATE_LIMITED:
            return self.rate_limit_base_delay * (2 ** attempt)
        if error.kind == TransientRemoteError.UNAVAILABLE:
            return self.unavailable_delay * attempt
        return self.error_base_delay * (2 ** attempt)

    def call(self, operation: Callable[[], T], description: str = "remote call") -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except TransientRemoteError as exc:
                logger.warning(
                    "%s failed (attempt %s/%s, %s): %s", description, attempt, self.max_attempts, exc.kind, exc
                )
                if attempt >= self.max_attempts:
                    logger.error("%s exhausted %s attempts", description, self.max_attempts)
                    raise
                sleep_for = self.delay_for(exc, attempt)
                logger.info("Waiting %.1fs before retrying %s", sleep_for, description)
                time.sleep(sleep_for)
