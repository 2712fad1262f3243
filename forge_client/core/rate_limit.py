"""
Rate-limit accounting from response headers.
"""

import logging
import threading
from collections.abc import Callable

from forge_client.core.types import RateLimit

logger = logging.getLogger(__name__)

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"

# Paths whose responses never count towards the observed quota
RATE_LIMIT_PATH = "/rate_limit"
SEARCH_PREFIX = "/search"


def is_accounted_path(tail: str) -> bool:
    """Check if responses for a request path feed the rate-limit snapshot."""
    return tail != RATE_LIMIT_PATH and not tail.startswith(SEARCH_PREFIX)


def parse_rate_limit_headers(header: Callable[[str], str | None]) -> RateLimit | None:
    """
    Read a snapshot from the X-RateLimit-* headers.

    Args:
        header: Case-insensitive header lookup

    Returns:
        The snapshot, or None if any of the three headers is missing or malformed

    """
    values = {}
    for name in (LIMIT_HEADER, REMAINING_HEADER, RESET_HEADER):
        raw = header(name)
        if raw is None or not raw.strip():
            return None
        try:
            values[name] = int(raw.strip())
        except ValueError:
            logger.debug("Malformed %s header value %r", name, raw)
            return None
    return RateLimit(
        limit=values[LIMIT_HEADER],
        remaining=values[REMAINING_HEADER],
        reset=values[RESET_HEADER],
    )


class RateLimitTracker:
    """
    Keeps the most relevant rate-limit snapshot seen so far.

    A new snapshot replaces the current one if it belongs to a later window,
    or to the same window with fewer requests remaining. Snapshots never move
    backwards even when responses arrive out of order across threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._header_rate_limit: RateLimit | None = None
        self._probed: RateLimit | None = None

    def update(self, observed: RateLimit) -> bool:
        """Merge an observed snapshot. Returns True if it was accepted."""
        with self._lock:
            current = self._header_rate_limit
            if current is None or current.reset < observed.reset or current.remaining > observed.remaining:
                self._header_rate_limit = observed
                logger.debug("Rate limit now: %s", observed)
                return True
            return False

    def last(self) -> RateLimit | None:
        """Most recent accepted header snapshot, if any."""
        with self._lock:
            return self._header_rate_limit

    @property
    def probed(self) -> RateLimit | None:
        """Result of the last explicit /rate_limit probe."""
        return self._probed

    @probed.setter
    def probed(self, value: RateLimit) -> None:
        self._probed = value

    def current(self, now: float | None = None) -> RateLimit | None:
        """The freshest snapshot that has not yet expired, if any."""
        header_limit = self.last()
        if header_limit is not None and not header_limit.is_expired(now):
            return header_limit
        probed = self._probed
        if probed is not None and not probed.is_expired(now):
            return probed
        return None
