"""
Policies applied when the Forge refuses a request for quota reasons.

A handler is any callable ``(error, response) -> None``. Returning normally
tells the executor to retry the same request; raising ends the call.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from email.utils import parsedate_to_datetime
from typing import ClassVar

from forge_client.core.connector import ConnectorResponse
from forge_client.core.errors import HttpError, WaitInterrupted
from forge_client.core.rate_limit import RESET_HEADER

logger = logging.getLogger(__name__)

RETRY_AFTER_HEADER = "Retry-After"
# Used when the server gives no usable hint about how long to wait
DEFAULT_WAIT_SECONDS = 60

LimitHandler = Callable[[HttpError, ConnectorResponse], None]


def parse_retry_after(value: str | None, now: float | None = None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP date)."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if now is None:
        now = time.time()
    return max(when.timestamp() - now, 0.0)


class _Waiter:
    """Interruptible sleep shared by the waiting policies."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._interrupted = threading.Event()

    def interrupt(self) -> None:
        """Wake up threads sleeping in this handler; they raise WaitInterrupted."""
        self._interrupted.set()

    def sleep(self, seconds: float) -> None:
        if self._interrupted.wait(seconds):
            self._interrupted.clear()
            raise WaitInterrupted(f"Interrupted while waiting {seconds:.0f}s for the rate limit to reset")


class RateLimitHandler(ABC):
    """Invoked when a response reports that no quota remains."""

    FAIL: ClassVar["RateLimitHandler"]
    WAIT: ClassVar["RateLimitHandler"]
    WAIT_WITH_SECONDARY: ClassVar["RateLimitHandler"]

    @abstractmethod
    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        """Raise to give up, return to retry."""

    def __call__(self, error: HttpError, response: ConnectorResponse) -> None:
        self.on_error(error, response)


class FailOnRateLimit(RateLimitHandler):
    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        raise error


class WaitForRateLimitReset(RateLimitHandler):
    """Sleep until the quota window resets, plus one second of slack."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._waiter = _Waiter(clock)

    def interrupt(self) -> None:
        self._waiter.interrupt()

    def wait_seconds(self, response: ConnectorResponse) -> float:
        reset = response.header(RESET_HEADER)
        try:
            reset_at = int(reset) if reset is not None else None
        except ValueError:
            reset_at = None
        if reset_at is None:
            return DEFAULT_WAIT_SECONDS
        return max(reset_at - self._waiter.clock(), 0) + 1

    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        seconds = self.wait_seconds(response)
        logger.info("Rate limit exhausted for %s; waiting %.0fs before retrying", error.url, seconds)
        self._waiter.sleep(seconds)


class WaitWithSecondaryLimit(WaitForRateLimitReset):
    """Like WaitForRateLimitReset, but Retry-After wins when the server sends one."""

    def wait_seconds(self, response: ConnectorResponse) -> float:
        retry_after = parse_retry_after(response.header(RETRY_AFTER_HEADER), self._waiter.clock())
        if retry_after is not None:
            logger.warning("Secondary rate limit hit; server asked to wait %.0fs", retry_after)
            return retry_after
        return super().wait_seconds(response)


RateLimitHandler.FAIL = FailOnRateLimit()
RateLimitHandler.WAIT = WaitForRateLimitReset()
RateLimitHandler.WAIT_WITH_SECONDARY = WaitWithSecondaryLimit()


class AbuseLimitHandler(ABC):
    """Invoked when the Forge asks the client to back off (403 with Retry-After)."""

    FAIL: ClassVar["AbuseLimitHandler"]
    WAIT: ClassVar["AbuseLimitHandler"]

    @abstractmethod
    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        """Raise to give up, return to retry."""

    def __call__(self, error: HttpError, response: ConnectorResponse) -> None:
        self.on_error(error, response)


class FailOnAbuseLimit(AbuseLimitHandler):
    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        raise error


class WaitForRetryAfter(AbuseLimitHandler):
    """Sleep for as long as the Retry-After header asks."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._waiter = _Waiter(clock)

    def interrupt(self) -> None:
        self._waiter.interrupt()

    def wait_seconds(self, response: ConnectorResponse) -> float:
        retry_after = parse_retry_after(response.header(RETRY_AFTER_HEADER), self._waiter.clock())
        return DEFAULT_WAIT_SECONDS if retry_after is None else retry_after

    def on_error(self, error: HttpError, response: ConnectorResponse) -> None:
        seconds = self.wait_seconds(response)
        logger.info("Abuse limit hit for %s; waiting %.0fs before retrying", error.url, seconds)
        self._waiter.sleep(seconds)


AbuseLimitHandler.FAIL = FailOnAbuseLimit()
AbuseLimitHandler.WAIT = WaitForRetryAfter()
