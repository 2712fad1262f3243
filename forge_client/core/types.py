"""
Shared value types for the Forge client.

Rate-limit snapshots and the timestamp formats used on the wire.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone

# =============================================================================
# Rate limits
# =============================================================================


@dataclass(frozen=True)
class RateLimit:
    """A rate-limit snapshot: request quota for the current window."""

    limit: int
    remaining: int
    reset: int  # UNIX seconds

    @property
    def reset_date(self) -> datetime:
        """Reset instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self.reset, tz=timezone.utc)

    def is_expired(self, now: float | None = None) -> bool:
        """Check if the window this snapshot describes has already reset."""
        if now is None:
            now = time.time()
        return self.reset < now

    @classmethod
    def unknown(cls, now: float | None = None) -> "RateLimit":
        """Placeholder for servers that expose no rate limiting."""
        if now is None:
            now = time.time()
        return cls(limit=1_000_000, remaining=1_000_000, reset=int(now) + 3600)

    @classmethod
    def from_dict(cls, data: dict) -> "RateLimit":
        """Create from the ``rate`` object of a /rate_limit response."""
        return cls(
            limit=int(data.get("limit", 0)),
            remaining=int(data.get("remaining", 0)),
            reset=int(data.get("reset", 0)),
        )


# =============================================================================
# Timestamps
# =============================================================================


TIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y/%m/%d %H:%M:%S %z",
)


def parse_date(timestamp: str | None) -> datetime | None:
    """Parse a Forge timestamp into an aware UTC datetime."""
    if timestamp is None:
        return None
    for fmt in TIME_FORMATS:
        try:
            parsed = datetime.strptime(timestamp, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"Unable to parse the timestamp: {timestamp}")


def print_date(value: datetime) -> str:
    """Format a datetime the way the Forge expects it in requests."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIME_FORMATS[0])
