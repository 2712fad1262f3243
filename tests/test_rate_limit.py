"""Tests for rate-limit header parsing, snapshot merging and timestamps."""

from datetime import datetime, timedelta, timezone

import pytest

from forge_client.core.rate_limit import (
    RateLimitTracker,
    is_accounted_path,
    parse_rate_limit_headers,
)
from forge_client.core.types import RateLimit, parse_date, print_date


def headers(**values: str):
    lookup = {k.lower(): v for k, v in values.items()}
    return lambda name: lookup.get(name.lower())


class TestParseHeaders:
    def test_reads_all_three_headers(self):
        limit = parse_rate_limit_headers(
            headers(**{"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "1700000000"})
        )
        assert limit == RateLimit(limit=5000, remaining=4999, reset=1700000000)

    def test_missing_header_gives_none(self):
        assert parse_rate_limit_headers(headers(**{"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": "1"})) is None

    def test_blank_header_gives_none(self):
        result = parse_rate_limit_headers(
            headers(**{"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": " ", "X-RateLimit-Reset": "1"})
        )
        assert result is None

    def test_malformed_header_gives_none(self):
        result = parse_rate_limit_headers(
            headers(**{"X-RateLimit-Limit": "lots", "X-RateLimit-Remaining": "1", "X-RateLimit-Reset": "1"})
        )
        assert result is None


class TestAccountedPaths:
    def test_regular_paths_are_accounted(self):
        assert is_accounted_path("/repos/octo/hello")

    def test_probe_and_search_are_not(self):
        assert not is_accounted_path("/rate_limit")
        assert not is_accounted_path("/search/repositories")


class TestTracker:
    def test_first_snapshot_is_accepted(self):
        tracker = RateLimitTracker()
        assert tracker.update(RateLimit(5000, 4000, 100))
        assert tracker.last() == RateLimit(5000, 4000, 100)

    def test_later_window_replaces(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 10, 100))
        assert tracker.update(RateLimit(5000, 4999, 200))
        assert tracker.last().reset == 200

    def test_fewer_remaining_in_same_window_replaces(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 50, 100))
        assert tracker.update(RateLimit(5000, 49, 100))
        assert tracker.last().remaining == 49

    def test_stale_snapshot_is_ignored(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 40, 200))
        assert not tracker.update(RateLimit(5000, 45, 200))
        assert not tracker.update(RateLimit(5000, 60, 100))
        assert tracker.last() == RateLimit(5000, 40, 200)

    def test_out_of_order_updates_never_move_backwards(self):
        tracker = RateLimitTracker()
        snapshots = [RateLimit(5000, r, 100) for r in (30, 32, 29, 31, 28)]
        for snapshot in snapshots:
            tracker.update(snapshot)
        assert tracker.last().remaining == 28

    def test_current_prefers_fresh_header_snapshot(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 10, 2000))
        tracker.probed = RateLimit(5000, 20, 3000)
        assert tracker.current(now=1000).remaining == 10

    def test_current_falls_back_to_probe_when_header_expired(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 10, 500))
        tracker.probed = RateLimit(5000, 20, 3000)
        assert tracker.current(now=1000).remaining == 20

    def test_current_is_none_when_everything_expired(self):
        tracker = RateLimitTracker()
        tracker.update(RateLimit(5000, 10, 500))
        assert tracker.current(now=1000) is None


class TestRateLimit:
    def test_unknown_is_effectively_unlimited(self):
        limit = RateLimit.unknown(now=1000)
        assert limit.limit == 1_000_000
        assert limit.remaining == 1_000_000
        assert limit.reset == 4600

    def test_from_dict(self):
        assert RateLimit.from_dict({"limit": 60, "remaining": 59, "reset": 42}) == RateLimit(60, 59, 42)

    def test_reset_date_is_utc(self):
        assert RateLimit(1, 1, 0).reset_date.isoformat() == "1970-01-01T00:00:00+00:00"


class TestTimestamps:
    def test_parses_every_wire_format_as_utc(self):
        expected = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)
        assert parse_date("2024-05-01T12:30:00Z") == expected
        assert parse_date("2024-05-01T12:30:00.000Z") == expected
        assert parse_date("2024/05/01 14:30:00 +0200") == expected

    def test_none_passes_through(self):
        assert parse_date(None) is None

    def test_unknown_format_is_rejected(self):
        with pytest.raises(ValueError):
            parse_date("yesterday")

    def test_print_converts_to_utc(self):
        local = datetime(2024, 5, 1, 14, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        assert print_date(local) == "2024-05-01T12:30:00Z"
