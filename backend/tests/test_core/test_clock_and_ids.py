"""Tests for the injectable clock and id generators."""

from datetime import datetime, timedelta, timezone

from core.clock import FixedClock, SystemClock
from core.id_generator import SequentialIdGenerator, UuidIdGenerator


class TestClock:
    """Tests for clock implementations."""

    def test_system_clock_is_utc(self) -> None:
        """System time is timezone-aware UTC."""
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_fixed_clock_assumes_utc_for_naive_instant(self) -> None:
        """A naive instant is treated as UTC."""
        clock = FixedClock(datetime(2026, 1, 15, 12, 0))
        assert clock.now() == datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_fixed_clock_advance(self) -> None:
        """advance() moves the clock forward."""
        clock = FixedClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))
        clock.advance(minutes=90)
        assert clock.now() == datetime(2026, 1, 15, 13, 30, tzinfo=timezone.utc)


class TestIdGenerators:
    """Tests for id generator implementations."""

    def test_sequential_ids(self) -> None:
        """Sequential ids count up per generator."""
        generator = SequentialIdGenerator()
        assert generator.new_id("audit") == "audit-1"
        assert generator.new_id("backup") == "backup-2"
        assert generator.new_id() == "id-3"

    def test_uuid_ids_are_unique_and_prefixed(self) -> None:
        """UUID ids carry the prefix and never repeat."""
        generator = UuidIdGenerator()
        ids = {generator.new_id("activity") for _ in range(100)}
        assert len(ids) == 100
        assert all(value.startswith("activity_") for value in ids)
