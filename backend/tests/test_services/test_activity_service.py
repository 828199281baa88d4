"""
Tests for the activity feed and spike detection.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from core.clock import FixedClock
from core.id_generator import SequentialIdGenerator
from models.exceptions import ActivityValidationException
from models.moderation_types import (
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from models.schemas import (
    ActivityFilters,
    AnomalyDetectionConfig,
    CreateActivityInput,
    SpikeDetectionResult,
)
from services.activity_service import (
    ActivityService,
    are_activities_properly_ordered,
    calculate_activity_rate,
    create_activity_item,
    decode_cursor,
    detect_activity_spike,
    filter_activities,
    get_activity_stats,
    is_valid_spike_detection,
    sort_activities_by_date,
    validate_activity_input,
)

TEST_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _input(**overrides) -> CreateActivityInput:
    data = {
        "activity_type": "report_filed",
        "actor_id": "user-1",
        "target_type": "hackathon",
        "target_id": "42",
        "action": "Reported hackathon for spam",
    }
    data.update(overrides)
    return CreateActivityInput(**data)


class TestValidateActivityInput:
    """Tests for validate_activity_input."""

    def test_valid_input(self) -> None:
        """A complete payload passes."""
        assert validate_activity_input(_input()).valid is True

    def test_collects_every_missing_field(self) -> None:
        """All required fields are reported at once."""
        result = validate_activity_input({})

        assert result.valid is False
        assert result.errors == [
            "activity_type is required",
            "target_type is required",
            "target_id is required",
            "action is required",
        ]

    def test_rejects_unknown_values(self) -> None:
        """Unknown enum values and blank strings are rejected."""
        result = validate_activity_input(
            _input(activity_type="login", target_type="planet", action="   ",
                   severity="loud")
        )

        assert result.errors == [
            "Invalid activity_type: login",
            "Invalid target_type: planet",
            "action must be a non-empty string",
            "Invalid severity: loud",
        ]

    def test_accepts_enum_members(self) -> None:
        """Enum members validate like their values."""
        result = validate_activity_input(
            {
                "activity_type": ActivityType.TEAM_JOINED,
                "target_type": ActivityTargetType.TEAM,
                "target_id": "t-1",
                "action": "Joined team",
                "severity": ActivitySeverity.WARNING,
            }
        )
        assert result.valid is True


class TestCreateActivityItem:
    """Tests for create_activity_item."""

    def test_builds_item(
        self, fixed_clock: FixedClock, id_generator: SequentialIdGenerator
    ) -> None:
        """Id, timestamp and default severity are filled in."""
        item = create_activity_item(
            _input(action="  Reported hackathon  "), fixed_clock, id_generator
        )

        assert item.id == "activity-1"
        assert item.activity_type == ActivityType.REPORT_FILED
        assert item.target_type == ActivityTargetType.HACKATHON
        assert item.action == "Reported hackathon"
        assert item.severity == ActivitySeverity.INFO
        assert item.created_at == TEST_NOW

    def test_invalid_input_raises(
        self, fixed_clock: FixedClock, id_generator: SequentialIdGenerator
    ) -> None:
        """Invalid input raises with every error listed."""
        with pytest.raises(ActivityValidationException) as exc_info:
            create_activity_item(_input(target_id=""), fixed_clock, id_generator)
        assert exc_info.value.errors == ["target_id is required"]


class TestOrderingAndFiltering:
    """Tests for sorting and in-memory filters."""

    def test_sort_newest_first(self, make_activity) -> None:
        """Sorting returns a new list, newest first."""
        items = [make_activity(minutes_ago=m) for m in (5, 1, 10)]

        result = sort_activities_by_date(items)

        assert [item.id for item in result] == ["act-2", "act-1", "act-3"]
        assert are_activities_properly_ordered(result) is True
        assert are_activities_properly_ordered(items) is False

    @pytest.mark.parametrize(
        "minutes",
        [
            [],
            [3],
            [0, 0, 0],
            [1, 2, 3, 4],
            [4, 3, 2, 1],
            [7, 0, 7, 30, 1, 1440, 2, 2],
            [0.5, 90, 0.25, 60, 59.75, 5, 10080],
        ],
    )
    def test_sort_properties(self, make_activity, minutes: list[float]) -> None:
        """Sorting keeps the same items, puts the newest first and is idempotent."""
        items = [make_activity(minutes_ago=m) for m in minutes]

        once = sort_activities_by_date(items)
        twice = sort_activities_by_date(once)

        assert sorted(item.id for item in once) == sorted(item.id for item in items)
        assert len(once) == len(items)
        assert are_activities_properly_ordered(once)
        assert [item.id for item in twice] == [item.id for item in once]
        if items:
            assert once[0].created_at == max(item.created_at for item in items)

    def test_filter_by_actor_and_dates(self, make_activity) -> None:
        """Every set filter must match."""
        items = [
            make_activity(actor_id="a", minutes_ago=1),
            make_activity(actor_id="a", minutes_ago=120),
            make_activity(actor_id="b", minutes_ago=1),
        ]
        filters = ActivityFilters(
            actor_id="a", date_from=TEST_NOW - timedelta(hours=1)
        )

        assert [item.id for item in filter_activities(items, filters)] == ["act-1"]

    def test_filter_by_type_and_severity(self, make_activity) -> None:
        """List filters match any of their values."""
        items = [
            make_activity(ActivityType.REPORT_FILED, severity=ActivitySeverity.WARNING),
            make_activity(ActivityType.REPORT_FILED),
            make_activity(ActivityType.TEAM_JOINED, severity=ActivitySeverity.WARNING),
        ]
        filters = ActivityFilters(
            activity_type=[ActivityType.REPORT_FILED],
            severity=[ActivitySeverity.WARNING],
        )

        assert [item.id for item in filter_activities(items, filters)] == ["act-1"]


class TestSpikeDetection:
    """Tests for calculate_activity_rate and detect_activity_spike."""

    def test_rate_of_empty_list_is_zero(self) -> None:
        """No activities means a zero rate."""
        assert calculate_activity_rate([], 5, TEST_NOW) == 0.0

    def test_rate_with_zero_window_is_zero(self, make_activities) -> None:
        """A non-positive window gives zero instead of dividing by it."""
        assert calculate_activity_rate(make_activities(3), 0, TEST_NOW) == 0.0

    def test_rate_counts_only_window(self, make_activity) -> None:
        """Activities older than the window are ignored."""
        items = [make_activity(minutes_ago=m) for m in (1, 2, 4, 30)]
        assert calculate_activity_rate(items, 5, TEST_NOW) == pytest.approx(0.6)

    def test_detects_spike(self, make_activities) -> None:
        """A burst well above the hourly baseline is a spike."""
        items = make_activities(10, minutes_ago=1) + make_activities(
            10, minutes_ago=30
        )

        result = detect_activity_spike(items, AnomalyDetectionConfig(), TEST_NOW)

        assert result.current_rate == pytest.approx(2.0)
        assert result.average_rate == pytest.approx(20 / 60)
        assert result.ratio == pytest.approx(6.0)
        assert result.is_spike is True
        assert is_valid_spike_detection(result) is True

    def test_steady_traffic_is_not_a_spike(self, make_activity) -> None:
        """One activity per minute stays under the threshold."""
        items = [make_activity(minutes_ago=m) for m in range(60)]

        result = detect_activity_spike(items, AnomalyDetectionConfig(), TEST_NOW)

        # Minutes 0..5 fall inside the 5 minute window
        assert result.current_rate == pytest.approx(1.2)
        assert result.average_rate == pytest.approx(1.0)
        assert result.is_spike is False

    def test_too_few_activities_never_spike(self, make_activities) -> None:
        """Below minimum_activities nothing is reported, whatever the ratio."""
        result = detect_activity_spike(
            make_activities(3), AnomalyDetectionConfig(), TEST_NOW
        )

        assert result.ratio == pytest.approx(12.0)
        assert result.is_spike is False

    def test_empty_list(self) -> None:
        """An empty list has zero rates and no spike."""
        result = detect_activity_spike([], AnomalyDetectionConfig(), TEST_NOW)

        assert result == SpikeDetectionResult(
            is_spike=False, current_rate=0, average_rate=0, threshold=2.0, ratio=0
        )

    def test_config_rejects_bad_windows(self) -> None:
        """The current window must be shorter than the average window."""
        with pytest.raises(ValueError):
            AnomalyDetectionConfig(current_window_minutes=60, average_window_minutes=60)
        with pytest.raises(ValueError):
            AnomalyDetectionConfig(spike_threshold=1.0)

    def test_spike_below_threshold_is_invalid(self) -> None:
        """A spike claim with a ratio under the threshold is inconsistent."""
        result = SpikeDetectionResult(
            is_spike=True, current_rate=1, average_rate=1, threshold=2.0, ratio=1.0
        )
        assert is_valid_spike_detection(result) is False


class TestActivityStats:
    """Tests for get_activity_stats."""

    def test_counts(self, make_activity) -> None:
        """Stats group by type and severity and count today's items."""
        items = [
            make_activity(ActivityType.REPORT_FILED, minutes_ago=1),
            make_activity(
                ActivityType.SUSPICIOUS_ACTIVITY,
                minutes_ago=2,
                severity=ActivitySeverity.CRITICAL,
            ),
            make_activity(ActivityType.REPORT_FILED, minutes_ago=60 * 13),
        ]

        stats = get_activity_stats(items, AnomalyDetectionConfig(), TEST_NOW)

        assert stats.total_activities_today == 2
        assert stats.recent_suspicious_count == 1
        assert stats.activities_by_type == {
            "report_filed": 2,
            "suspicious_activity": 1,
        }
        assert stats.activities_by_severity == {"info": 2, "critical": 1}
        assert stats.activities_per_minute == pytest.approx(0.4)


class TestActivityServiceStorage:
    """Tests for ActivityService against the database."""

    def test_record_activity_persists(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """The stored row matches the returned item."""
        item = ActivityService.record_activity(
            db_session,
            _input(metadata={"reason": "spam"}, severity="warning"),
            fixed_clock,
            id_generator,
        )

        row = db_session.get(db_models.ActivityFeedEntry, item.id)
        assert row is not None
        assert row.activity_type == "report_filed"
        assert row.severity == "warning"
        assert row.activity_metadata == {"reason": "spam"}

    def test_invalid_activity_is_not_written(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Validation failures leave the feed untouched."""
        with pytest.raises(ActivityValidationException):
            ActivityService.record_activity(
                db_session, _input(action=None), fixed_clock, id_generator
            )
        assert db_session.query(db_models.ActivityFeedEntry).count() == 0

    def test_feed_pages_with_cursor(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Pages follow each other without gaps or repeats."""
        for _ in range(5):
            ActivityService.record_activity(
                db_session, _input(), fixed_clock, id_generator
            )
            fixed_clock.advance(minutes=1)

        first = ActivityService.get_feed(db_session, limit=2)
        second = ActivityService.get_feed(db_session, cursor=first.next_cursor, limit=2)
        third = ActivityService.get_feed(db_session, cursor=second.next_cursor, limit=2)

        assert [a.id for a in first.activities] == ["activity-5", "activity-4"]
        assert [a.id for a in second.activities] == ["activity-3", "activity-2"]
        assert [a.id for a in third.activities] == ["activity-1"]
        assert first.has_more is True and second.has_more is True
        assert third.has_more is False
        assert third.next_cursor is None

    def test_feed_cursor_breaks_timestamp_ties_by_id(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Activities sharing a timestamp are paged by id."""
        for _ in range(3):
            ActivityService.record_activity(
                db_session, _input(), fixed_clock, id_generator
            )

        first = ActivityService.get_feed(db_session, limit=2)
        second = ActivityService.get_feed(db_session, cursor=first.next_cursor, limit=2)

        assert [a.id for a in first.activities] == ["activity-3", "activity-2"]
        assert [a.id for a in second.activities] == ["activity-1"]

    def test_feed_filters(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Filters are applied in the query."""
        ActivityService.record_activity(db_session, _input(), fixed_clock, id_generator)
        ActivityService.record_activity(
            db_session,
            _input(activity_type="team_joined", target_type="team"),
            fixed_clock,
            id_generator,
        )

        page = ActivityService.get_feed(
            db_session, ActivityFilters(activity_type=[ActivityType.TEAM_JOINED])
        )

        assert [a.activity_type for a in page.activities] == [ActivityType.TEAM_JOINED]

    def test_malformed_cursor_raises(self, db_session: Session) -> None:
        """A cursor that cannot be decoded is a validation error."""
        with pytest.raises(ActivityValidationException):
            ActivityService.get_feed(db_session, cursor="yesterday")
        with pytest.raises(ActivityValidationException):
            decode_cursor("2026-01-15T12:00:00+00:00|")

    def test_recent_activities_default_window(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Only the anomaly average window is returned by default."""
        old_clock = FixedClock(TEST_NOW - timedelta(hours=2))
        ActivityService.record_activity(db_session, _input(), old_clock, id_generator)
        recent = ActivityService.record_activity(
            db_session, _input(), fixed_clock, id_generator
        )

        items = ActivityService.get_recent_activities(db_session, clock=fixed_clock)

        assert [item.id for item in items] == [recent.id]
        assert items[0].created_at == TEST_NOW

    def test_stats_from_storage(
        self,
        db_session: Session,
        fixed_clock: FixedClock,
        id_generator: SequentialIdGenerator,
    ) -> None:
        """Stats cover all of today, not just the average window."""
        morning = FixedClock(TEST_NOW - timedelta(hours=10))
        ActivityService.record_activity(db_session, _input(), morning, id_generator)
        ActivityService.record_activity(
            db_session, _input(severity="critical"), fixed_clock, id_generator
        )

        stats = ActivityService.get_stats(
            db_session, AnomalyDetectionConfig(), fixed_clock
        )

        assert stats.total_activities_today == 2
        assert stats.recent_suspicious_count == 1
        assert stats.is_spike is False
