"""Tests for suspicious activity pattern detection."""

from datetime import datetime, timezone

import pytest

from models.moderation_types import ActivityType, SuspiciousPatternType
from models.schemas import SuspiciousActivityResult
from services.suspicious_activity_service import (
    SUSPICIOUS_THRESHOLDS,
    detect_suspicious_activity,
    is_valid_suspicious_detection,
    scan_actors,
    scan_all_patterns,
)

TEST_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class TestDetectSuspiciousActivity:
    """Tests for detect_suspicious_activity."""

    def test_rapid_registrations_at_threshold(self, make_activities) -> None:
        """Ten registrations in five minutes is exactly the threshold."""
        items = make_activities(10, ActivityType.REGISTRATION_CREATED, minutes_ago=2)

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.RAPID_REGISTRATIONS, now=TEST_NOW
        )

        assert result.is_detected is True
        assert result.pattern_type == SuspiciousPatternType.RAPID_REGISTRATIONS
        assert result.count == 10
        assert result.threshold == 10
        assert result.time_window_minutes == 5
        assert result.details == (
            "Detected 10 rapid registrations events in 5 minutes (threshold: 10)"
        )

    def test_one_below_threshold(self, make_activities) -> None:
        """Nine registrations are not enough."""
        items = make_activities(9, ActivityType.REGISTRATION_CREATED, minutes_ago=2)

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.RAPID_REGISTRATIONS, now=TEST_NOW
        )

        assert result.is_detected is False
        assert result.pattern_type is None
        assert result.count == 9
        assert result.details == (
            "No suspicious pattern detected (9/10 in 5 minutes)"
        )

    def test_ignores_activity_outside_window(self, make_activities) -> None:
        """Only activity inside the pattern window counts."""
        items = make_activities(
            5, ActivityType.REGISTRATION_CREATED, minutes_ago=2
        ) + make_activities(10, ActivityType.REGISTRATION_CREATED, minutes_ago=6)

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.RAPID_REGISTRATIONS, now=TEST_NOW
        )

        assert result.count == 5
        assert result.is_detected is False

    def test_ignores_other_activity_types(self, make_activities) -> None:
        """Unrelated activity types never count toward a pattern."""
        items = make_activities(30, ActivityType.HACKATHON_CREATED)

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.SPAM_SUBMISSIONS, now=TEST_NOW
        )

        assert result.count == 0

    def test_multi_type_pattern(self, make_activities) -> None:
        """Team joins and team formations both count as team joins."""
        items = make_activities(8, ActivityType.TEAM_JOINED) + make_activities(
            7, ActivityType.TEAM_FORMED
        )

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.MASS_TEAM_JOINS, now=TEST_NOW
        )

        assert result.count == 15
        assert result.is_detected is True

    def test_actor_filter(self, make_activities) -> None:
        """With an actor id only that actor's activity counts."""
        items = make_activities(
            5, ActivityType.REPORT_FILED, minutes_ago=30, actor_id="u1"
        ) + make_activities(4, ActivityType.REPORT_FILED, actor_id="u2")

        result = detect_suspicious_activity(
            items, SuspiciousPatternType.REPEATED_REPORTS, actor_id="u2", now=TEST_NOW
        )

        assert result.count == 4
        assert result.actor_id == "u2"
        assert result.is_detected is False

    def test_accepts_string_pattern(self, make_activities) -> None:
        """Pattern names may be given as plain strings."""
        items = make_activities(5, ActivityType.USER_SIGNUP)

        result = detect_suspicious_activity(items, "bulk_account_creation", now=TEST_NOW)

        assert result.pattern_type == SuspiciousPatternType.BULK_ACCOUNT_CREATION

    def test_every_pattern_has_threshold(self) -> None:
        """Each pattern is configured."""
        assert set(SUSPICIOUS_THRESHOLDS) == set(SuspiciousPatternType)


class TestIsValidSuspiciousDetection:
    """Tests for is_valid_suspicious_detection."""

    @pytest.mark.parametrize(
        ("is_detected", "count", "expected"),
        [(True, 10, True), (True, 9, False), (False, 9, True), (False, 10, False)],
    )
    def test_consistency(self, is_detected: bool, count: int, expected: bool) -> None:
        """Detection must agree with the count and threshold."""
        result = SuspiciousActivityResult(
            is_detected=is_detected,
            count=count,
            threshold=10,
            time_window_minutes=5,
            details="",
        )
        assert is_valid_suspicious_detection(result) is expected


class TestScans:
    """Tests for scan_all_patterns and scan_actors."""

    def test_scan_all_returns_only_detections(self, make_activities) -> None:
        """Only fired patterns are returned."""
        items = make_activities(5, ActivityType.REPORT_FILED, minutes_ago=45)
        items += make_activities(3, ActivityType.USER_SIGNUP)

        results = scan_all_patterns(items, now=TEST_NOW)

        assert [r.pattern_type for r in results] == [
            SuspiciousPatternType.REPEATED_REPORTS
        ]

    def test_scan_all_with_nothing_suspicious(self, make_activities) -> None:
        """Quiet traffic yields no detections."""
        assert scan_all_patterns(make_activities(2), now=TEST_NOW) == []

    def test_scan_actors(self, make_activities) -> None:
        """Each actor is checked on its own."""
        items = make_activities(5, ActivityType.REPORT_FILED, actor_id="noisy")
        items += make_activities(2, ActivityType.REPORT_FILED, actor_id="quiet")
        items += make_activities(9, ActivityType.REPORT_FILED)

        results = scan_actors(items, SuspiciousPatternType.REPEATED_REPORTS, TEST_NOW)

        assert [(r.actor_id, r.count) for r in results] == [("noisy", 5)]
