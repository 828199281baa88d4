"""
Suspicious activity pattern detection.

Each pattern counts activities of a few types inside a fixed lookback
window and fires once the count reaches its threshold.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import NamedTuple, Optional

from loguru import logger

from core.clock import system_clock
from helpers.time_utils import ensure_utc, window_start
from models.moderation_types import ActivityType, SuspiciousPatternType
from models.schemas import ActivityItem, SuspiciousActivityResult


class PatternThreshold(NamedTuple):
    count: int
    time_window_minutes: int
    activity_types: tuple[ActivityType, ...]


SUSPICIOUS_THRESHOLDS: dict[SuspiciousPatternType, PatternThreshold] = {
    SuspiciousPatternType.RAPID_REGISTRATIONS: PatternThreshold(
        10, 5, (ActivityType.REGISTRATION_CREATED,)
    ),
    SuspiciousPatternType.BULK_ACCOUNT_CREATION: PatternThreshold(
        5, 10, (ActivityType.USER_SIGNUP,)
    ),
    SuspiciousPatternType.SPAM_SUBMISSIONS: PatternThreshold(
        20, 30, (ActivityType.SUBMISSION_CREATED, ActivityType.SUBMISSION_UPDATED)
    ),
    # No login events in the feed; signups stand in for them
    SuspiciousPatternType.UNUSUAL_LOGIN_PATTERN: PatternThreshold(
        10, 5, (ActivityType.USER_SIGNUP,)
    ),
    SuspiciousPatternType.MASS_TEAM_JOINS: PatternThreshold(
        15, 10, (ActivityType.TEAM_JOINED, ActivityType.TEAM_FORMED)
    ),
    SuspiciousPatternType.REPEATED_REPORTS: PatternThreshold(
        5, 60, (ActivityType.REPORT_FILED,)
    ),
}


def detect_suspicious_activity(
    items: Sequence[ActivityItem],
    pattern_type: SuspiciousPatternType,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SuspiciousActivityResult:
    """
    Check one pattern against a list of activities.

    Args:
        items: Activities to examine
        pattern_type: Pattern to check
        actor_id: Only count this actor's activities when given
        now: End of the lookback window (system time when omitted)

    Returns:
        SuspiciousActivityResult; detected iff count >= threshold
    """
    pattern_type = SuspiciousPatternType(pattern_type)
    threshold = SUSPICIOUS_THRESHOLDS[pattern_type]
    start = window_start(now or system_clock.now(), threshold.time_window_minutes)

    count = sum(
        1
        for item in items
        if item.activity_type in threshold.activity_types
        and ensure_utc(item.created_at) >= start
        and (actor_id is None or item.actor_id == actor_id)
    )
    is_detected = count >= threshold.count
    label = pattern_type.value.replace("_", " ")

    if is_detected:
        details = (
            f"Detected {count} {label} events in {threshold.time_window_minutes} "
            f"minutes (threshold: {threshold.count})"
        )
    else:
        details = (
            f"No suspicious pattern detected ({count}/{threshold.count} in "
            f"{threshold.time_window_minutes} minutes)"
        )

    return SuspiciousActivityResult(
        is_detected=is_detected,
        pattern_type=pattern_type if is_detected else None,
        actor_id=actor_id,
        count=count,
        threshold=threshold.count,
        time_window_minutes=threshold.time_window_minutes,
        details=details,
    )


def is_valid_suspicious_detection(result: SuspiciousActivityResult) -> bool:
    """Detected results must meet the threshold; undetected ones must not."""
    if result.is_detected:
        return result.count >= result.threshold
    return result.count < result.threshold


def scan_all_patterns(
    items: Sequence[ActivityItem],
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[SuspiciousActivityResult]:
    """Run every pattern and return only the ones that fired."""
    now = now or system_clock.now()
    detected = [
        result
        for result in (
            detect_suspicious_activity(items, pattern_type, actor_id, now)
            for pattern_type in SuspiciousPatternType
        )
        if result.is_detected
    ]
    for result in detected:
        logger.warning(f"Suspicious activity: {result.details}")
    return detected


def scan_actors(
    items: Sequence[ActivityItem],
    pattern_type: SuspiciousPatternType,
    now: Optional[datetime] = None,
) -> list[SuspiciousActivityResult]:
    """Run one pattern separately for each actor that has matching activity."""
    now = now or system_clock.now()
    threshold = SUSPICIOUS_THRESHOLDS[SuspiciousPatternType(pattern_type)]
    actor_ids = sorted(
        {
            item.actor_id
            for item in items
            if item.actor_id is not None
            and item.activity_type in threshold.activity_types
        }
    )
    return [
        result
        for result in (
            detect_suspicious_activity(items, pattern_type, actor_id, now)
            for actor_id in actor_ids
        )
        if result.is_detected
    ]
