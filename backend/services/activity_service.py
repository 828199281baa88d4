"""
Activity feed and spike detection.

The module-level functions work on in-memory activity lists and take the
current time as an argument. ``ActivityService`` records activities and
loads them from storage.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import Clock, system_clock
from core.id_generator import IdGenerator, default_id_generator
from helpers.time_utils import ensure_utc, parse_datetime, start_of_day, window_start
from models.config import settings
from models.exceptions import ActivityValidationException, StorageException
from models.moderation_types import (
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from models.schemas import (
    ActivityFeedPage,
    ActivityFilters,
    ActivityItem,
    ActivityStats,
    AnomalyDetectionConfig,
    CreateActivityInput,
    SpikeDetectionResult,
    ValidationResult,
)
from repositories import db_models
from repositories.activity_repository import ActivityRepository

VALID_ACTIVITY_TYPES = frozenset(t.value for t in ActivityType)
VALID_TARGET_TYPES = frozenset(t.value for t in ActivityTargetType)
VALID_SEVERITIES = frozenset(s.value for s in ActivitySeverity)

CURSOR_SEPARATOR = "|"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def validate_activity_input(
    data: Union[CreateActivityInput, Mapping[str, Any]],
) -> ValidationResult:
    """
    Check an activity payload.

    activity_type, target_type, target_id and action are required;
    severity is optional but must be known when given.
    """
    if isinstance(data, CreateActivityInput):
        data = data.model_dump()
    data = {key: _plain(value) for key, value in data.items()}
    errors: list[str] = []

    activity_type = data.get("activity_type")
    if not activity_type:
        errors.append("activity_type is required")
    elif activity_type not in VALID_ACTIVITY_TYPES:
        errors.append(f"Invalid activity_type: {activity_type}")

    target_type = data.get("target_type")
    if not target_type:
        errors.append("target_type is required")
    elif target_type not in VALID_TARGET_TYPES:
        errors.append(f"Invalid target_type: {target_type}")

    target_id = data.get("target_id")
    if not target_id:
        errors.append("target_id is required")
    elif not isinstance(target_id, str) or not target_id.strip():
        errors.append("target_id must be a non-empty string")

    action = data.get("action")
    if not action:
        errors.append("action is required")
    elif not isinstance(action, str) or not action.strip():
        errors.append("action must be a non-empty string")

    severity = data.get("severity")
    if severity is not None and severity not in VALID_SEVERITIES:
        errors.append(f"Invalid severity: {severity}")

    return ValidationResult.from_errors(errors)


def create_activity_item(
    data: CreateActivityInput,
    clock: Clock = system_clock,
    id_generator: IdGenerator = default_id_generator,
) -> ActivityItem:
    """
    Build an activity from validated input.

    Raises:
        ActivityValidationException: If the input is invalid
    """
    validation = validate_activity_input(data)
    if not validation.valid:
        raise ActivityValidationException(validation.errors)

    return ActivityItem(
        id=id_generator.new_id("activity"),
        activity_type=ActivityType(data.activity_type),
        actor_id=data.actor_id,
        actor_username=data.actor_username,
        actor_email=data.actor_email,
        target_type=ActivityTargetType(data.target_type),
        target_id=data.target_id,
        target_name=data.target_name,
        action=data.action.strip(),
        metadata=dict(data.metadata),
        severity=ActivitySeverity(data.severity or ActivitySeverity.INFO),
        created_at=clock.now(),
    )


def sort_activities_by_date(items: Iterable[ActivityItem]) -> list[ActivityItem]:
    """Newest first. Returns a new list."""
    return sorted(items, key=lambda item: ensure_utc(item.created_at), reverse=True)


def are_activities_properly_ordered(items: Sequence[ActivityItem]) -> bool:
    return all(
        ensure_utc(earlier.created_at) >= ensure_utc(later.created_at)
        for earlier, later in zip(items, items[1:])
    )


def filter_activities(
    items: Iterable[ActivityItem], filters: ActivityFilters
) -> list[ActivityItem]:
    """Keep the activities matching every filter that is set."""
    date_from = ensure_utc(filters.date_from) if filters.date_from else None
    date_to = ensure_utc(filters.date_to) if filters.date_to else None

    def matches(item: ActivityItem) -> bool:
        if filters.activity_type and item.activity_type not in filters.activity_type:
            return False
        if filters.severity and item.severity not in filters.severity:
            return False
        if filters.actor_id and item.actor_id != filters.actor_id:
            return False
        if filters.target_type and item.target_type not in filters.target_type:
            return False
        if filters.target_id and item.target_id != filters.target_id:
            return False
        created_at = ensure_utc(item.created_at)
        if date_from and created_at < date_from:
            return False
        if date_to and created_at > date_to:
            return False
        return True

    return [item for item in items if matches(item)]


def _count_in_window(
    items: Sequence[ActivityItem], window_minutes: int, now: datetime
) -> int:
    start = window_start(now, window_minutes)
    return sum(1 for item in items if ensure_utc(item.created_at) >= start)


def calculate_activity_rate(
    items: Sequence[ActivityItem], window_minutes: int, now: datetime
) -> float:
    """
    Activities per minute over the trailing window.

    Returns 0 for an empty list or a non-positive window.
    """
    if not items or window_minutes <= 0:
        return 0.0
    return _count_in_window(items, window_minutes, now) / window_minutes


def detect_activity_spike(
    items: Sequence[ActivityItem],
    config: Optional[AnomalyDetectionConfig] = None,
    now: Optional[datetime] = None,
) -> SpikeDetectionResult:
    """
    Compare the current activity rate with the baseline rate.

    No spike is reported while the average window holds fewer than
    ``minimum_activities`` items, whatever the ratio.

    Args:
        items: Activities to examine
        config: Thresholds and window sizes (settings defaults when omitted)
        now: End of both windows (system time when omitted)

    Returns:
        SpikeDetectionResult
    """
    config = config or AnomalyDetectionConfig.from_settings()
    now = now or system_clock.now()

    current_rate = calculate_activity_rate(items, config.current_window_minutes, now)
    average_rate = calculate_activity_rate(items, config.average_window_minutes, now)
    ratio = current_rate / average_rate if average_rate > 0 else 0.0

    in_average_window = _count_in_window(items, config.average_window_minutes, now)
    if in_average_window < config.minimum_activities:
        is_spike = False
    else:
        is_spike = ratio >= config.spike_threshold

    return SpikeDetectionResult(
        is_spike=is_spike,
        current_rate=current_rate,
        average_rate=average_rate,
        threshold=config.spike_threshold,
        ratio=ratio,
    )


def is_valid_spike_detection(result: SpikeDetectionResult) -> bool:
    """A reported spike must meet the threshold; rates are never negative."""
    if result.current_rate < 0 or result.average_rate < 0 or result.ratio < 0:
        return False
    if result.is_spike:
        return result.ratio >= result.threshold
    return True


def get_activity_stats(
    items: Sequence[ActivityItem],
    config: Optional[AnomalyDetectionConfig] = None,
    now: Optional[datetime] = None,
) -> ActivityStats:
    """Dashboard counters for a list of activities."""
    config = config or AnomalyDetectionConfig.from_settings()
    now = now or system_clock.now()
    spike = detect_activity_spike(items, config, now)
    today = start_of_day(now)

    return ActivityStats(
        activities_per_minute=spike.current_rate,
        average_activities_per_minute=spike.average_rate,
        is_spike=spike.is_spike,
        recent_suspicious_count=sum(
            1
            for item in items
            if item.severity == ActivitySeverity.CRITICAL
            or item.activity_type == ActivityType.SUSPICIOUS_ACTIVITY
        ),
        total_activities_today=sum(
            1 for item in items if ensure_utc(item.created_at) >= today
        ),
        activities_by_type=dict(Counter(item.activity_type.value for item in items)),
        activities_by_severity=dict(Counter(item.severity.value for item in items)),
    )


def encode_cursor(item: ActivityItem) -> str:
    return f"{ensure_utc(item.created_at).isoformat()}{CURSOR_SEPARATOR}{item.id}"


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    """
    Split a feed cursor into (created_at, id).

    Raises:
        ActivityValidationException: If the cursor is malformed
    """
    timestamp, _, activity_id = cursor.partition(CURSOR_SEPARATOR)
    created_at = parse_datetime(timestamp)
    if created_at is None or not activity_id:
        raise ActivityValidationException([f"Invalid cursor: {cursor}"])
    return created_at, activity_id


def _to_item(record: db_models.ActivityFeedEntry) -> ActivityItem:
    return ActivityItem(
        id=record.id,
        activity_type=ActivityType(record.activity_type),
        actor_id=record.actor_id,
        actor_username=record.actor_username,
        actor_email=record.actor_email,
        target_type=ActivityTargetType(record.target_type),
        target_id=record.target_id,
        target_name=record.target_name,
        action=record.action,
        metadata=record.activity_metadata or {},
        severity=ActivitySeverity(record.severity),
        created_at=ensure_utc(record.created_at),
    )


class ActivityService:
    """Service for recording and reading the activity feed."""

    @staticmethod
    def record_activity(
        db: Session,
        data: CreateActivityInput,
        clock: Clock = system_clock,
        id_generator: IdGenerator = default_id_generator,
    ) -> ActivityItem:
        """
        Validate and store an activity.

        Raises:
            ActivityValidationException: If the input is invalid (nothing is written)
            StorageException: If the insert fails
        """
        item = create_activity_item(data, clock, id_generator)
        repo = ActivityRepository(db)
        try:
            repo.create(
                db_models.ActivityFeedEntry(
                    id=item.id,
                    activity_type=item.activity_type.value,
                    actor_id=item.actor_id,
                    actor_username=item.actor_username,
                    actor_email=item.actor_email,
                    target_type=item.target_type.value,
                    target_id=item.target_id,
                    target_name=item.target_name,
                    action=item.action,
                    activity_metadata=item.metadata,
                    severity=item.severity.value,
                    created_at=item.created_at,
                )
            )
        except SQLAlchemyError as exc:
            repo.rollback()
            logger.error(f"Failed to record activity {item.id}: {exc}")
            raise StorageException("Failed to record activity") from exc

        if item.severity != ActivitySeverity.INFO:
            logger.warning(
                f"Activity {item.activity_type.value} ({item.severity.value}) "
                f"on {item.target_type.value}/{item.target_id}"
            )
        return item

    @staticmethod
    def get_feed(
        db: Session,
        filters: Optional[ActivityFilters] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ActivityFeedPage:
        """
        Get one page of the feed, newest first.

        Args:
            db: Database session
            filters: Optional filters
            cursor: ``next_cursor`` of the previous page
            limit: Page size (ACTIVITY_FEED_PAGE_SIZE by default)

        Returns:
            ActivityFeedPage with ``next_cursor`` set when more rows exist
        """
        filters = filters or ActivityFilters()
        limit = limit or settings.ACTIVITY_FEED_PAGE_SIZE
        if limit < 1:
            raise ActivityValidationException(["limit must be a positive number"])

        records = ActivityRepository(db).get_feed(
            limit=limit + 1,
            cursor=decode_cursor(cursor) if cursor else None,
            activity_types=[t.value for t in filters.activity_type or []],
            severities=[s.value for s in filters.severity or []],
            actor_id=filters.actor_id,
            target_types=[t.value for t in filters.target_type or []],
            target_id=filters.target_id,
            start_date=filters.date_from,
            end_date=filters.date_to,
        )
        has_more = len(records) > limit
        activities = [_to_item(record) for record in records[:limit]]
        return ActivityFeedPage(
            activities=activities,
            has_more=has_more,
            next_cursor=encode_cursor(activities[-1]) if has_more else None,
        )

    @staticmethod
    def get_recent_activities(
        db: Session,
        since: Optional[datetime] = None,
        clock: Clock = system_clock,
        activity_types: Optional[list[ActivityType]] = None,
    ) -> list[ActivityItem]:
        """
        Get activities created at or after ``since``, newest first.

        Defaults to the anomaly average window ending now.
        """
        if since is None:
            since = window_start(clock.now(), settings.ANOMALY_AVERAGE_WINDOW_MINUTES)
        records = ActivityRepository(db).get_since(
            since, activity_types=[t.value for t in activity_types or []]
        )
        return [_to_item(record) for record in records]

    @staticmethod
    def get_stats(
        db: Session,
        config: Optional[AnomalyDetectionConfig] = None,
        clock: Clock = system_clock,
    ) -> ActivityStats:
        """Dashboard counters over today's activity and the average window."""
        config = config or AnomalyDetectionConfig.from_settings()
        now = clock.now()
        since = min(start_of_day(now), window_start(now, config.average_window_minutes))
        items = ActivityService.get_recent_activities(db, since=since, clock=clock)
        return get_activity_stats(items, config, now)
