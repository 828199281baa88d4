#!/usr/bin/env python3
"""
Periodic moderation scan.

- Recalculates organizer trust scores and auto-flags
- Runs every suspicious pattern detector over recent activity
- Runs the spike detector over the anomaly average window
- Records a critical ``suspicious_activity`` feed entry per detected pattern

This script can be run:
- Via scheduler (core/scheduler.py, when SCHEDULER_ENABLED)
- Via cron: */15 * * * * cd /path/to/backend && python -m tasks.moderation_scan
- Manually: python -m tasks.moderation_scan
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

# Add backend to path for imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from loguru import logger  # noqa: E402

from core.clock import Clock, system_clock  # noqa: E402
from core.correlation import operation_scope  # noqa: E402
from core.id_generator import IdGenerator, default_id_generator  # noqa: E402
from helpers.time_utils import ensure_utc, format_iso8601, window_start  # noqa: E402
from models.moderation_types import (  # noqa: E402
    ActivitySeverity,
    ActivityTargetType,
    ActivityType,
)
from models.schemas import (  # noqa: E402
    ActivityItem,
    AnomalyDetectionConfig,
    CreateActivityInput,
    SuspiciousActivityResult,
)
from repositories.database import SessionLocal  # noqa: E402
from services.activity_service import (  # noqa: E402
    ActivityService,
    detect_activity_spike,
)
from services.suspicious_activity_service import (  # noqa: E402
    SUSPICIOUS_THRESHOLDS,
    scan_all_patterns,
)
from services.trust_score_service import TrustScoreService  # noqa: E402

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _already_reported(
    activities: list[ActivityItem], detection: SuspiciousActivityResult, now: datetime
) -> bool:
    """True if this pattern was already recorded inside its own window."""
    since = window_start(now, detection.time_window_minutes)
    return any(
        item.activity_type == ActivityType.SUSPICIOUS_ACTIVITY
        and item.target_id == detection.pattern_type.value
        and ensure_utc(item.created_at) >= since
        for item in activities
    )


def run_moderation_scan(
    db: "Session | None" = None,
    clock: Clock = system_clock,
    id_generator: IdGenerator = default_id_generator,
    config: AnomalyDetectionConfig | None = None,
) -> dict[str, Any]:
    """
    Run one moderation scan.

    Args:
        db: Optional database session. If not provided, creates a new session.
        clock: Time source for windows and timestamps
        id_generator: Source of ids for recorded activities
        config: Spike detection settings (from settings when omitted)

    Returns:
        Summary with organizer, flag, pattern and spike counts
    """
    should_close = db is None
    if db is None:
        db = SessionLocal()

    config = config or AnomalyDetectionConfig.from_settings()

    try:
        with operation_scope():
            logger.info("Starting moderation scan")
            now = clock.now()

            organizers = TrustScoreService.recalculate_all_organizers(db, clock)
            flagged = [record for record in organizers if record.is_flagged]

            # Load enough history for the longest pattern window
            lookback = max(
                config.average_window_minutes,
                *(t.time_window_minutes for t in SUSPICIOUS_THRESHOLDS.values()),
            )
            activities = ActivityService.get_recent_activities(
                db, since=window_start(now, lookback), clock=clock
            )

            detections = scan_all_patterns(activities, now=now)
            for detection in detections:
                if _already_reported(activities, detection, now):
                    continue
                ActivityService.record_activity(
                    db,
                    CreateActivityInput(
                        activity_type=ActivityType.SUSPICIOUS_ACTIVITY.value,
                        target_type=ActivityTargetType.SYSTEM.value,
                        target_id=detection.pattern_type.value,
                        target_name=detection.pattern_type.value.replace("_", " "),
                        action=detection.details,
                        metadata={
                            "pattern_type": detection.pattern_type.value,
                            "count": detection.count,
                            "threshold": detection.threshold,
                            "time_window_minutes": detection.time_window_minutes,
                        },
                        severity=ActivitySeverity.CRITICAL.value,
                    ),
                    clock,
                    id_generator,
                )

            spike = detect_activity_spike(activities, config, now)
            if spike.is_spike:
                logger.warning(
                    f"Activity spike: {spike.current_rate:.2f}/min vs "
                    f"{spike.average_rate:.2f}/min average (ratio {spike.ratio:.2f})"
                )

            summary = {
                "scanned_at": format_iso8601(now),
                "organizers_scored": len(organizers),
                "organizers_flagged": len(flagged),
                "patterns_detected": [d.pattern_type.value for d in detections],
                "is_spike": spike.is_spike,
                "spike_ratio": spike.ratio,
            }
            logger.info(f"Moderation scan finished: {summary}")
            return summary

    except Exception as e:
        logger.error(f"Moderation scan failed: {e}")
        raise
    finally:
        if should_close:
            db.close()


if __name__ == "__main__":
    from core.logging_config import configure_logging

    configure_logging()

    try:
        result = run_moderation_scan()
        print(f"Moderation scan completed: {result}")
        sys.exit(0)
    except Exception as e:
        print(f"Moderation scan failed: {e}", file=sys.stderr)
        sys.exit(1)
