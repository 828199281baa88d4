"""
Background Task Scheduler for the moderation scan.

Uses APScheduler for reliable scheduled task execution.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from models.config import settings
from repositories.database import SessionLocal

# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def moderation_scan_job() -> None:
    """
    Scheduled job to run the moderation scan.

    Creates its own database session for isolation.
    """
    from tasks.moderation_scan import run_moderation_scan

    logger.info("Running scheduled moderation scan")

    db = SessionLocal()
    try:
        summary = run_moderation_scan(db)
        logger.info(f"Moderation scan completed: {summary}")
    except Exception as e:
        logger.error(f"Moderation scan failed: {e}")
        raise
    finally:
        db.close()


def setup_scheduler() -> bool:
    """
    Configure and start the background scheduler.

    Does nothing unless SCHEDULER_ENABLED is set.

    Returns:
        True when the scheduler was started
    """
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("Background scheduler disabled")
        return False

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return False

    scheduler = BackgroundScheduler(timezone="UTC")
    interval = settings.MODERATION_SCAN_INTERVAL_MINUTES
    scheduler.add_job(
        moderation_scan_job,
        IntervalTrigger(minutes=interval),
        id="moderation_scan",
        name="Moderation Scan",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=interval * 60,
    )

    scheduler.start()
    logger.info(f"Background scheduler started: moderation scan every {interval} min")
    return True


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")
    scheduler = None


def get_scheduler_status() -> dict:
    """Get current scheduler status for monitoring."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
            }
        )

    return {"running": scheduler.running, "jobs": jobs}
