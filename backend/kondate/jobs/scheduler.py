"""
Background job scheduler using APScheduler.

This runs scheduled tasks within the FastAPI process.
For more reliability, you can also use system crontab to hit the /api/cron endpoints.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from kondate.config import get_settings
from kondate.jobs.drafts import archive_stale_drafts
from kondate.jobs.expiry import send_expiry_alerts

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def start_scheduler():
    """Start the background scheduler with all enabled jobs."""
    settings = get_settings()
    tz = settings.timezone

    if settings.feature_expiry_alerts:
        scheduler.add_job(
            send_expiry_alerts,
            CronTrigger(hour=settings.expiry_alert_hour, minute=0, timezone=tz),
            id="expiry_alerts",
            name="Fridge expiry alerts",
            replace_existing=True,
        )

    if settings.feature_stale_draft_archiving:
        # Just after local midnight, when yesterday's drafts go stale
        scheduler.add_job(
            archive_stale_drafts,
            CronTrigger(hour=0, minute=10, timezone=tz),
            id="archive_stale_drafts",
            name="Archive stale shopping drafts",
            replace_existing=True,
        )

    scheduler.start()
    logger.info("Scheduler started with jobs: %s", [job.id for job in scheduler.get_jobs()])


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown")


def get_scheduler_status() -> dict:
    """Running flag plus each job's id and next run time (ISO, or None when paused)."""
    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            }
            for job in scheduler.get_jobs()
        ],
    }
