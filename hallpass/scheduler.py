# hallpass/scheduler.py
"""
Background task scheduler.

Uses APScheduler to run periodic background jobs for:
- Expiring stale waitlist entries (only when a TTL is configured)
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from hallpass.background_tasks.waitlist_tasks import expire_stale_entries
from hallpass.core.config import settings

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


def _on_job_missed(event):
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler():
    """
    Initialize the background scheduler with all periodic tasks.

    Called once from the application lifespan.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # Only one instance of each job at a time
            'misfire_grace_time': 60
        }
    )

    if settings.WAITLIST_ENTRY_TTL_MINUTES:
        scheduler.add_job(
            func=expire_stale_entries,
            trigger=IntervalTrigger(minutes=settings.EXPIRY_SWEEP_MINUTES),
            id='expire_stale_entries',
            name='Expire Stale Waitlist Entries',
            replace_existing=True
        )
        logger.info(
            f"Scheduled job: expire_stale_entries (every {settings.EXPIRY_SWEEP_MINUTES} minutes, "
            f"ttl {settings.WAITLIST_ENTRY_TTL_MINUTES} minutes)"
        )
    else:
        logger.info("WAITLIST_ENTRY_TTL_MINUTES not set; waitlist entries never expire")

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    scheduler.start()
    logger.info("Background scheduler started successfully")

    return scheduler


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler shutdown complete")
        scheduler = None


def get_scheduler_status():
    """Current status of all scheduled jobs, for the health endpoint."""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs
    }
