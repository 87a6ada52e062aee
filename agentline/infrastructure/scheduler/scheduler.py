"""APScheduler integration for the in-process job queue trigger."""

from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from agentline.core.logging import get_logger

logger = get_logger(__name__)

QUEUE_JOB_ID = "webhook_job_queue"

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine multiple missed runs into one
                "max_instances": 1,  # Never overlap two queue passes
                "misfire_grace_time": 60,
            },
        )
    return _scheduler


async def queue_pass_job(run_pass: Callable[[], Awaitable[Any]]) -> None:
    """Job function: one webhook job queue pass."""
    logger.info("Scheduled queue pass triggered")
    try:
        await run_pass()
    except Exception as e:
        logger.error("Scheduled queue pass failed", error=str(e))


def schedule_queue_worker(
    run_pass: Callable[[], Awaitable[Any]], interval_seconds: int
) -> None:
    """Register the periodic queue pass (replaces an existing one).

    Args:
        run_pass: Coroutine function running one worker pass
        interval_seconds: Period; 0 or less removes the job
    """
    scheduler = get_scheduler()

    if scheduler.get_job(QUEUE_JOB_ID):
        scheduler.remove_job(QUEUE_JOB_ID)

    if interval_seconds <= 0:
        return

    scheduler.add_job(
        queue_pass_job,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=QUEUE_JOB_ID,
        name="Webhook job queue",
        kwargs={"run_pass": run_pass},
        replace_existing=True,
    )
    logger.info("Scheduled queue worker", interval_seconds=interval_seconds)


def start_scheduler() -> None:
    """Start the scheduler."""
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler."""
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def get_scheduler_status() -> dict[str, Any]:
    """Get current scheduler status.

    Returns:
        Status dictionary with job information
    """
    scheduler = get_scheduler()

    jobs = []
    for job in scheduler.get_jobs():
        next_run = job.next_run_time
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.isoformat() if next_run else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
        "job_count": len(jobs),
    }
