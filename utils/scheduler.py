"""Scheduler utilities for session timers and periodic maintenance."""

import atexit
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from features.quiet_hours import QuietHours
    from features.stock_tracker import StockTracker
    from utils.config import Config
    from utils.rate_limiter import UserRateLimiter

logger = logging.getLogger("GagStock.Scheduler")


def cancel_job(handle: Any) -> bool:
    """
    Cancel a pending one-shot job.

    Returns False when the handle is empty or the job already ran or was
    removed; neither is an error.
    """
    if handle is None:
        return False
    try:
        handle.remove()
        return True
    except JobLookupError:
        return False


def create_scheduler(timezone: Any) -> BackgroundScheduler:
    """Build the background scheduler that runs every timer in the process."""
    return BackgroundScheduler(
        timezone=timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )


def create_cleanup_job(
    tracker: "StockTracker", rate_limiter: Optional["UserRateLimiter"] = None
) -> Callable[[], None]:
    """
    Factory for the periodic cleanup sweep.
    The wrapper logs and swallows errors so one bad sweep does not stop the next.
    """

    def job_wrapper() -> None:
        logger.info("Starting session cleanup sweep...")
        try:
            removed = tracker.cleanup_inactive()
            if rate_limiter is not None:
                rate_limiter.prune_idle()
            logger.info(f"Session cleanup sweep completed, {len(removed)} session(s) removed.")
        except Exception as e:
            logger.error(f"Error in session cleanup sweep: {e}", exc_info=True)

    return job_wrapper


def setup_scheduler(
    scheduler: BackgroundScheduler,
    tracker: "StockTracker",
    config: "Config",
    quiet_hours: Optional["QuietHours"] = None,
    rate_limiter: Optional["UserRateLimiter"] = None,
) -> Optional[BackgroundScheduler]:
    """Register the maintenance jobs and start the scheduler."""
    scheduler.add_job(
        func=create_cleanup_job(tracker, rate_limiter),
        trigger=IntervalTrigger(minutes=config.CLEANUP_INTERVAL_MINUTES),
        id="session_cleanup",
        name="Inactive Session Cleanup",
        replace_existing=True,
    )

    if quiet_hours is not None and config.QUIET_HOURS_ENABLED:
        quiet_hours.register(scheduler)

    try:
        scheduler.start()
        logger.info(
            f"APScheduler started successfully - cleanup every {config.CLEANUP_INTERVAL_MINUTES} minutes"
        )

        # Ensure timers stop when the app shuts down
        atexit.register(lambda: shutdown_scheduler(scheduler, tracker))

        return scheduler

    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}", exc_info=True)
        return None


def shutdown_scheduler(scheduler: BackgroundScheduler, tracker: "StockTracker") -> None:
    logger.info("Shutting down scheduler and active sessions...")
    tracker.shutdown()
    if scheduler.running:
        scheduler.shutdown(wait=False)
