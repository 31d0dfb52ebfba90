"""
Background scheduler for the notification outbox and the waitlist sweep.

Two jobs run in the API process:
- drain the notification outbox every minute;
- expire stale waitlist offers every few minutes (offers are also expired
  lazily on read, so a late sweep only delays the cascade to the next entry).
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore

from core.constants import NOTIFICATION_SCHEDULER_MAX_INSTANCES, WAITLIST_SWEEP_INTERVAL_MINUTES
from core.database import get_db_context
from services.notification_service import NotificationService
from services.waitlist_service import WaitlistService
from utils.datetime_utils import CLINIC_TZ

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """
    Scheduler for outbox delivery and waitlist expiry.

    Database sessions are created fresh for each run to avoid stale session
    issues.
    """

    def __init__(self):
        # Configure scheduler to use the clinic timezone so cron fields match local time
        self.scheduler = AsyncIOScheduler(timezone=CLINIC_TZ)
        self._is_started = False

    async def start_scheduler(self) -> None:
        """
        Start the background jobs.

        This should be called during application startup.
        """
        if self._is_started:
            logger.warning("Notification scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._send_pending_notifications,
            CronTrigger(minute="*"),  # Run every minute
            id="send_pending_notifications",
            name="Send pending notifications",
            max_instances=NOTIFICATION_SCHEDULER_MAX_INSTANCES,  # Prevent overlapping runs
            replace_existing=True
        )
        self.scheduler.add_job(  # type: ignore
            self._expire_stale_waitlist_entries,
            CronTrigger(minute=f"*/{WAITLIST_SWEEP_INTERVAL_MINUTES}"),
            id="expire_stale_waitlist_entries",
            name="Expire stale waitlist offers",
            max_instances=NOTIFICATION_SCHEDULER_MAX_INSTANCES,
            replace_existing=True
        )

        self.scheduler.start()
        self._is_started = True
        logger.info("Notification scheduler started")

        # Run immediately on startup to catch up on anything missed while down
        await self._expire_stale_waitlist_entries()
        await self._send_pending_notifications()

    async def stop_scheduler(self) -> None:
        """
        Stop the background scheduler.

        This should be called during application shutdown.
        """
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Notification scheduler stopped")

    async def _send_pending_notifications(self) -> None:
        """Drain the outbox with a fresh database session."""
        try:
            with get_db_context() as db:
                processed = NotificationService.send_pending(db)
                if processed:
                    logger.info(f"Processed {processed} pending notifications")
        except Exception as e:
            logger.exception(f"Error sending pending notifications: {e}")

    async def _expire_stale_waitlist_entries(self) -> None:
        """Expire stale waitlist offers with a fresh database session."""
        try:
            with get_db_context() as db:
                WaitlistService.expire_stale_entries(db)
        except Exception as e:
            logger.exception(f"Error expiring stale waitlist entries: {e}")


# Global scheduler instance
_notification_scheduler: Optional[NotificationScheduler] = None


def get_notification_scheduler() -> NotificationScheduler:
    """
    Get the global notification scheduler instance.

    Returns:
        The global notification scheduler instance
    """
    global _notification_scheduler
    if _notification_scheduler is None:
        _notification_scheduler = NotificationScheduler()
    return _notification_scheduler


async def start_notification_scheduler() -> None:
    """
    Start the global notification scheduler.

    This should be called during application startup.
    """
    scheduler = get_notification_scheduler()
    await scheduler.start_scheduler()


async def stop_notification_scheduler() -> None:
    """
    Stop the global notification scheduler.

    This should be called during application shutdown.
    """
    global _notification_scheduler
    if _notification_scheduler:
        await _notification_scheduler.stop_scheduler()
