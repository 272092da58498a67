"""
Nightly quiet hours.

Between the configured start and end times the bot stops tracking: every
active session owner is told the bot is resting, their sessions end, and
``gagstock``/``refresh`` answer with a resting message until the window
closes.
"""

import logging
from datetime import datetime, time
from typing import Any, Optional

from apscheduler.triggers.cron import CronTrigger

from features.stock_tracker import StockTracker
from services.auth_service import AuthService
from services.notification_service import NotificationService
from utils.config import Config
from utils.messages import QUIET_END_MESSAGE, QUIET_START_MESSAGE

logger = logging.getLogger("GagStock.QuietHours")


class QuietHours:
    """Takes the bot offline for a nightly window."""

    def __init__(
        self,
        tracker: StockTracker,
        notification_service: NotificationService,
        auth_service: AuthService,
        config: Config,
    ) -> None:
        self.tracker = tracker
        self.notifier = notification_service
        self.auth = auth_service
        self.config = config
        (start_h, start_m), (end_h, end_m) = config.quiet_window
        self.start = time(start_h, start_m)
        self.end = time(end_h, end_m)

    def is_quiet_time(self, now: Optional[datetime] = None) -> bool:
        """Whether ``now`` falls inside the window, which may wrap past midnight."""
        current = (now or self.tracker.now()).time()
        if self.start <= self.end:
            return self.start <= current < self.end
        return current >= self.start or current < self.end

    def go_offline(self) -> int:
        """
        Start quiet hours: notify and end every active session.

        Returns:
            Number of sessions ended
        """
        self.tracker.set_online(False)
        user_ids = self.tracker.active_user_ids()
        logger.info(f"Quiet hours started, ending {len(user_ids)} session(s)")

        for user_id in user_ids:
            try:
                if self.config.VOICE_MESSAGE_URL:
                    self.notifier.send_audio(user_id, self.config.VOICE_MESSAGE_URL)
                self.notifier.send_message(user_id, QUIET_START_MESSAGE)
            except Exception as e:
                logger.error(f"Failed to notify user {user_id} of quiet hours: {e}", exc_info=True)
            self.tracker.stop(user_id)
        return len(user_ids)

    def go_online(self) -> None:
        self.tracker.set_online(True)
        logger.info("Quiet hours ended, bot back online")
        if self.auth.admin_user_id:
            self.notifier.send_message(self.auth.admin_user_id, QUIET_END_MESSAGE)

    def register(self, scheduler: Any) -> None:
        """Add the start and end cron jobs and apply the current state."""
        tz = self.config.timezone
        scheduler.add_job(
            func=self.go_offline,
            trigger=CronTrigger(hour=self.start.hour, minute=self.start.minute, timezone=tz),
            id="quiet_hours_start",
            name="Quiet Hours Start",
            replace_existing=True,
        )
        scheduler.add_job(
            func=self.go_online,
            trigger=CronTrigger(hour=self.end.hour, minute=self.end.minute, timezone=tz),
            id="quiet_hours_end",
            name="Quiet Hours End",
            replace_existing=True,
        )

        if self.is_quiet_time():
            self.tracker.set_online(False)
            logger.info("Starting inside quiet hours, bot is offline")
        logger.info(
            f"Quiet hours scheduled {self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')} ({tz})"
        )
