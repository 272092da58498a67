"""
Per-user stock tracking for the GagStock Alerts bot.

Each tracked user owns a chain of one-shot timers aligned to a five-minute
grid. When a timer fires the tracker fetches the shop stock and weather,
builds the user's report, compares it to the fingerprint of the last report
sent and notifies the user only when something changed. The next timer is
armed after the cycle completes, so cycles for one user never overlap.
"""

import itertools
import logging
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from features.fingerprint_cache import FingerprintCache, compute_fingerprint
from features.restock_clock import next_restocks, next_scheduled_time, now_in, seconds_until
from features.session_store import Session, SessionStore
from services.notification_service import (
    REFRESH_QUICK_REPLIES,
    STOCK_QUICK_REPLIES,
    NotificationService,
)
from type_definitions.stock_types import (
    CATEGORIES,
    PRIMARY_CATEGORIES,
    SECONDARY_CATEGORIES,
    Section,
    StockItem,
    StockSnapshot,
)
from utils.config import APP_VERSION, Config
from utils.formatters import build_refresh_message, build_stock_message
from utils.stock_client import StockClient, StockFetchError

logger = logging.getLogger("GagStock.StockTracker")

DIVINE_ITEMS = ("beanstalk", "basic sprinkler", "master sprinkler", "godly sprinkler", "ember lily")


class CycleResult(Enum):
    """Outcome of one fetch-and-notify cycle."""

    SENT = "sent"
    DUPLICATE = "duplicate"
    NO_MATCH = "no_match"
    DO_NOT_DISTURB = "do_not_disturb"
    CANCELLED = "cancelled"
    FAILED = "failed"
    SEND_FAILED = "send_failed"


def matches_filters(name: str, filters: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(f in lowered for f in filters)


def filter_items(items: Sequence[StockItem], filters: Sequence[str]) -> List[StockItem]:
    return [item for item in items if matches_filters(item["name"], filters)]


def build_sections(snapshot: StockSnapshot, filters: Sequence[str]) -> Tuple[List[Section], bool]:
    """
    Group a snapshot into report sections for a session.

    Without filters every category is reported and the report counts as
    matched. With filters only gear and seed are filtered; when at least one
    of them has a match, eggs, cosmetics and honey are appended unfiltered.

    Returns:
        Tuple of (sections, matched)
    """
    if not filters:
        return [(category, list(snapshot[category])) for category in CATEGORIES], True  # type: ignore[literal-required]

    sections: List[Section] = []
    matched = False
    for category in PRIMARY_CATEGORIES:
        items = filter_items(snapshot[category], filters)  # type: ignore[literal-required]
        if items:
            matched = True
            sections.append((category, items))

    if matched:
        for category in SECONDARY_CATEGORIES:
            sections.append((category, list(snapshot[category])))  # type: ignore[literal-required]
    return sections, matched


def build_refresh_sections(snapshot: StockSnapshot, filters: Sequence[str]) -> List[Section]:
    """Sections for a manual refresh, where filters apply to every category."""
    if not filters:
        return [(category, list(snapshot[category])) for category in CATEGORIES]  # type: ignore[literal-required]
    return [
        (category, filter_items(snapshot[category], filters))  # type: ignore[literal-required]
        for category in CATEGORIES
    ]


def find_divine_items(items: Sequence[StockItem]) -> List[StockItem]:
    """Divine items with a positive quantity."""
    return [
        item
        for item in items
        if item["value"] > 0 and matches_filters(item["name"], DIVINE_ITEMS)
    ]


def snapshot_items(snapshot: StockSnapshot) -> List[StockItem]:
    return [item for category in CATEGORIES for item in snapshot[category]]  # type: ignore[literal-required]


class StockTracker:
    """Owns session timers and runs fetch-and-notify cycles."""

    def __init__(
        self,
        sessions: SessionStore,
        fingerprints: FingerprintCache,
        stock_client: StockClient,
        notification_service: NotificationService,
        scheduler: Any,
        config: Config,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the tracker with its collaborators.

        Args:
            sessions: Session store; its teardown also clears fingerprints
            fingerprints: Duplicate-suppression cache
            stock_client: Remote stock and weather client
            notification_service: Messenger sender
            scheduler: APScheduler scheduler used for one-shot timers
            config: Application configuration
            now: Clock returning an aware datetime, defaults to the configured timezone
        """
        self.sessions = sessions
        self.fingerprints = fingerprints
        self.stock_client = stock_client
        self.notifier = notification_service
        self.scheduler = scheduler
        self.config = config
        self._now = now or (lambda: now_in(config.timezone))
        self._job_ids = itertools.count(1)
        self._dnd_lock = threading.Lock()
        self._do_not_disturb: Set[str] = set()
        self._online = threading.Event()
        self._online.set()

        sessions.on_destroy(fingerprints.discard)
        logger.info("Stock tracker initialized")

    def now(self) -> datetime:
        return self._now()

    # Bot availability

    @property
    def online(self) -> bool:
        return self._online.is_set()

    def set_online(self, online: bool) -> None:
        if online:
            self._online.set()
        else:
            self._online.clear()
        logger.info(f"Bot is now {'online' if online else 'offline'}")

    # Do not disturb

    def set_do_not_disturb(self, user_id: str, enabled: bool) -> None:
        with self._dnd_lock:
            if enabled:
                self._do_not_disturb.add(user_id)
            else:
                self._do_not_disturb.discard(user_id)
        logger.info(f"Do Not Disturb {'enabled' if enabled else 'disabled'} for user {user_id}")

    def is_do_not_disturb(self, user_id: str) -> bool:
        with self._dnd_lock:
            return user_id in self._do_not_disturb

    # Session lifecycle

    def open_session(self, user_id: str, filters: Sequence[str]) -> Session:
        """
        Register a new session without fetching yet.

        Raises:
            SessionConflictError: If the user already has a session
        """
        return self.sessions.create(user_id, list(filters))

    def activate(self, session: Session) -> CycleResult:
        """
        Run the initial forced cycle for a new session and start its timer chain.

        A failed initial fetch destroys the session; the caller tells the user.
        """
        result = self.run_cycle(session, always_send=True)

        if result is CycleResult.FAILED:
            self.sessions.destroy(session.user_id, expected=session)
            logger.warning(f"Initial fetch failed, session rolled back for user {session.user_id}")
            return result

        if not self._is_current(session):
            return CycleResult.CANCELLED

        # Quiet hours may have started while the initial cycle ran
        if not self.online:
            self.sessions.destroy(session.user_id, expected=session)
            logger.info(f"Bot went offline during start, session ended for user {session.user_id}")
            return CycleResult.CANCELLED

        self.arm(session)
        logger.info(f"Tracking started for user {session.user_id} ({result.value})")
        return result

    def stop(self, user_id: str) -> bool:
        """Destroy the user's session. Returns False when there was none."""
        stopped = self.sessions.destroy(user_id)
        if stopped:
            logger.info(f"Tracking stopped for user {user_id}")
        return stopped

    def _is_current(self, session: Session) -> bool:
        return not session.is_cancelled and self.sessions.get(session.user_id) is session

    # Scheduling

    def arm(self, session: Session) -> Optional[Any]:
        """Arm the next one-shot timer for the session on the schedule grid."""
        now = self.now()
        wake_at = next_scheduled_time(
            now,
            interval_minutes=self.config.SCHEDULE_INTERVAL_MINUTES,
            offset_seconds=self.config.SCHEDULE_OFFSET_SECONDS,
        )
        delay = seconds_until(wake_at, now)
        job = self.scheduler.add_job(
            self._on_timer,
            trigger="date",
            run_date=now + timedelta(seconds=delay),
            args=[session],
            id=f"session:{session.user_id}:{next(self._job_ids)}",
            name=f"Stock cycle for {session.user_id}",
        )
        if not self.sessions.set_timer(session.user_id, job):
            logger.debug(f"Session for {session.user_id} ended before its timer was stored")
            return None
        logger.debug(f"Next cycle for user {session.user_id} in {delay:.0f}s")
        return job

    def _on_timer(self, session: Session) -> None:
        user_id = session.user_id
        if not self._is_current(session):
            logger.debug(f"Timer fired for ended session of user {user_id}, skipping")
            return
        if not self.online:
            self.sessions.destroy(user_id, expected=session)
            logger.info(f"Bot offline, session ended for user {user_id}")
            return

        try:
            result = self.run_cycle(session, always_send=False)
            if result is CycleResult.SENT:
                logger.debug(f"Stock update sent to user {user_id}")
        except Exception as e:
            logger.error(f"Unexpected error in cycle for user {user_id}: {e}", exc_info=True)

        if self._is_current(session):
            self.arm(session)

    # Fetch-and-notify cycle

    def run_cycle(self, session: Session, always_send: bool = False) -> CycleResult:
        """
        Fetch, compare and notify once for the session.

        Args:
            session: The session the cycle runs for
            always_send: Skip do-not-disturb and duplicate suppression
        """
        user_id = session.user_id
        try:
            snapshot = self.stock_client.fetch_snapshot()
        except StockFetchError as e:
            logger.error(f"Stock fetch failed for user {user_id}: {e.message}")
            return CycleResult.FAILED

        # The session may have been stopped while the fetch was in flight
        if not self._is_current(session):
            logger.info(f"Session for user {user_id} ended during fetch, discarding result")
            return CycleResult.CANCELLED
        self.sessions.touch(user_id)

        sections, matched = build_sections(snapshot, session.filters)
        fingerprint = compute_fingerprint(snapshot)

        if not always_send and self.is_do_not_disturb(user_id):
            return CycleResult.DO_NOT_DISTURB

        last_sent = self.fingerprints.get(user_id)
        if not always_send and last_sent is not None and last_sent != fingerprint:
            self.schedule_cache_clear(session)

        if not always_send and last_sent == fingerprint:
            return CycleResult.DUPLICATE

        if session.filters and not matched:
            logger.info(f"No items match filters {session.filters} for user {user_id}")
            return CycleResult.NO_MATCH

        self.fingerprints.set(user_id, fingerprint)

        now = self.now()
        user_name = self.notifier.get_first_name(user_id)
        text = build_stock_message(
            user_name=user_name,
            sections=sections,
            weather=snapshot["weather"],
            restocks=next_restocks(now),
            updated_at=now,
            version=APP_VERSION,
            divine_items=find_divine_items(snapshot_items(snapshot)),
        )

        if not self._is_current(session):
            return CycleResult.CANCELLED

        # The cache is not rolled back when the send fails
        if not self.notifier.send_message(user_id, text, quick_replies=STOCK_QUICK_REPLIES):
            logger.error(f"Failed to deliver stock update to user {user_id}")
            return CycleResult.SEND_FAILED
        return CycleResult.SENT

    def schedule_cache_clear(self, session: Session) -> bool:
        """Forget the session's fingerprint after a delay, once per pending clear."""
        user_id = session.user_id
        if not self.fingerprints.mark_clear_pending(user_id):
            return False
        self.scheduler.add_job(
            self._clear_cache,
            trigger="date",
            run_date=self.now() + timedelta(seconds=self.config.CACHE_CLEAR_DELAY_SECONDS),
            args=[session],
            id=f"cache-clear:{user_id}:{next(self._job_ids)}",
            name=f"Fingerprint clear for {user_id}",
        )
        return True

    def _clear_cache(self, session: Session) -> None:
        # A newer session for the same user keeps its fingerprint
        if not self._is_current(session):
            return
        self.fingerprints.discard(session.user_id)
        logger.info(f"Cleared stock cache for user {session.user_id}")

    # Manual refresh

    def refresh(self, user_id: str) -> Tuple[bool, Optional[str]]:
        """
        Clear the user's cache and build a fresh report regardless of changes.

        Returns:
            Tuple of (success, message_text); the text is None on failure
        """
        session = self.sessions.get(user_id)
        filters = session.filters if session else []
        self.fingerprints.discard(user_id)
        self.sessions.touch(user_id)

        try:
            snapshot = self.stock_client.fetch_snapshot()
        except StockFetchError as e:
            logger.error(f"Refresh fetch failed for user {user_id}: {e.message}")
            return False, None

        now = self.now()
        text = build_refresh_message(
            sections=build_refresh_sections(snapshot, filters),
            weather=snapshot["weather"],
            restocks=next_restocks(now),
            updated_at=now,
        )
        return True, text

    def send_refresh(self, user_id: str, text: str) -> bool:
        return self.notifier.send_message(user_id, text, quick_replies=REFRESH_QUICK_REPLIES)

    def fetch_divine_items(self) -> List[StockItem]:
        """
        Divine items currently in stock.

        Raises:
            StockFetchError: If the stock endpoint fails
        """
        return find_divine_items(self.stock_client.fetch_all_items())

    # Maintenance

    def cleanup_inactive(self) -> List[str]:
        """Destroy sessions idle past the timeout and drop orphaned cache entries."""
        timeout_seconds = self.config.SESSION_TIMEOUT_MINUTES * 60
        removed = []
        for session in self.sessions.expired(timeout_seconds):
            if self.sessions.destroy(session.user_id, expected=session):
                removed.append(session.user_id)
                logger.info(f"Cleaned up inactive session for user {session.user_id}")

        self.fingerprints.prune(session.user_id for session in self.sessions.all())
        return removed

    def active_user_ids(self) -> List[str]:
        return [session.user_id for session in self.sessions.all()]

    def shutdown(self) -> int:
        """Destroy every session. Returns the number destroyed."""
        count = self.sessions.clear()
        self.fingerprints.clear()
        logger.info(f"Stock tracker shut down, {count} session(s) ended")
        return count
