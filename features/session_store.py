"""
Session store for per-user stock tracking.

A session is created by ``gagstock on`` and lives until the user stops it,
goes idle, the initial fetch fails or quiet hours begin. It owns the handle
of the user's pending fetch timer; destroying a session always cancels that
timer so no cycle runs after teardown.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from utils.scheduler import cancel_job

logger = logging.getLogger("GagStock.SessionStore")

TeardownHook = Callable[[str], None]


class SessionConflictError(Exception):
    """Raised when a session already exists for the user."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Session already active for user {user_id}")


@dataclass
class Session:
    """Tracking state for one user."""

    user_id: str
    filters: List[str]
    start_time: float
    last_activity: float
    timer: Optional[Any] = None
    cancelled: threading.Event = field(default_factory=threading.Event)

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def idle_seconds(self, now: float) -> float:
        return now - self.last_activity


class SessionStore(ABC):
    """Interface for session storage backends."""

    def __init__(self) -> None:
        self._teardown_hooks: List[TeardownHook] = []

    def on_destroy(self, hook: TeardownHook) -> None:
        """Register a callback run with the user ID after a session is destroyed."""
        self._teardown_hooks.append(hook)

    def _run_teardown_hooks(self, user_id: str) -> None:
        for hook in self._teardown_hooks:
            try:
                hook(user_id)
            except Exception as e:
                logger.error(f"Teardown hook failed for user {user_id}: {e}", exc_info=True)

    @abstractmethod
    def create(self, user_id: str, filters: List[str]) -> Session:
        """Create a session. Raises SessionConflictError if one exists."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[Session]:
        """Return the user's session, if any."""

    @abstractmethod
    def touch(self, user_id: str) -> bool:
        """Refresh last activity. Returns False when there is no session."""

    @abstractmethod
    def destroy(self, user_id: str, expected: Optional[Session] = None) -> bool:
        """
        Cancel the timer and remove the session.

        When ``expected`` is given, only that exact session is destroyed; a
        newer session for the same user is left alone.
        """

    @abstractmethod
    def set_timer(self, user_id: str, handle: Any) -> bool:
        """Store a new timer handle, cancelling the previous one first."""

    @abstractmethod
    def all(self) -> List[Session]:
        """Snapshot of all sessions."""

    @abstractmethod
    def expired(self, max_idle_seconds: float, now: Optional[float] = None) -> List[Session]:
        """Sessions idle longer than the threshold."""

    def clear(self) -> int:
        """Destroy every session. Returns the number destroyed."""
        count = 0
        for session in self.all():
            if self.destroy(session.user_id, expected=session):
                count += 1
        return count

    def __len__(self) -> int:
        return len(self.all())

    def __contains__(self, user_id: object) -> bool:
        return isinstance(user_id, str) and self.get(user_id) is not None


class InMemorySessionStore(SessionStore):
    """Process-local session store guarded by a lock."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        super().__init__()
        self._clock = clock
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

    def create(self, user_id: str, filters: List[str]) -> Session:
        now = self._clock()
        with self._lock:
            if user_id in self._sessions:
                raise SessionConflictError(user_id)
            session = Session(
                user_id=user_id,
                filters=list(filters),
                start_time=now,
                last_activity=now,
            )
            self._sessions[user_id] = session
        logger.info(f"Session created for user {user_id} with filters {filters or 'all items'}")
        return session

    def get(self, user_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(user_id)

    def touch(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return False
            session.last_activity = self._clock()
            return True

    def destroy(self, user_id: str, expected: Optional[Session] = None) -> bool:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or (expected is not None and session is not expected):
                return False
            del self._sessions[user_id]
            session.cancelled.set()
            handle, session.timer = session.timer, None
        cancel_job(handle)
        self._run_teardown_hooks(user_id)
        logger.info(f"Session destroyed for user {user_id}")
        return True

    def set_timer(self, user_id: str, handle: Any) -> bool:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or session.is_cancelled:
                previous, accepted = None, False
            else:
                previous, session.timer = session.timer, handle
                accepted = True
        if not accepted:
            cancel_job(handle)
        elif previous is not handle:
            cancel_job(previous)
        return accepted

    def all(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def expired(self, max_idle_seconds: float, now: Optional[float] = None) -> List[Session]:
        now = self._clock() if now is None else now
        with self._lock:
            return [
                session
                for session in self._sessions.values()
                if session.idle_seconds(now) > max_idle_seconds
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
