"""
Rate limiting utilities for inbound chat messages.

Each user gets a sliding 60-second window of request timestamps. Entries
older than the window are pruned before every check, and a user who already
has ``max_requests`` entries inside the window is turned away.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple


class UserRateLimiter:
    """In-memory per-user sliding window rate limiter."""

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the user rate limiter.

        Args:
            max_requests: Requests allowed per user inside one window
            window_seconds: Length of the sliding window
            clock: Source of the current time in epoch seconds
        """
        self.logger = logging.getLogger("GagStock.UserRateLimiter")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Deque[float]] = {}

    def _prune(self, window: Deque[float], now: float) -> None:
        expire_before = now - self.window_seconds
        while window and window[0] <= expire_before:
            window.popleft()

    def can_user_make_request(self, user_identifier: str) -> Tuple[bool, Optional[str]]:
        """
        Check whether a user may make a request, recording it when allowed.

        Args:
            user_identifier: Messenger user ID

        Returns:
            Tuple of (can_make_request, reason_if_not)
        """
        now = self._clock()
        with self._lock:
            window = self._windows.setdefault(user_identifier, deque())
            self._prune(window, now)

            if len(window) >= self.max_requests:
                retry_in = int(window[0] + self.window_seconds - now) + 1
                return (
                    False,
                    f"Too many requests. Limit: {self.max_requests} per minute. "
                    f"Try again in {retry_in} seconds.",
                )

            window.append(now)
            return True, None

    def get_usage(self, user_identifier: str) -> int:
        """Number of requests the user has inside the current window."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(user_identifier)
            if not window:
                return 0
            self._prune(window, now)
            return len(window)

    def reset(self, user_identifier: str) -> None:
        with self._lock:
            self._windows.pop(user_identifier, None)

    def prune_idle(self) -> int:
        """Drop windows with no recent requests. Returns the number removed."""
        now = self._clock()
        removed = 0
        with self._lock:
            for user_identifier in list(self._windows):
                window = self._windows[user_identifier]
                self._prune(window, now)
                if not window:
                    del self._windows[user_identifier]
                    removed += 1
        if removed:
            self.logger.debug(f"Dropped {removed} idle rate limit windows")
        return removed
