"""
Authorization service for privileged bot commands.

The admin is identified by a single configured Messenger user ID compared by
equality. Other users can be granted premium access at runtime. Callers only
use ``is_admin`` and ``is_authorized``, so the check can be replaced by a
proper allowlist or capability lookup without touching command handling.
"""

import logging
import threading
from typing import Iterable, List, Optional, Set


class AuthService:
    """Service class for authorization checks."""

    def __init__(
        self,
        admin_user_id: Optional[str] = None,
        authorized_users: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Initialize the AuthService.

        Args:
            admin_user_id: Messenger user ID of the bot admin
            authorized_users: User IDs granted premium commands up front
        """
        self.logger = logging.getLogger("GagStock.AuthService")
        self.admin_user_id = str(admin_user_id) if admin_user_id else None
        self._lock = threading.Lock()
        self._authorized: Set[str] = set(authorized_users or ())

        if not self.admin_user_id:
            self.logger.warning("ADMIN_USER_ID not configured, admin commands disabled")

    def is_admin(self, user_id: str) -> bool:
        return self.admin_user_id is not None and str(user_id) == self.admin_user_id

    def is_authorized(self, user_id: str) -> bool:
        """Whether the user may run premium commands."""
        if self.is_admin(user_id):
            return True
        with self._lock:
            return str(user_id) in self._authorized

    def grant(self, user_id: str) -> bool:
        """Grant premium access. Returns False if the user already had it."""
        with self._lock:
            if user_id in self._authorized:
                return False
            self._authorized.add(user_id)
        self.logger.info(f"Premium access granted to user {user_id}")
        return True

    def revoke(self, user_id: str) -> bool:
        """Revoke premium access. Returns False if the user did not have it."""
        with self._lock:
            if user_id not in self._authorized:
                return False
            self._authorized.discard(user_id)
        self.logger.info(f"Premium access revoked for user {user_id}")
        return True

    def authorized_users(self) -> List[str]:
        with self._lock:
            return sorted(self._authorized)
