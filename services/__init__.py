"""
Service layer for the GagStock Alerts bot.

This module provides service classes that wrap outbound Messenger calls and
authorization checks so the features stay focused on bot behaviour.
"""

from .auth_service import AuthService
from .notification_service import NotificationService

__all__ = ["AuthService", "NotificationService"]
