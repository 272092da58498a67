"""
Features package for the GagStock Alerts bot.

This package contains the core feature implementations: session tracking,
the fetch-and-notify cycle, command handling and webhook processing.
"""

from .command_dispatcher import CommandDispatcher
from .quiet_hours import QuietHours
from .session_store import InMemorySessionStore, SessionConflictError, SessionStore
from .stock_tracker import CycleResult, StockTracker
from .webhook_handler import WebhookHandler

__all__ = [
    "CommandDispatcher",
    "CycleResult",
    "InMemorySessionStore",
    "QuietHours",
    "SessionConflictError",
    "SessionStore",
    "StockTracker",
    "WebhookHandler",
]
