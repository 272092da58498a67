"""
Type definitions for the GagStock Alerts bot.

This module provides the type definitions for the shop stock data, the
Messenger webhook events and the bot's HTTP responses.
"""

from .api_types import (
    HealthCheckResponse,
    MessagingEvent,
    MessengerMessage,
    QuickReply,
    SendMessagePayload,
    WebhookPayload,
)
from .stock_types import (
    CATEGORIES,
    FINGERPRINT_CATEGORIES,
    PRIMARY_CATEGORIES,
    SECONDARY_CATEGORIES,
    Section,
    StockItem,
    StockSnapshot,
    Weather,
)

__all__ = [
    # Stock types
    "StockItem",
    "StockSnapshot",
    "Weather",
    "Section",
    "CATEGORIES",
    "PRIMARY_CATEGORIES",
    "SECONDARY_CATEGORIES",
    "FINGERPRINT_CATEGORIES",
    # API types
    "HealthCheckResponse",
    "MessagingEvent",
    "MessengerMessage",
    "QuickReply",
    "SendMessagePayload",
    "WebhookPayload",
]
