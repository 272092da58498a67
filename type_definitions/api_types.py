"""
Type definitions for API-related data structures.

This module contains the type definitions for Messenger webhook events,
Send API payloads and the bot's own HTTP responses.
"""

from typing import Any, Dict, List, TypedDict


class MessengerSender(TypedDict):
    """Sender or recipient of a Messenger event."""

    id: str


class QuickReply(TypedDict):
    """Quick reply attached to an inbound message or offered in an outbound one."""

    content_type: str
    title: str
    payload: str


class MessengerMessage(TypedDict, total=False):
    """Inbound Messenger message."""

    mid: str
    text: str
    is_echo: bool
    quick_reply: Dict[str, str]
    attachments: List[Dict[str, Any]]


class MessagingEvent(TypedDict, total=False):
    """One entry of ``entry[].messaging``."""

    sender: MessengerSender
    recipient: MessengerSender
    timestamp: int
    message: MessengerMessage
    postback: Dict[str, Any]


class WebhookEntry(TypedDict, total=False):
    """One page entry of a webhook delivery."""

    id: str
    time: int
    messaging: List[MessagingEvent]


class WebhookPayload(TypedDict):
    """Messenger webhook request body."""

    object: str
    entry: List[WebhookEntry]


class SendMessagePayload(TypedDict, total=False):
    """Send API request body."""

    recipient: MessengerSender
    message: Dict[str, Any]
    sender_action: str
    messaging_type: str


class HealthCheckResponse(TypedDict):
    """Health check response structure."""

    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    active_sessions: int
    bot_online: bool

