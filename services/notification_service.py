"""
Notification service for delivering messages over Messenger.

This service wraps the Graph API Send API so the tracker and the command
dispatcher can notify users without knowing about HTTP.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from type_definitions.api_types import QuickReply, SendMessagePayload

logger = logging.getLogger("GagStock.NotificationService")

STOCK_QUICK_REPLIES: List[QuickReply] = [
    QuickReply(content_type="text", title="🔄 Refresh Stock", payload="REFRESH_STOCK"),
    QuickReply(content_type="text", title="💎 Divine Items", payload="DIVINE_ITEMS"),
    QuickReply(content_type="text", title="⏰ Next Restock", payload="NEXT_RESTOCK"),
]

REFRESH_QUICK_REPLIES: List[QuickReply] = STOCK_QUICK_REPLIES + [
    QuickReply(content_type="text", title="🌤️ Weather Info", payload="WEATHER_INFO"),
]

# Messenger rejects longer text messages
MAX_TEXT_LENGTH = 2000


class NotificationService:
    """Service for sending messages through the Messenger Send API."""

    def __init__(
        self,
        page_access_token: str,
        graph_api_url: str = "https://graph.facebook.com/v19.0",
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize the notification service.

        Args:
            page_access_token: Page token used for every Graph API call
            graph_api_url: Graph API base URL including the version
            timeout: Request timeout in seconds
        """
        if not page_access_token:
            logger.error("PAGE_ACCESS_TOKEN is not configured")
            raise ValueError("PAGE_ACCESS_TOKEN is not configured")
        self.token = page_access_token
        self.api_url = graph_api_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger("GagStock.NotificationService")

    def _post(self, payload: SendMessagePayload, timeout: Optional[float] = None) -> bool:
        recipient = payload.get("recipient", {}).get("id")
        try:
            response = requests.post(
                f"{self.api_url}/me/messages",
                params={"access_token": self.token},
                json=payload,
                timeout=timeout or self.timeout,
            )
            response.raise_for_status()
            return True
        except requests.HTTPError as e:
            body = e.response.text[:200] if e.response is not None else ""
            self.logger.error(f"Messenger API error for {recipient}: {e} {body}")
            return False
        except requests.RequestException as e:
            self.logger.error(f"Error sending message to {recipient}: {e}")
            return False

    def send_message(
        self,
        recipient_id: str,
        text: str,
        quick_replies: Optional[Sequence[QuickReply]] = None,
    ) -> bool:
        """Send a text message, optionally with quick reply buttons."""
        if not recipient_id or not text:
            self.logger.error("Missing recipient or text for send_message")
            return False

        if len(text) > MAX_TEXT_LENGTH:
            self.logger.warning(
                f"Message to {recipient_id} is {len(text)} characters, truncating"
            )
            text = text[: MAX_TEXT_LENGTH - 1] + "…"

        message: Dict[str, Any] = {"text": text}
        if quick_replies:
            message["quick_replies"] = list(quick_replies)

        sent = self._post(
            SendMessagePayload(
                recipient={"id": recipient_id},
                message=message,
                messaging_type="RESPONSE",
            )
        )
        if sent:
            self.logger.info(f"Message sent to user {recipient_id}")
        return sent

    def send_typing(self, recipient_id: str, on: bool = True) -> bool:
        action = "typing_on" if on else "typing_off"
        return self._post(
            SendMessagePayload(recipient={"id": recipient_id}, sender_action=action),
            timeout=5,
        )

    def send_audio(self, recipient_id: str, audio_url: str) -> bool:
        """Send an audio attachment by URL."""
        sent = self._post(
            SendMessagePayload(
                recipient={"id": recipient_id},
                message={
                    "attachment": {
                        "type": "audio",
                        "payload": {"url": audio_url, "is_reusable": True},
                    }
                },
                messaging_type="RESPONSE",
            )
        )
        if sent:
            self.logger.info(f"Audio message sent to user {recipient_id}")
        return sent

    def get_first_name(self, user_id: str, default: str = "Friend") -> str:
        """Look up the user's first name for greetings, falling back to ``default``."""
        try:
            response = requests.get(
                f"{self.api_url}/{user_id}",
                params={"fields": "first_name", "access_token": self.token},
                timeout=5,
            )
            response.raise_for_status()
            data = response.json()
            name = data.get("first_name") if isinstance(data, dict) else None
            return name or default
        except (requests.RequestException, ValueError) as e:
            self.logger.debug(f"Could not fetch name for user {user_id}: {e}")
            return default
