"""
Webhook handler for Messenger platform integration.

This module verifies the webhook subscription handshake, validates incoming
event deliveries and hands each text message to the command dispatcher.
"""

import hmac
import itertools
import logging
from typing import Any, Optional, Tuple

from features.command_dispatcher import CommandDispatcher
from type_definitions.api_types import MessagingEvent, WebhookPayload
from utils.validators import validate_user_id

logger = logging.getLogger("GagStock.WebhookHandler")


class WebhookHandler:
    """Handler for Messenger webhook requests."""

    def __init__(
        self, dispatcher: CommandDispatcher, verify_token: str, scheduler: Optional[Any] = None
    ) -> None:
        """
        Args:
            dispatcher: Command dispatcher messages are handed to
            verify_token: Shared secret for the subscription handshake
            scheduler: Background scheduler that runs message handling off the
                request thread; without one, messages are handled inline
        """
        if not verify_token:
            logger.error("VERIFY_TOKEN is not configured")
            raise ValueError("VERIFY_TOKEN is not configured")
        self.dispatcher = dispatcher
        self.verify_token = verify_token
        self.scheduler = scheduler
        self._job_ids = itertools.count(1)
        logger.info("WebhookHandler initialized successfully")

    def verify_subscription(
        self, mode: Optional[str], token: Optional[str], challenge: Optional[str]
    ) -> Tuple[str, int]:
        """
        Answer the Messenger subscription handshake.

        Returns:
            Tuple of (response_body, status_code)
        """
        if not mode or not token or challenge is None:
            logger.warning("Webhook verification request missing parameters")
            return "Missing parameters", 400

        # Timing-safe comparison of the shared token
        if mode == "subscribe" and hmac.compare_digest(token, self.verify_token):
            logger.info("Webhook verified successfully")
            return challenge, 200

        logger.warning("Webhook verification failed: token mismatch")
        return "Forbidden", 403

    def validate_payload(self, data: Any) -> Optional[Tuple[str, int]]:
        """
        Check the shape of a webhook delivery.

        Returns:
            None when valid, otherwise (error_message, status_code)
        """
        if not isinstance(data, dict) or data.get("object") != "page":
            logger.warning("Webhook delivery is not a page event")
            return "Not Found", 404
        if not isinstance(data.get("entry"), list):
            logger.warning("Webhook delivery has no entry list")
            return "Invalid payload", 400
        return None

    def process_payload(self, data: WebhookPayload) -> int:
        """Dispatch every message event in a validated delivery. Returns the count accepted."""
        handled = 0
        for entry in data["entry"]:
            if not isinstance(entry, dict):
                continue
            for event in entry.get("messaging") or []:
                if isinstance(event, dict) and self.process_event(event):
                    handled += 1
        return handled

    def process_event(self, event: MessagingEvent) -> bool:
        sender_id = (event.get("sender") or {}).get("id")
        if not sender_id:
            logger.debug("Skipping event without sender id")
            return False

        is_valid, user_id = validate_user_id(sender_id)
        if not is_valid:
            logger.warning(f"Invalid sender id {sender_id!r}: {user_id}")
            return False

        message = event.get("message")
        if not isinstance(message, dict) or message.get("is_echo"):
            return False

        text = message.get("text")
        payload = (message.get("quick_reply") or {}).get("payload")
        if not text and not payload:
            logger.debug(f"Skipping non-text message from user {user_id}")
            return False

        if self.scheduler is None:
            return self._dispatch(user_id, text, payload)

        # Acknowledge the delivery before the command runs
        self.scheduler.add_job(
            self._dispatch,
            trigger="date",
            args=[user_id, text, payload],
            id=f"message:{user_id}:{next(self._job_ids)}",
            name=f"Message from {user_id}",
        )
        return True

    def _dispatch(self, user_id: str, text: Optional[str], payload: Optional[str]) -> bool:
        try:
            self.dispatcher.handle_message(user_id, text, quick_reply_payload=payload)
        except Exception as e:
            logger.error(f"Error processing message from user {user_id}: {e}", exc_info=True)
            return False
        return True
