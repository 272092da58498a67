"""Webhook routes for Messenger platform integration."""
import logging
from typing import Tuple
from flask import Blueprint, request, abort, jsonify
from flask import current_app

logger = logging.getLogger("GagStock.Webhook")

webhook_bp = Blueprint('webhook', __name__)


def _get_handler():
    webhook_handler = getattr(current_app, 'webhook_handler', None)
    if webhook_handler is None:
        logger.error("Webhook handler not initialized")
        abort(503)  # Service Unavailable
    return webhook_handler


@webhook_bp.route("/webhook", methods=["GET"])
def verify_webhook() -> Tuple[str, int]:
    """Answer the Messenger subscription handshake."""
    webhook_handler = _get_handler()
    return webhook_handler.verify_subscription(
        request.args.get("hub.mode"),
        request.args.get("hub.verify_token"),
        request.args.get("hub.challenge"),
    )


@webhook_bp.route("/webhook", methods=["POST"])
def messenger_webhook():
    """Handle incoming event deliveries from Messenger."""
    webhook_handler = _get_handler()
    data = request.get_json(silent=True)

    error = webhook_handler.validate_payload(data)
    if error is not None:
        return error

    try:
        webhook_handler.process_payload(data)
    except Exception as e:
        logger.error(f"Error processing webhook delivery: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500
    return "EVENT_RECEIVED", 200
