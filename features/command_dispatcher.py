"""
Command dispatcher for inbound Messenger text.

Every message passes the per-user rate limit, then is routed to a command by
name or alias. Text that matches no command goes to a small keyword intent
classifier so users can ask questions naturally.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from features.restock_clock import RESTOCK_FREQUENCIES, next_restocks
from features.session_store import SessionConflictError
from features.stock_tracker import CycleResult, StockTracker
from services.auth_service import AuthService
from services.notification_service import NotificationService
from type_definitions.stock_types import CATEGORIES
from utils import messages
from utils.config import APP_VERSION, Config
from utils.formatters import build_item_list
from utils.rate_limiter import UserRateLimiter
from utils.stock_client import StockFetchError
from utils.validators import (
    ValidationError,
    parse_command,
    parse_filters,
    validate_choice,
    validate_user_id,
)

logger = logging.getLogger("GagStock.CommandDispatcher")

QUICK_REPLY_COMMANDS: Dict[str, Optional[tuple]] = {
    "REFRESH_STOCK": ("refresh", []),
    "DIVINE_ITEMS": ("custom", ["divine"]),
    "NEXT_RESTOCK": ("nextstock", ["all"]),
    "WEATHER_INFO": None,
}

NEXTSTOCK_CHOICES = ("gear", "seed", "egg", "all")


def classify_intent(text: str) -> str:
    """
    Map free text to a question intent by keyword.

    >>> classify_intent("When is the next restock?")
    'next_restock'
    """
    lowered = text.lower()

    def has(*words: str) -> bool:
        return any(word in lowered for word in words)

    if has("stock") and has("today"):
        return "stock_today"
    if has("what") and has("available", "stock"):
        return "stock_available"
    if has("when") and has("restock", "refresh"):
        return "next_restock"
    if has("divine", "rare", "special"):
        return "divine_items"
    if has("price", "cost", "how much"):
        return "pricing_info"
    if has("weather", "bonus", "crop"):
        return "weather_info"
    if has("how") and has("work"):
        return "how_bot_works"
    if has("help", "command"):
        return "help_info"
    return "general_question"


@dataclass
class Command:
    name: str
    handler: Callable[[str, List[str]], None]
    aliases: Sequence[str] = field(default_factory=tuple)
    description: str = ""


class CommandDispatcher:
    """Routes user messages to command handlers."""

    def __init__(
        self,
        tracker: StockTracker,
        notification_service: NotificationService,
        auth_service: AuthService,
        rate_limiter: UserRateLimiter,
        config: Config,
    ) -> None:
        self.tracker = tracker
        self.notifier = notification_service
        self.auth = auth_service
        self.rate_limiter = rate_limiter
        self.config = config

        self.commands: Dict[str, Command] = {}
        for command in (
            Command("gagstock", self._handle_gagstock_command, ("gag", "stock", "track"), "Start or stop tracking"),
            Command("refresh", self._handle_refresh_command, ("reload", "sync", "update"), "Force a fresh report"),
            Command("dnd", self._handle_dnd_command, ("donotdisturb", "quiet", "silence"), "Do Not Disturb"),
            Command("nextstock", self._handle_nextstock_command, ("next", "nextstk", "upcoming"), "Restock timers"),
            Command("custom", self._handle_custom_command, ("vip", "special", "premium"), "Premium commands"),
            Command("help", self._handle_help_command, ("commands",), "Show help"),
        ):
            self.register(command)

        self._intent_replies: Dict[str, Callable[[str], None]] = {
            "stock_today": lambda uid: self._handle_gagstock_command(uid, ["on"]),
            "stock_available": lambda uid: self._handle_gagstock_command(uid, ["on"]),
            "next_restock": lambda uid: self._handle_nextstock_command(uid, ["all"]),
            "divine_items": lambda uid: self._handle_custom_command(uid, ["divine"]),
            "weather_info": lambda uid: self._send(uid, messages.WEATHER_INFO_MESSAGE),
            "pricing_info": lambda uid: self._send(uid, messages.PRICING_INFO_MESSAGE),
            "how_bot_works": lambda uid: self._send(uid, messages.HOW_IT_WORKS_MESSAGE),
            "help_info": lambda uid: self._send(uid, messages.QUICK_HELP_MESSAGE),
            "general_question": lambda uid: self._send(uid, messages.GENERAL_QUESTION_MESSAGE),
        }

    def register(self, command: Command) -> None:
        for name in (command.name, *command.aliases):
            self.commands[name] = command

    def _send(self, user_id: str, text: str) -> bool:
        return self.notifier.send_message(user_id, text)

    def handle_message(
        self, user_id: str, text: Optional[str], quick_reply_payload: Optional[str] = None
    ) -> Optional[str]:
        """
        Handle one inbound message.

        Args:
            user_id: Sender's page-scoped ID
            text: Message text
            quick_reply_payload: Payload of a tapped quick reply button, if any

        Returns:
            Name of the command or intent that handled the message, or None
            when the message was dropped
        """
        allowed, reason = self.rate_limiter.can_user_make_request(user_id)
        if not allowed:
            logger.warning(f"Rate limited user {user_id}: {reason}")
            self._send(user_id, messages.RATE_LIMITED_MESSAGE)
            return None

        self.tracker.sessions.touch(user_id)

        if quick_reply_payload in QUICK_REPLY_COMMANDS:
            target = QUICK_REPLY_COMMANDS[quick_reply_payload]
            if target is None:
                self._send(user_id, messages.QUICK_WEATHER_MESSAGE)
                return "weather_info"
            name, args = target
            return self._execute(user_id, self.commands[name], list(args))

        try:
            command_name, args = parse_command(text or "")
        except ValidationError as e:
            logger.info(f"Ignoring message from user {user_id}: {e.message}")
            return None

        logger.info(f"Processing message from user {user_id}: {command_name!r} with {len(args)} args")
        command = self.commands.get(command_name)
        if command is not None:
            return self._execute(user_id, command, args)

        intent = classify_intent(text or "")
        if intent != "general_question" or "?" in (text or ""):
            logger.info(f"Answering {intent} question from user {user_id}")
            try:
                self._intent_replies[intent](user_id)
            except Exception as e:
                logger.error(f"Error answering {intent} for user {user_id}: {e}", exc_info=True)
                self._send(user_id, messages.ERROR_MESSAGE)
            return intent

        logger.warning(f"Command not found: {command_name!r} from user {user_id}")
        self._send(user_id, messages.unknown_command_message(command_name))
        return "unknown"

    def _execute(self, user_id: str, command: Command, args: List[str]) -> str:
        try:
            command.handler(user_id, args)
        except Exception as e:
            logger.error(
                f"Error executing command '{command.name}' for user {user_id}: {e}",
                exc_info=True,
            )
            self._send(user_id, messages.ERROR_MESSAGE)
        return command.name

    # Command handlers

    def _handle_gagstock_command(self, user_id: str, args: List[str]) -> None:
        if not self.tracker.online:
            self._send(user_id, messages.OFFLINE_MESSAGE)
            return

        action = args[0].lower() if args else None
        if action == "off":
            if self.tracker.stop(user_id):
                self._send(user_id, messages.STOP_MESSAGE)
            else:
                self._send(user_id, messages.NO_SESSION_MESSAGE)
            return

        if action != "on":
            self._send(user_id, messages.GAGSTOCK_USAGE)
            return

        try:
            filters = parse_filters(args[1:])
        except ValidationError as e:
            self._send(user_id, f"❌ {e.message}\n\n{messages.GAGSTOCK_USAGE}")
            return

        try:
            session = self.tracker.open_session(user_id, filters)
        except SessionConflictError:
            logger.warning(f"User {user_id} tried to start an existing session")
            self._send(user_id, messages.ALREADY_ACTIVE_MESSAGE)
            return

        self._send(
            user_id,
            messages.start_message(filters, self.config.SCHEDULE_INTERVAL_MINUTES),
        )
        result = self.tracker.activate(session)
        if result is CycleResult.FAILED:
            self._send(user_id, messages.INITIAL_FETCH_FAILED_MESSAGE)
        elif result is CycleResult.NO_MATCH:
            self._send(user_id, messages.NO_MATCH_MESSAGE)
        elif result is CycleResult.CANCELLED and not self.tracker.online:
            self._send(user_id, messages.OFFLINE_MESSAGE)

    def _handle_refresh_command(self, user_id: str, args: List[str]) -> None:
        if not self.tracker.online:
            self._send(user_id, messages.OFFLINE_MESSAGE)
            return
        if self.tracker.sessions.get(user_id) is None:
            self._send(user_id, messages.REFRESH_NO_SESSION_MESSAGE)
            return

        self._send(user_id, messages.REFRESHING_MESSAGE)
        ok, text = self.tracker.refresh(user_id)
        if ok and text:
            self.tracker.send_refresh(user_id, text)
        else:
            self._send(user_id, messages.REFRESH_FAILED_MESSAGE)

    def _handle_dnd_command(self, user_id: str, args: List[str]) -> None:
        valid, action = validate_choice(args[0] if args else None, ("on", "off", "status"))
        if not valid:
            self._send(user_id, messages.DND_USAGE)
            return

        if action == "on":
            self.tracker.set_do_not_disturb(user_id, True)
            self._send(user_id, messages.DND_ENABLED_MESSAGE)
        elif action == "off":
            self.tracker.set_do_not_disturb(user_id, False)
            self._send(user_id, messages.DND_DISABLED_MESSAGE)
        else:
            self._send(
                user_id,
                messages.dnd_status_message(
                    self.tracker.is_do_not_disturb(user_id),
                    self.tracker.sessions.get(user_id) is not None,
                ),
            )

    def _handle_nextstock_command(self, user_id: str, args: List[str]) -> None:
        valid, category = validate_choice(args[0] if args else None, NEXTSTOCK_CHOICES)
        if not valid:
            self._send(user_id, messages.NEXTSTOCK_USAGE)
            return

        categories = CATEGORIES if category == "all" else (category,)
        countdowns = next_restocks(self.tracker.now())
        self._send(
            user_id,
            messages.next_restock_message(countdowns, RESTOCK_FREQUENCIES, categories),
        )

    def _handle_custom_command(self, user_id: str, args: List[str]) -> None:
        if not self.auth.is_authorized(user_id):
            self._send(user_id, messages.PREMIUM_REQUIRED_MESSAGE)
            return

        action = args[0].lower() if args else None
        if action == "divine":
            self._send_divine_items(user_id)
        elif action in ("grant", "revoke", "sessions"):
            if not self.auth.is_admin(user_id):
                self._send(user_id, messages.ADMIN_REQUIRED_MESSAGE)
                return
            self._handle_admin_action(user_id, action, args[1:])
        else:
            self._send(user_id, messages.PREMIUM_MENU)

    def _send_divine_items(self, user_id: str) -> None:
        self.notifier.send_typing(user_id, True)
        try:
            divine = self.tracker.fetch_divine_items()
        except StockFetchError as e:
            logger.error(f"Divine item lookup failed for user {user_id}: {e.message}")
            self._send(user_id, messages.DIVINE_FETCH_FAILED_MESSAGE)
            return
        finally:
            self.notifier.send_typing(user_id, False)

        if divine:
            self._send(user_id, messages.divine_found_message(build_item_list(divine)))
        else:
            self._send(user_id, messages.NO_DIVINE_MESSAGE)

    def _handle_admin_action(self, user_id: str, action: str, args: List[str]) -> None:
        if action == "sessions":
            self._send(user_id, messages.sessions_message(self.tracker.active_user_ids()))
            return

        if not args:
            self._send(user_id, f"📝 Usage: custom {action} <user id>")
            return
        is_valid, target = validate_user_id(args[0])
        if not is_valid:
            self._send(user_id, f"❌ {target}")
            return

        if action == "grant":
            changed = self.auth.grant(target)
            verb = "granted to" if changed else "already held by"
        else:
            changed = self.auth.revoke(target)
            verb = "revoked from" if changed else "was not held by"
        self._send(user_id, f"👑 Premium access {verb} {target}.")

    def _handle_help_command(self, user_id: str, args: List[str]) -> None:
        self._send(user_id, messages.help_message(APP_VERSION))
