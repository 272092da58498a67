"""
Validation utilities for inbound chat text.

This module turns raw Messenger message text into a command name, its
arguments and the optional ``|``-delimited filter list, rejecting input that
is empty or unreasonably long.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger("GagStock.Validators")

# Constants for validation
MAX_MESSAGE_LENGTH = 500
MAX_FILTERS = 20
MAX_FILTER_LENGTH = 50
USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ValidationError(Exception):
    """Custom exception for validation errors."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def sanitize_text(value: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Trim and length-check a chat message.

    Raises:
        ValidationError: If input is not a string, is empty or is too long
    """
    if not isinstance(value, str):
        raise ValidationError("Input must be a string")

    value = value.strip()

    if not value:
        raise ValidationError("Message cannot be empty")

    if len(value) > max_length:
        raise ValidationError(f"Message too long (max {max_length} characters)")

    return value


def validate_user_id(user_id: str) -> Tuple[bool, str]:
    """
    Validate a Messenger page-scoped user ID.

    Returns:
        Tuple of (is_valid, validated_user_id_or_error_message)
    """
    if user_id is None:
        return False, "User ID cannot be empty"

    user_id = str(user_id).strip()
    if not user_id:
        return False, "User ID cannot be empty"

    if not USER_ID_PATTERN.match(user_id):
        return False, "Invalid user ID format"

    return True, user_id


def parse_command(text: str) -> Tuple[str, List[str]]:
    """
    Split message text into a lowercased command name and its arguments.

    Args:
        text: Raw message text, e.g. ``"Gagstock on Sunflower | Can"``

    Returns:
        Tuple of (command, args), e.g. ``("gagstock", ["on", "Sunflower", "|", "Can"])``

    Raises:
        ValidationError: If the text is empty or too long
    """
    text = sanitize_text(text)
    parts = text.split()
    command = parts[0].lower()
    # Some users type commands with a leading slash out of habit
    if command.startswith("/") and len(command) > 1:
        command = command[1:]
    return command, parts[1:]


def parse_filters(args: Sequence[str]) -> List[str]:
    """
    Parse a ``|``-delimited filter list out of command arguments.

    Filters are lowercased, trimmed, deduplicated and kept in the order the
    user typed them.

    Raises:
        ValidationError: If there are too many filters or one is too long
    """
    joined = " ".join(args)
    filters: List[str] = []
    for raw in joined.split("|"):
        value = raw.strip().lower()
        if not value or value in filters:
            continue
        if len(value) > MAX_FILTER_LENGTH:
            raise ValidationError(
                f"Filter '{value[:20]}...' is too long (max {MAX_FILTER_LENGTH} characters)",
                field="filters",
            )
        filters.append(value)

    if len(filters) > MAX_FILTERS:
        raise ValidationError(f"Too many filters (max {MAX_FILTERS})", field="filters")

    logger.debug(f"Parsed filters: {filters}")
    return filters


def validate_choice(
    value: Optional[str], choices: Sequence[str]
) -> Tuple[bool, Optional[str]]:
    """
    Check a lowercased sub-command against the allowed choices.

    Returns:
        Tuple of (is_valid, normalized_value)
    """
    if not value:
        return False, None
    normalized = value.strip().lower()
    if normalized not in choices:
        return False, normalized
    return True, normalized
