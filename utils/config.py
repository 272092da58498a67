"""
Centralized configuration management for the GagStock Alerts bot.

This module loads all environment variables in one place and provides
validated configuration values to all other modules.
"""

import logging
import os
from typing import Any, Dict, Optional, Tuple

import pytz
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(".env")

logger = logging.getLogger("GagStock.Config")

APP_VERSION = "3.1.0"

DEFAULT_STOCK_API_URL = "https://gagstock.gleeze.com/grow-a-garden"
DEFAULT_WEATHER_API_URL = "https://growagardenstock.com/api/stock/weather"
DEFAULT_GRAPH_API_URL = "https://graph.facebook.com/v19.0"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_clock_time(value: str) -> Tuple[int, int]:
    """Parse an ``HH:MM`` string into an (hour, minute) tuple."""
    try:
        hour_text, minute_text = value.strip().split(":", 1)
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM")
    return hour, minute


class Config:
    """Centralized configuration class for the GagStock Alerts bot."""

    def __init__(self, validate: bool = True) -> None:
        """
        Initialize configuration by loading and validating environment variables.

        Args:
            validate: Fail fast when required secrets are missing. Tests pass
                False to build a config without Messenger credentials.
        """
        self._load_config()
        if validate:
            self._validate_required_config()

    def _load_config(self) -> None:
        """Load all configuration values from environment variables."""
        # Messenger configuration
        self.PAGE_ACCESS_TOKEN = os.getenv("PAGE_ACCESS_TOKEN")
        self.VERIFY_TOKEN = os.getenv("VERIFY_TOKEN")
        self.GRAPH_API_URL = os.getenv("GRAPH_API_URL", DEFAULT_GRAPH_API_URL).rstrip("/")

        # Admin identity
        admin_user_id = os.getenv("ADMIN_USER_ID")
        self.ADMIN_USER_ID: Optional[str] = str(admin_user_id).strip() if admin_user_id else None

        # Remote data sources
        self.STOCK_API_URL = os.getenv("STOCK_API_URL", DEFAULT_STOCK_API_URL)
        self.WEATHER_API_URL = os.getenv("WEATHER_API_URL", DEFAULT_WEATHER_API_URL)
        self.FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "5"))
        self.FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", "1"))
        self.SEND_TIMEOUT = float(os.getenv("SEND_TIMEOUT", "10"))

        # Session and scheduling settings with defaults
        self.MAX_REQUESTS_PER_MINUTE = int(os.getenv("MAX_REQUESTS_PER_MINUTE", "10"))
        self.SESSION_TIMEOUT_MINUTES = int(os.getenv("SESSION_TIMEOUT_MINUTES", "30"))
        self.CLEANUP_INTERVAL_MINUTES = int(os.getenv("CLEANUP_INTERVAL_MINUTES", "30"))
        self.CACHE_CLEAR_DELAY_SECONDS = int(os.getenv("CACHE_CLEAR_DELAY_SECONDS", "30"))
        self.SCHEDULE_INTERVAL_MINUTES = int(os.getenv("SCHEDULE_INTERVAL_MINUTES", "5"))
        self.SCHEDULE_OFFSET_SECONDS = int(os.getenv("SCHEDULE_OFFSET_SECONDS", "30"))
        self.TIMEZONE = os.getenv("TIMEZONE", "Asia/Manila")

        # Quiet hours
        self.QUIET_HOURS_ENABLED = _env_bool("QUIET_HOURS_ENABLED", True)
        self.QUIET_START = os.getenv("QUIET_START", "00:00")
        self.QUIET_END = os.getenv("QUIET_END", "05:00")
        self.VOICE_MESSAGE_URL = os.getenv("VOICE_MESSAGE_URL")

        # Optional settings
        self.PORT = int(os.getenv("PORT", "1337"))
        self.DEBUG = _env_bool("DEBUG", False)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        logger.info("Configuration loaded successfully")

    def _validate_required_config(self) -> None:
        """Validate that all required configuration values are present."""
        required_configs = {
            "PAGE_ACCESS_TOKEN": self.PAGE_ACCESS_TOKEN,
            "VERIFY_TOKEN": self.VERIFY_TOKEN,
        }

        missing_configs = [key for key, value in required_configs.items() if not value]

        if missing_configs:
            error_msg = (
                f"Missing required environment variables: {', '.join(missing_configs)}"
            )
            logger.critical(error_msg)
            raise ValueError(error_msg)

        # These raise ValueError on malformed values
        self.timezone
        self.quiet_window

        logger.info("Required configuration validation passed")

    @property
    def timezone(self) -> Any:
        """The pytz timezone used for display and schedule alignment."""
        try:
            return pytz.timezone(self.TIMEZONE)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown TIMEZONE '{self.TIMEZONE}'")

    @property
    def quiet_window(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        return parse_clock_time(self.QUIET_START), parse_clock_time(self.QUIET_END)

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of configuration for logging (excluding sensitive values)."""
        return {
            "PAGE_ACCESS_TOKEN": bool(self.PAGE_ACCESS_TOKEN),
            "VERIFY_TOKEN": bool(self.VERIFY_TOKEN),
            "ADMIN_USER_ID": bool(self.ADMIN_USER_ID),
            "STOCK_API_URL": self.STOCK_API_URL,
            "WEATHER_API_URL": self.WEATHER_API_URL,
            "FETCH_TIMEOUT": self.FETCH_TIMEOUT,
            "MAX_REQUESTS_PER_MINUTE": self.MAX_REQUESTS_PER_MINUTE,
            "SESSION_TIMEOUT_MINUTES": self.SESSION_TIMEOUT_MINUTES,
            "SCHEDULE_INTERVAL_MINUTES": self.SCHEDULE_INTERVAL_MINUTES,
            "TIMEZONE": self.TIMEZONE,
            "QUIET_HOURS_ENABLED": self.QUIET_HOURS_ENABLED,
            "PORT": self.PORT,
            "DEBUG": self.DEBUG,
            "LOG_LEVEL": self.LOG_LEVEL,
        }
