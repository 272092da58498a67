"""
Centralized client for the Grow A Garden stock and weather APIs.

This module fetches both remote resources concurrently with a bounded
timeout and normalizes them into a ``StockSnapshot``. Missing weather fields
fall back to defaults; a missing or malformed stock category is a hard
failure.
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

import requests
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout

from type_definitions.stock_types import (
    CATEGORIES,
    CategoryItems,
    Quantity,
    StockItem,
    StockSnapshot,
    Weather,
)

logger = logging.getLogger("GagStock.StockClient")

USER_AGENT = "GagStock-Alerts/3.1"

WEATHER_DEFAULTS = {
    "current_weather": "Unknown",
    "icon": "🌤️",
    "crop_bonuses": "None",
}


class StockFetchError(Exception):
    """Raised when remote stock or weather data cannot be fetched or parsed."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.message = message
        self.url = url
        super().__init__(self.message)


def _to_quantity(raw: Any) -> Quantity:
    value = float(raw)
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Quantity is not a finite number: {raw!r}")
    return int(value) if value.is_integer() else value


def parse_stock_payload(payload: Any) -> CategoryItems:
    """
    Normalize the stock API response into category -> items.

    Args:
        payload: Decoded JSON of the form
            ``{"data": {"gear": {"items": [{"name": ..., "quantity": ...}]}, ...}}``

    Returns:
        Mapping of every category in ``CATEGORIES`` to its item list

    Raises:
        StockFetchError: If any category is missing or an item is malformed
    """
    try:
        data = payload["data"]
        stock: CategoryItems = {}
        for category in CATEGORIES:
            items = data[category]["items"]
            if not isinstance(items, list):
                raise TypeError(f"'{category}.items' is not a list")
            stock[category] = [
                StockItem(name=str(item["name"]), value=_to_quantity(item["quantity"]))
                for item in items
            ]
        return stock
    except (KeyError, TypeError, ValueError) as e:
        raise StockFetchError(f"Malformed stock data: {e}")


def parse_weather_payload(
    payload: Any, now: Optional[Callable[[], datetime]] = None
) -> Weather:
    """Normalize the weather API response, applying defaults for missing fields."""
    if not isinstance(payload, dict):
        payload = {}
    now = now or (lambda: datetime.now(timezone.utc))
    return Weather(
        current_weather=payload.get("currentWeather") or WEATHER_DEFAULTS["current_weather"],
        icon=payload.get("icon") or WEATHER_DEFAULTS["icon"],
        crop_bonuses=payload.get("cropBonuses") or WEATHER_DEFAULTS["crop_bonuses"],
        updated_at=payload.get("updatedAt") or now().isoformat(),
    )


class StockClient:
    """Client for the stock and weather endpoints."""

    def __init__(
        self,
        stock_url: str,
        weather_url: str,
        timeout: float = 5.0,
        max_retries: int = 1,
    ) -> None:
        """
        Initialize the stock client.

        Args:
            stock_url: Stock endpoint URL
            weather_url: Weather endpoint URL
            timeout: Per-request timeout in seconds
            max_retries: Attempts per request; network errors and 5xx retry
        """
        self.logger = logging.getLogger("GagStock.StockClient")
        self.stock_url = stock_url
        self.weather_url = weather_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

    def fetch_remote_state(self, url: str) -> Any:
        """
        GET a JSON document.

        Raises:
            StockFetchError: On network errors, timeouts, HTTP errors or bad JSON
        """
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

        for attempt in range(self.max_retries):
            try:
                self.logger.debug(
                    f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.get(url, headers=headers, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status is not None and status >= 500 and attempt < self.max_retries - 1:
                    self.logger.warning(
                        f"Server error {status} from {url}, attempt {attempt + 1}/{self.max_retries}"
                    )
                    time.sleep(0.5 * (attempt + 1))
                    continue
                raise StockFetchError(f"HTTP error {status} from {url}", url=url)

            except (ConnectionError, Timeout) as e:
                if attempt < self.max_retries - 1:
                    self.logger.warning(
                        f"Network error for {url}: {e}, attempt {attempt + 1}/{self.max_retries}"
                    )
                    time.sleep(0.5 * (attempt + 1))
                    continue
                raise StockFetchError(f"Network error for {url}: {e}", url=url)

            except RequestException as e:
                raise StockFetchError(f"Request failed for {url}: {e}", url=url)

            except ValueError as e:
                raise StockFetchError(f"Invalid JSON from {url}: {e}", url=url)

        raise StockFetchError(f"Failed to fetch {url} after {self.max_retries} attempts", url=url)

    def fetch_stock(self) -> CategoryItems:
        return parse_stock_payload(self.fetch_remote_state(self.stock_url))

    def fetch_weather(self) -> Weather:
        return parse_weather_payload(self.fetch_remote_state(self.weather_url))

    def fetch_snapshot(self) -> StockSnapshot:
        """
        Fetch stock and weather concurrently and combine them.

        Raises:
            StockFetchError: If either fetch fails
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="stock-fetch") as pool:
            stock_future = pool.submit(self.fetch_stock)
            weather_future = pool.submit(self.fetch_weather)
            stock = stock_future.result()
            weather = weather_future.result()

        snapshot = StockSnapshot(
            gear=stock["gear"],
            seed=stock["seed"],
            egg=stock["egg"],
            cosmetics=stock["cosmetics"],
            honey=stock["honey"],
            weather=weather,
        )
        total = sum(len(stock[category]) for category in CATEGORIES)
        self.logger.info(f"Fetched stock snapshot with {total} items")
        return snapshot

    def fetch_all_items(self) -> List[StockItem]:
        """Every item across all categories, stock endpoint only."""
        stock = self.fetch_stock()
        return [item for category in CATEGORIES for item in stock[category]]

