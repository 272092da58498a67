"""
Type definitions for shop stock data structures.

This module contains the type definitions for the data fetched from the
Grow A Garden stock and weather APIs, and the category constants the
tracker uses to group it.
"""

from typing import Dict, List, Tuple, TypedDict, Union

Quantity = Union[int, float]


class StockItem(TypedDict):
    """One item on the shop shelf."""
    name: str
    value: Quantity


class Weather(TypedDict):
    """Current in-game weather, with defaults applied for missing fields."""
    current_weather: str
    icon: str
    crop_bonuses: str
    updated_at: str


class StockSnapshot(TypedDict):
    """Everything one fetch cycle knows about the shop."""
    gear: List[StockItem]
    seed: List[StockItem]
    egg: List[StockItem]
    cosmetics: List[StockItem]
    honey: List[StockItem]
    weather: Weather


# Category keys, in display order
CATEGORIES: Tuple[str, ...] = ("gear", "seed", "egg", "cosmetics", "honey")

# Filters are matched against these; the rest ride along when any match
PRIMARY_CATEGORIES: Tuple[str, ...] = ("gear", "seed")
SECONDARY_CATEGORIES: Tuple[str, ...] = ("egg", "cosmetics", "honey")

# Only these feed the duplicate-suppression fingerprint
FINGERPRINT_CATEGORIES: Tuple[str, ...] = ("gear", "seed")

# A report section: (category, items to show)
Section = Tuple[str, List[StockItem]]

CategoryItems = Dict[str, List[StockItem]]
