"""
Formatting helpers for stock notifications.

Turns stock items, report sections and weather into the plain-text
messages delivered over Messenger.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from type_definitions.stock_types import Quantity, Section, StockItem, Weather

ITEM_EMOJIS: Dict[str, str] = {
    "Common Egg": "🥚", "Uncommon Egg": "🐣", "Rare Egg": "🍳", "Legendary Egg": "🪺",
    "Mythical Egg": "🥚", "Bug Egg": "🪲",
    "Watering Can": "🚿", "Trowel": "🛠️", "Recall Wrench": "🔧", "Basic Sprinkler": "💧",
    "Advanced Sprinkler": "💦", "Godly Sprinkler": "⛲", "Lightning Rod": "⚡",
    "Master Sprinkler": "🌊", "Favorite Tool": "❤️", "Harvest Tool": "🌾",
    "Carrot": "🥕", "Strawberry": "🍓", "Blueberry": "🫐", "Orange Tulip": "🌷",
    "Tomato": "🍅", "Corn": "🌽", "Daffodil": "🌼", "Watermelon": "🍉", "Pumpkin": "🎃",
    "Apple": "🍎", "Bamboo": "🎍", "Coconut": "🥥", "Cactus": "🌵", "Dragon Fruit": "🍈",
    "Mango": "🥭", "Grape": "🍇", "Mushroom": "🍄", "Pepper": "🌶️", "Cacao": "🍫",
    "Beanstalk": "🌱",
}
DEFAULT_ITEM_EMOJI = "🌿"

SECTION_LABELS: Dict[str, str] = {
    "gear": "🛠️ Gear & Tools",
    "seed": "🌱 Seeds & Plants",
    "egg": "🥚 Eggs & Pets",
    "cosmetics": "🎨 Cosmetic Items",
    "honey": "🍯 Honey Products",
}

DISPLAY_TIME_FORMAT = "%b %d, %Y %I:%M:%S %p"


def format_value(value: Quantity) -> str:
    """
    Render a stock quantity.

    >>> format_value(500), format_value(1500), format_value(2_300_000)
    ('x500', 'x1.5K', 'x2.3M')
    """
    if value >= 1_000_000:
        return f"x{_one_decimal(value / 1_000_000)}M"
    if value >= 1_000:
        return f"x{_one_decimal(value / 1_000)}K"
    return f"x{value}"


def _one_decimal(value: float) -> Decimal:
    # Halves round up: 1.25 -> 1.3
    return Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def add_emoji(name: str) -> str:
    return f"{ITEM_EMOJIS.get(name, DEFAULT_ITEM_EMOJI)} {name}"


def format_item_line(item: StockItem) -> str:
    return f"  ├─ {add_emoji(item['name'])}: {format_value(item['value'])}"


def format_section(category: str, items: Sequence[StockItem], restock: Optional[str]) -> str:
    label = SECTION_LABELS.get(category, category.title())
    lines = [f"╭─ {label} ─────────╮"]
    lines.extend(format_item_line(item) for item in items)
    if restock:
        lines.append(f"  └─ ⏰ Next Restock: {restock}")
    lines.append("╰──────────────────────╯")
    return "\n".join(lines)


def format_weather(weather: Weather) -> str:
    return (
        "╭─ 🌤️ Weather & Bonuses ─╮\n"
        f"  ├─ Current: {weather['icon']} {weather['current_weather']}\n"
        f"  └─ Crop Bonus: 🌾 {weather['crop_bonuses']}\n"
        "╰──────────────────────╯"
    )


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(DISPLAY_TIME_FORMAT)


def format_divine_banner(divine_items: Sequence[StockItem]) -> str:
    lines = ["💎 DIVINE ALERT! Rare items in stock:"]
    lines.extend(f"  🌟 {add_emoji(item['name'])}: {format_value(item['value'])}" for item in divine_items)
    lines.append("⚡ Act fast, these sell out within minutes!")
    return "\n".join(lines)


def _render_sections(sections: Sequence[Section], restocks: Mapping[str, str]) -> List[str]:
    return [
        format_section(category, items, restocks.get(category))
        for category, items in sections
        if items
    ]


def build_stock_message(
    user_name: str,
    sections: Sequence[Section],
    weather: Weather,
    restocks: Mapping[str, str],
    updated_at: datetime,
    version: str,
    divine_items: Sequence[StockItem] = (),
) -> str:
    """Compose the scheduled stock notification."""
    parts: List[str] = [f"🌾 Hi {user_name}! Fresh Stock! 🌟"]
    if divine_items:
        parts.append(format_divine_banner(divine_items))
    parts.extend(_render_sections(sections, restocks))
    parts.append(format_weather(weather))
    parts.append(
        "╭─ 📊 Last Update ─────╮\n"
        f"  ├─ 📅 Time: {format_timestamp(updated_at)}\n"
        "  ├─ 🔄 Source: Live API Data\n"
        f"  └─ 🌟 Version: v{version}\n"
        "╰──────────────────────╯"
    )
    return "\n\n".join(parts)


def build_refresh_message(
    sections: Sequence[Section],
    weather: Weather,
    restocks: Mapping[str, str],
    updated_at: datetime,
) -> str:
    """Compose the reply to a manual refresh."""
    parts: List[str] = ["🔄 Stock Refreshed! Here's the latest:"]
    rendered = _render_sections(sections, restocks)
    parts.extend(rendered or ["🤷 Nothing matching your filters is in stock right now."])
    parts.append(format_weather(weather))
    parts.append(
        "╭─ 📊 Fresh Data ──────╮\n"
        f"  ├─ 📅 Updated: {format_timestamp(updated_at)}\n"
        "  └─ 🔄 Cache: Cleared & Fresh\n"
        "╰──────────────────────╯"
    )
    return "\n\n".join(parts)


def build_item_list(items: Sequence[StockItem]) -> str:
    return "\n".join(format_item_line(item) for item in items)
