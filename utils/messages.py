"""Canned reply texts for bot commands and questions."""

from typing import Mapping, Sequence

from utils.formatters import SECTION_LABELS


def help_message(version: str) -> str:
    return (
        "🤖 GagStock Bot Help ✨\n\n"
        "🌾 Main commands:\n"
        "🟢 gagstock on - Start tracking all items\n"
        "🎯 gagstock on Sunflower | Can - Track specific items\n"
        "🔴 gagstock off - Stop tracking\n\n"
        "⚡ Quick actions:\n"
        "🔄 refresh - Force a fresh stock report\n"
        "🔕 dnd on|off|status - Pause or resume notifications\n"
        "⏰ nextstock gear|seed|egg|all - Restock countdowns\n"
        "👑 custom divine - Premium divine item check\n\n"
        "💬 You can also ask me things like \"What stock today?\" or "
        "\"When is next restock?\"\n\n"
        f"🌟 Version: v{version}"
    )


def start_message(filters: Sequence[str], interval_minutes: int) -> str:
    if filters:
        tracking = f"🎯 Filtering for: {', '.join(filters)}"
    else:
        tracking = "📋 Tracking all available items"
    return (
        "✅ Gagstock tracking started! 🌱\n\n"
        f"{tracking}\n"
        f"🔄 I check the shop every {interval_minutes} minutes and only message you "
        "when something changes.\n\n"
        "Type 'gagstock off' to stop. 💚"
    )


STOP_MESSAGE = (
    "🛑 Gagstock tracking stopped.\n\n"
    "Your session and cached data have been cleared. Come back anytime! 🚀"
)

NO_SESSION_MESSAGE = (
    "⚠️ You don't have an active gagstock session.\n\n"
    "Type 'gagstock on' to start tracking. 🌟"
)

ALREADY_ACTIVE_MESSAGE = (
    "📡 You're already tracking Gagstock!\n\n"
    "Type 'gagstock off' first if you want to change your filters. 🌟"
)

GAGSTOCK_USAGE = (
    "📝 Usage:\n"
    "• gagstock on - Track all items\n"
    "• gagstock on Sunflower | Watering Can - Track specific items\n"
    "• gagstock off - Stop tracking"
)

INITIAL_FETCH_FAILED_MESSAGE = (
    "❌ Couldn't reach the stock servers right now, so tracking was not started.\n\n"
    "🔄 Please try 'gagstock on' again in a minute."
)

NO_MATCH_MESSAGE = (
    "🔍 None of your filtered items are in stock right now.\n\n"
    "I'll keep watching and message you when they show up. 🌱"
)

REFRESH_NO_SESSION_MESSAGE = (
    "⚠️ There's no active session to refresh.\n\n"
    "Type 'gagstock on' to start tracking first. 🌱"
)

REFRESHING_MESSAGE = "🔄 Refreshing stock data, clearing your cache... 🪄"

REFRESH_FAILED_MESSAGE = (
    "❌ Refresh failed, the stock servers didn't answer.\n\n"
    "Please try again shortly. 💚"
)

DND_USAGE = (
    "🔕 Do Not Disturb\n\n"
    "• dnd on - Pause stock notifications\n"
    "• dnd off - Resume notifications\n"
    "• dnd status - Show the current setting"
)

DND_ENABLED_MESSAGE = (
    "🔕 Do Not Disturb enabled.\n\n"
    "Your tracking keeps running quietly. Type 'dnd off' to resume. 🌟"
)

DND_DISABLED_MESSAGE = "🔔 Do Not Disturb disabled. Notifications are back on! 💚"


def dnd_status_message(enabled: bool, tracking: bool) -> str:
    mode = "🔕 ON, notifications paused" if enabled else "🔔 OFF, notifications active"
    session = "🟢 Active" if tracking else "⚪ Not tracking"
    return f"📊 Do Not Disturb status\n\nMode: {mode}\nTracking: {session}"


NEXTSTOCK_USAGE = (
    "⏰ Next Restock\n\n"
    "• nextstock gear\n"
    "• nextstock seed\n"
    "• nextstock egg\n"
    "• nextstock all"
)


def next_restock_message(
    countdowns: Mapping[str, str], frequencies: Mapping[str, str], categories: Sequence[str]
) -> str:
    lines = ["⏰ Next restock times:\n"]
    for category in categories:
        label = SECTION_LABELS.get(category, category.title())
        lines.append(f"{label}: {countdowns[category]}")
        lines.append(f"  └─ 🔄 {frequencies[category]}")
    return "\n".join(lines)


OFFLINE_MESSAGE = (
    "🌙 The bot is resting right now for nightly maintenance.\n\n"
    "⏰ Tracking will be available again at 5:00 AM. Sweet dreams! ✨"
)

QUIET_START_MESSAGE = (
    "🌙 Good night from GagStock!\n\n"
    "The bot is going to rest until 5:00 AM and your tracking session has ended. "
    "Type 'gagstock on' in the morning to start again. 💤"
)

QUIET_END_MESSAGE = "☀️ GagStock is back online! Tracking is available again. 🚀"

RATE_LIMITED_MESSAGE = (
    "⏰ Whoa there, you're sending messages a bit too quickly!\n\n"
    "Please wait a moment and try again. 🌱"
)

ERROR_MESSAGE = "⚠️ Something went wrong on our side. Please try again in a moment."


def unknown_command_message(command: str) -> str:
    return (
        f"❓ I didn't understand '{command}'.\n\n"
        "💬 Try asking \"What stock today?\" or type 'help' to see every command."
    )


PREMIUM_REQUIRED_MESSAGE = (
    "🔒 This is a premium command.\n\n"
    "Contact the bot admin to request access. 💚"
)

ADMIN_REQUIRED_MESSAGE = "🔒 Only the bot admin can use that command."

PREMIUM_MENU = (
    "👑 Premium commands\n\n"
    "• custom divine - Check divine items in stock now\n"
    "• custom grant <user id> - Give a user premium access (admin)\n"
    "• custom revoke <user id> - Remove premium access (admin)\n"
    "• custom sessions - List active tracking sessions (admin)"
)

NO_DIVINE_MESSAGE = (
    "😔 No divine items are in stock right now.\n\n"
    "Watched items: Beanstalk, Basic Sprinkler, Master Sprinkler, Godly Sprinkler, Ember Lily. 💎"
)


def divine_found_message(item_list: str) -> str:
    return f"💎 Divine items are in stock!\n\n{item_list}\n\n⚡ Act fast, they sell out quickly!"


DIVINE_FETCH_FAILED_MESSAGE = "❌ Couldn't fetch divine item data right now. Please try again shortly."


def sessions_message(user_ids: Sequence[str]) -> str:
    if not user_ids:
        return "📭 No active tracking sessions."
    listed = "\n".join(f"• {user_id}" for user_id in user_ids)
    return f"📡 {len(user_ids)} active session(s):\n\n{listed}"


# Replies to questions that did not match a command
WEATHER_INFO_MESSAGE = (
    "🌤️ Weather affects crop bonuses in Grow A Garden!\n\n"
    "☀️ Sunny: normal growth\n"
    "🌧️ Rainy: water bonus\n"
    "⛅ Cloudy: reduced growth\n"
    "🌪️ Stormy: special events\n\n"
    "🔄 Use 'refresh' to see the current weather and active bonuses."
)

PRICING_INFO_MESSAGE = (
    "💰 Items have different price ranges:\n\n"
    "🌱 Seeds: 50-5,000 coins\n"
    "🛠️ Tools: 100-50,000 coins\n"
    "🥚 Eggs: 1,000-100,000 coins\n"
    "🎨 Cosmetics: 500-25,000 coins\n"
    "💎 Divine: 10,000+ coins"
)

HOW_IT_WORKS_MESSAGE = (
    "🤖 I'm your Grow A Garden stock tracking assistant!\n\n"
    "📊 I watch the shop every 5 minutes\n"
    "🎯 I only message you when your items change\n"
    "💎 I flag divine items the moment they appear\n"
    "⏰ I can tell you when each category restocks"
)

QUICK_HELP_MESSAGE = (
    "📖 You can ask me naturally:\n\n"
    "💬 \"What stock today?\"\n"
    "💬 \"When is next restock?\"\n"
    "💬 \"Show me divine items\"\n\n"
    "Or type 'help' for the full command list."
)

GENERAL_QUESTION_MESSAGE = (
    "🤔 I'm not sure about that one!\n\n"
    "I can show today's stock, restock times, divine items and weather. "
    "Type 'help' to see everything I can do."
)

QUICK_WEATHER_MESSAGE = (
    "🌤️ Current weather affects your crops!\n\n"
    "🔄 Use 'refresh' or start tracking to see live weather updates."
)
