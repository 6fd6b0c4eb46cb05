from datetime import date
from typing import Any

from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes

import database.database as db
from study.models import ItemKind
from utils.constants import KIND_EMOJIS, MENU_BUTTON
from utils.telegram_helpers import safe_edit_text, safe_send_text
from utils.utils import plural


def _forecast_lines(forecast: list[dict[str, Any]]) -> str:
    if not any(entry['count'] for entry in forecast):
        return "  Nothing due in the next 7 days"

    lines = []
    for entry in forecast:
        day = date.fromisoformat(entry['day'])
        day_label = day.strftime('%b %d')  # "Feb 18"
        lines.append(f"  {day_label}  ·  {plural(entry['count'], 'card')}")
    return '\n'.join(lines)


def _build_stats_text() -> str:
    stats = db.get_collection_stats()
    forecast = db.get_forecast(days=7)

    kinds = '\n'.join(
        f"{KIND_EMOJIS[kind.value]} {kind.value.capitalize()}: {stats[kind.value]}"
        for kind in ItemKind
    )
    return (
        f"\U0001f4ca <b>Stats</b>\n\n"
        f"\U0001f4da Items: {stats['items']}\n"
        f"{kinds}\n\n"
        f"\U0001f195 Not yet recalled: {stats['unlearned']}\n"
        f"\U0001f514 Due now: {stats['due_now']}\n\n"
        f"\U0001f4c5 Next 7 days\n"
        f"{_forecast_lines(forecast)}"
    )


async def stats_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(query, _build_stats_text(), reply_markup=InlineKeyboardMarkup([MENU_BUTTON]))


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/stats slash command: send a fresh stats message."""
    await safe_send_text(update.message, _build_stats_text(), reply_markup=InlineKeyboardMarkup([MENU_BUTTON]))
