from typing import Any

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

import database.database as db
from utils.constants import MENU_BUTTON
from utils.telegram_helpers import safe_edit_text, safe_send_text

DECKS_PER_PAGE = 5


async def my_decks_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Entry point from main menu: show first page of decks."""
    query = update.callback_query
    await query.answer()

    header, markup = build_decks_page(page=0)
    await safe_edit_text(query, header, reply_markup=markup)


async def decks_page(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle page navigation."""
    query = update.callback_query
    await query.answer()

    page = int(query.data.split('_')[2])  # decks_page_N
    header, markup = build_decks_page(page)
    await safe_edit_text(query, header, reply_markup=markup)


async def decks_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/decks slash command: send a fresh My Decks list."""
    header, markup = build_decks_page(page=0)
    await safe_send_text(update.message, header, reply_markup=markup)


def build_decks_page(page: int) -> tuple[str, InlineKeyboardMarkup]:
    """
    Header and buttons for one page of the deck list.
    The All deck always exists, so the list is never empty.
    """
    decks = db.get_all_decks()
    total_pages = max(1, (len(decks) + DECKS_PER_PAGE - 1) // DECKS_PER_PAGE)
    page = max(0, min(page, total_pages - 1))

    start = page * DECKS_PER_PAGE
    page_decks = decks[start:start + DECKS_PER_PAGE]

    if total_pages > 1:
        header = f"\U0001f4da My Decks ({page + 1}/{total_pages})"
    else:
        header = "\U0001f4da My Decks"

    buttons: list[list[InlineKeyboardButton]] = [
        [_deck_button(d)] for d in page_decks
    ]

    if total_pages > 1:
        nav: list[InlineKeyboardButton] = []
        if page > 0:
            nav.append(InlineKeyboardButton("←", callback_data=f'decks_page_{page - 1}'))
        if page < total_pages - 1:
            nav.append(InlineKeyboardButton("→", callback_data=f'decks_page_{page + 1}'))
        buttons.append(nav)

    buttons.append([InlineKeyboardButton("➕ New deck", callback_data='new_deck')])
    buttons.append(MENU_BUTTON)

    return header, InlineKeyboardMarkup(buttons)


def _deck_button(deck: dict[str, Any]) -> InlineKeyboardButton:
    due = deck['due_count'] or 0
    total = deck['item_count'] or 0
    due_part = f"  ❗ {due} due" if due > 0 else ""
    label = f"\U0001f4da {deck['name']} · {total} items{due_part}"
    return InlineKeyboardButton(label, callback_data=f"deck_open_{deck['id']}")
