import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from utils.telegram_helpers import safe_edit_text, safe_send_text


def build_main_menu() -> tuple[str, InlineKeyboardMarkup]:
    """
    Returns (message_text, markup) for the main menu.
    Text includes a one-line summary of the collection.
    """
    stats = db.get_collection_stats()
    total = stats['items']
    due = stats['due_now']

    if total == 0:
        text = "\U0001f4da <b>Vocab</b>\n\n<i>No words yet: add your first one!</i>"
    elif due == 0:
        text = f"✅ <b>All caught up!</b>\n\n<i>{total} items in your collection</i>"
    elif due == 1:
        text = f"\U0001f9e0 <b>1 card due</b>\n\n<i>{total} items total</i>"
    else:
        text = f"\U0001f9e0 <b>{due} cards due</b>\n\n<i>{total} items total</i>"

    study_label = f'\U0001f9e0 Study · {due} due' if due > 0 else '\U0001f9e0 Study'
    markup = InlineKeyboardMarkup([
        [
            InlineKeyboardButton('\U0001f4dd New Word', callback_data='add_item'),
            InlineKeyboardButton(study_label, callback_data='study'),
        ],
        [
            InlineKeyboardButton('\U0001f4da My Decks', callback_data='my_decks'),
            InlineKeyboardButton('\U0001f4ca Stats', callback_data='stats'),
        ],
        [InlineKeyboardButton('❓ How it works', callback_data='help')],
    ])

    return text, markup


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    logging.info("Started /start")

    name = update.effective_user.first_name
    text, markup = build_main_menu()
    await safe_send_text(
        update.message,
        f"Hey {html.escape(name)} \U0001f44b\n\n{text}",
        reply_markup=markup,
    )


_CONV_KEYS = (
    # add-item flow
    'cur_item', 'cur_deck_id', 'cur_kind',
    # study flow
    'study_session', 'study_deck_id', 'study_last_result',
    # manage flow
    'renaming_deck_id', 'manage_deck_id', 'manage_deck_page',
    'editing_item_id', 'edit_item_parsed', 'edit_item_kind',
)


async def _reset_and_send_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Clear all in-progress conversation state and send a fresh main menu."""
    for key in _CONV_KEYS:
        context.user_data.pop(key, None)
    text, markup = build_main_menu()
    await safe_send_text(update.message, text, reply_markup=markup)


async def force_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """ConversationHandler fallback: abort current flow and show main menu."""
    await _reset_and_send_menu(update, context)
    return ConversationHandler.END


async def main_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Callback handler for the 'Menu' button (outside conversation)."""
    query = update.callback_query
    await query.answer()

    text, markup = build_main_menu()
    await safe_edit_text(query, text, reply_markup=markup)
