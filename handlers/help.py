from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from utils.constants import MENU_BUTTON
from utils.telegram_helpers import safe_edit_text, safe_send_text


HELP_TEXT = (
    "<b>❓ How it works</b>\n\n"
    "1. Add words with <code>word | meaning</code>\n"
    "2. Group them into decks (everything is also in <b>All</b>); tap ✏️ in a deck to edit a word\n"
    "3. Study a deck: type the meaning, or the word, depending on the direction\n"
    "4. Capitals and extra spaces don't matter; a typo can be marked as correct\n\n"
    "Every word is drilled both ways. Correct answers push the next review "
    "further out (up to 30 days); a miss brings the card back in the same session.\n\n"
    "<b>Commands</b>\n"
    "/study · /add · /decks · /stats · /cancel"
)

_MARKUP = InlineKeyboardMarkup([MENU_BUTTON])


async def help_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await safe_edit_text(query, HELP_TEXT, reply_markup=_MARKUP)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await safe_send_text(update.message, HELP_TEXT, reply_markup=_MARKUP)
