import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from database.errors import ValidationError
from database.schema import DEFAULT_DECK_ID
from study.models import ItemKind
import utils.utils as utils
from utils.constants import AddItemState, PREVIEW_BUTTONS, KIND_EMOJIS
from utils.telegram_helpers import safe_edit_text, safe_send_text

ADD_HINT = (
    "\U0001f4dd Send me a word\n\n"
    "<i>Use <code>word | meaning</code> or two lines.\n"
    "Add a third part for notes: <code>word | meaning | notes</code></i>"
)


async def add_item_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(query, ADD_HINT + _defaults_line(context))
    return AddItemState.AWAITING_CONTENT


async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """/add slash command."""
    await safe_send_text(update.message, ADD_HINT + _defaults_line(context))
    return AddItemState.AWAITING_CONTENT


async def get_content(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    logging.info("Got item content")

    parsed = utils.parse_item_text(update.message.text or '')

    if not parsed['source']:
        await safe_send_text(update.message, "⚠️ Word can't be empty. Send some text:")
        return AddItemState.AWAITING_CONTENT

    if len(parsed['source']) > db.ITEM_TEXT_MAX or len(parsed['meaning']) > db.ITEM_TEXT_MAX:
        await safe_send_text(
            update.message,
            f"⚠️ Too long — each side can be up to {db.ITEM_TEXT_MAX} characters. Try again:"
        )
        return AddItemState.AWAITING_CONTENT

    if not parsed['meaning']:
        hint = html.escape(parsed['source'][:20])
        await safe_send_text(
            update.message,
            f"⚠️ A word needs a meaning.\n\n"
            f"Use <code>|</code> to separate them:\n"
            f"<code>{hint} | meaning here</code>\n\n"
            f"Or send two lines:\n"
            f"<code>{hint}\nmeaning here</code>"
        )
        return AddItemState.AWAITING_CONTENT

    context.user_data['cur_item'] = parsed

    if context.user_data.get('cur_kind'):
        await preview(update.message, context)
        return AddItemState.CONFIRMATION_PREVIEW

    await safe_send_text(update.message, "\U0001f3f7 What kind of item is it?", reply_markup=_kind_markup(None))
    return AddItemState.AWAITING_KIND


async def change_kind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(
        query,
        "\U0001f3f7 What kind of item is it?",
        reply_markup=_kind_markup(context.user_data.get('cur_kind')),
    )
    return AddItemState.AWAITING_KIND


async def set_kind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    kind = query.data.split('_')[2]  # set_kind_word -> 'word'
    context.user_data['cur_kind'] = kind

    await preview(query, context)
    return AddItemState.CONFIRMATION_PREVIEW


async def change_deck(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    # Everything lands in the All deck anyway; offer the user's own decks
    decks = [d for d in db.get_all_decks() if d['id'] != DEFAULT_DECK_ID]
    buttons = utils.get_buttons(decks, 'deck')
    buttons.append([InlineKeyboardButton("Only \"All\"", callback_data='deck_0')])
    buttons.append([InlineKeyboardButton("← Back", callback_data='back')])

    await safe_edit_text(query, "\U0001f4c1 Pick a deck", reply_markup=InlineKeyboardMarkup(buttons))
    return AddItemState.AWAITING_DECK


async def selected_deck(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    deck_id = int(query.data.split('_')[1])
    if deck_id:
        context.user_data['cur_deck_id'] = deck_id
    else:
        context.user_data.pop('cur_deck_id', None)

    await preview(query, context)
    return AddItemState.CONFIRMATION_PREVIEW


async def back_to_preview(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await preview(query, context)
    return AddItemState.CONFIRMATION_PREVIEW


async def save_item(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    cur_item = context.user_data.get('cur_item')
    kind = context.user_data.get('cur_kind')

    if not cur_item or not kind:
        await safe_edit_text(
            query,
            "⚠️ Session expired — please start over.",
            reply_markup=InlineKeyboardMarkup([[InlineKeyboardButton('Menu', callback_data='main_menu')]])
        )
        return ConversationHandler.END

    deck_id = _remembered_deck_id(context)

    try:
        db.create_item(
            kind,
            cur_item['source'],
            cur_item['meaning'],
            cur_item.get('notes'),
            deck_ids=[deck_id] if deck_id else None,
        )
    except ValidationError as e:
        logging.info(f"Item rejected: {e}")
        await safe_edit_text(query, f"⚠️ {html.escape(str(e))}\n\nSend it again:")
        return AddItemState.AWAITING_CONTENT

    # Kind and deck stay selected for the next item
    context.user_data.pop('cur_item', None)

    await safe_edit_text(
        query,
        "✔️ Saved! Send me another one",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton("Menu", callback_data='main_menu')]
        ])
    )
    return AddItemState.AWAITING_CONTENT


async def edit_item(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(query, "✏️ Send the new content")
    return AddItemState.AWAITING_CONTENT


async def preview(message_or_query, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Works with both Message and CallbackQuery."""
    cur_item = context.user_data.get('cur_item', {})
    kind = context.user_data.get('cur_kind', ItemKind.WORD.value)
    deck_id = _remembered_deck_id(context)
    deck_name = db.get_deck_name(deck_id) if deck_id else None

    notes = cur_item.get('notes')
    notes_line = f"<b>Notes:</b> {html.escape(notes)}\n" if notes else ""
    decks_label = f"All + {html.escape(deck_name)}" if deck_name else "All"

    text = (
        f"<b>\U0001f4cb Preview</b>\n\n"
        f"<b>Word:</b> {html.escape(cur_item.get('source', ''))}\n"
        f"<b>Meaning:</b> {html.escape(cur_item.get('meaning', ''))}\n"
        f"{notes_line}\n"
        f"<i>{KIND_EMOJIS.get(kind, '')} {kind}  ·  \U0001f4c1 {decks_label}</i>"
    )
    markup = InlineKeyboardMarkup(PREVIEW_BUTTONS)

    if hasattr(message_or_query, 'reply_text'):
        await safe_send_text(message_or_query, text, reply_markup=markup)
    else:
        await safe_edit_text(message_or_query, text, reply_markup=markup)


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop('cur_item', None)

    from handlers.start import build_main_menu
    text, markup = build_main_menu()

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)

    return ConversationHandler.END


def _kind_markup(current: str | None) -> InlineKeyboardMarkup:
    def _label(kind: ItemKind) -> str:
        base = f"{KIND_EMOJIS[kind.value]} {kind.value.capitalize()}"
        return f"✔ {base}" if current == kind.value else base

    kinds = list(ItemKind)
    rows = [
        [InlineKeyboardButton(_label(k), callback_data=f'set_kind_{k.value}') for k in kinds[i:i + 2]]
        for i in range(0, len(kinds), 2)
    ]
    return InlineKeyboardMarkup(rows)


def _defaults_line(context: ContextTypes.DEFAULT_TYPE) -> str:
    kind = context.user_data.get('cur_kind')
    deck_id = _remembered_deck_id(context)
    if not kind and not deck_id:
        return ""
    deck_name = db.get_deck_name(deck_id) if deck_id else None
    parts = [kind or 'type not set', f"\U0001f4c1 {html.escape(deck_name)}" if deck_name else "\U0001f4c1 All"]
    return f"\n\n<i>{'  ·  '.join(parts)}</i>"


def _remembered_deck_id(context: ContextTypes.DEFAULT_TYPE) -> int | None:
    """The sticky deck choice, forgotten once that deck has been deleted."""
    deck_id = context.user_data.get('cur_deck_id')
    if deck_id and db.get_deck(deck_id) is None:
        logging.info(f"Remembered deck {deck_id} is gone, falling back to All")
        context.user_data.pop('cur_deck_id', None)
        return None
    return deck_id
