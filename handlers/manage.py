import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, CallbackQuery
from telegram.ext import (
    ContextTypes, ConversationHandler,
    MessageHandler, CommandHandler, CallbackQueryHandler, filters,
)

import database.database as db
from database.errors import ValidationError
from database.schema import DEFAULT_DECK_ID
from handlers.decks_menu import build_decks_page
from handlers.start import force_start
from study.models import ItemKind
from utils.constants import ManageState, DIRECTION_LABELS, KIND_EMOJIS
from utils.telegram_helpers import safe_edit_text, safe_send_text
from utils.utils import parse_item_text

ITEMS_PER_PAGE = 5
ADD_CHOICES_MAX = 8
SOURCE_MAX = 30

MY_DECKS_BUTTON = [InlineKeyboardButton('\U0001f4da My Decks', callback_data='my_decks')]


def _truncate(text: str, max_len: int) -> str:
    return text if len(text) <= max_len else text[:max_len - 1] + '…'


async def _show_deck_detail(
    query: CallbackQuery,
    context: ContextTypes.DEFAULT_TYPE,
    deck_id: int,
    page: int = 0,
) -> None:
    deck = db.get_deck(deck_id)
    if not deck:
        await safe_edit_text(query, "Deck not found.", reply_markup=InlineKeyboardMarkup([MY_DECKS_BUTTON]))
        return

    is_default = deck_id == DEFAULT_DECK_ID
    items = db.get_items_in_deck(deck_id)
    total = len(items)
    total_pages = max(1, (total + ITEMS_PER_PAGE - 1) // ITEMS_PER_PAGE)
    page = max(0, min(page, total_pages - 1))

    context.user_data['manage_deck_id'] = deck_id
    context.user_data['manage_deck_page'] = page

    start = page * ITEMS_PER_PAGE
    page_items = items[start:start + ITEMS_PER_PAGE]

    lines = [
        f"{i}. <b>{html.escape(_truncate(item['source'], SOURCE_MAX))}</b> — "
        f"{html.escape(_truncate(item['meaning'], SOURCE_MAX))}"
        for i, item in enumerate(page_items, start=1)
    ]
    item_list = '\n'.join(lines) if lines else '<i>No words yet</i>'

    pages = f"  ({page + 1}/{total_pages})" if total_pages > 1 else ""
    direction = DIRECTION_LABELS.get(deck['study_direction'], deck['study_direction'])
    text = (
        f"<b>\U0001f4da {html.escape(deck['name'])}</b> · {total} items{pages}\n"
        f"<i>Direction: {direction}</i>\n\n"
        f"{item_list}"
    )

    buttons: list[list[InlineKeyboardButton]] = []

    # Per listed item: the All deck deletes, other decks only unlink; every deck edits
    if page_items:
        if is_default:
            buttons.append([
                InlineKeyboardButton(f'\U0001f5d1 {i}', callback_data=f"item_delete_{item['id']}")
                for i, item in enumerate(page_items, start=1)
            ])
        else:
            buttons.append([
                InlineKeyboardButton(f'✖ {i}', callback_data=f"item_remove_{deck_id}_{item['id']}")
                for i, item in enumerate(page_items, start=1)
            ])
        buttons.append([
            InlineKeyboardButton(f'✏️ {i}', callback_data=f"item_edit_{item['id']}")
            for i, item in enumerate(page_items, start=1)
        ])

    if total_pages > 1:
        nav: list[InlineKeyboardButton] = []
        if page > 0:
            nav.append(InlineKeyboardButton('←', callback_data=f'deck_page_{deck_id}_{page - 1}'))
        if page < total_pages - 1:
            nav.append(InlineKeyboardButton('→', callback_data=f'deck_page_{deck_id}_{page + 1}'))
        buttons.append(nav)

    if total > 0:
        buttons.append([InlineKeyboardButton('\U0001f9e0 Study', callback_data=f'study_deck_{deck_id}')])

    if not is_default:
        buttons.append([InlineKeyboardButton('➕ Add words', callback_data=f'deck_add_{deck_id}')])
        buttons.append([
            InlineKeyboardButton('✏️ Rename', callback_data=f'deck_rename_{deck_id}'),
            InlineKeyboardButton('\U0001f5d1 Delete deck', callback_data=f'deck_delete_{deck_id}'),
        ])
    buttons.append(MY_DECKS_BUTTON)

    await safe_edit_text(query, text, reply_markup=InlineKeyboardMarkup(buttons))


# ── Standalone callbacks ──────────────────────────────────────

async def deck_open(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    deck_id = int(query.data.split('_')[2])
    await _show_deck_detail(query, context, deck_id)


async def deck_items_page(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    parts = query.data.split('_')
    await _show_deck_detail(query, context, int(parts[2]), int(parts[3]))


async def item_remove(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Unlink an item from a user deck. The item itself stays."""
    query = update.callback_query
    parts = query.data.split('_')  # item_remove_<deck>_<item>
    deck_id, item_id = int(parts[2]), int(parts[3])

    try:
        db.remove_item_from_deck(deck_id, item_id)
    except ValidationError as e:
        await query.answer(str(e), show_alert=True)
        return

    await query.answer("Removed from deck")
    await _show_deck_detail(query, context, deck_id, context.user_data.get('manage_deck_page', 0))


async def item_delete_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    item_id = int(query.data.split('_')[2])

    item = db.get_item(item_id)
    if not item:
        await _show_deck_detail(query, context, DEFAULT_DECK_ID)
        return

    await safe_edit_text(
        query,
        f"\U0001f5d1 Delete <b>{html.escape(item['source'])}</b> from your collection?\n"
        f"<i>It leaves every deck and its review history is lost.</i>",
        reply_markup=InlineKeyboardMarkup([
            [
                InlineKeyboardButton('Yes, delete', callback_data=f'item_delete_yes_{item_id}'),
                InlineKeyboardButton('Cancel', callback_data=f'deck_open_{DEFAULT_DECK_ID}'),
            ]
        ]),
    )


async def item_delete_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    item_id = int(query.data.split('_')[3])

    db.delete_item(item_id)
    await _show_deck_detail(query, context, DEFAULT_DECK_ID, context.user_data.get('manage_deck_page', 0))


async def deck_add_items(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Offer items not yet in the deck; each tap adds one."""
    query = update.callback_query
    await query.answer()
    await _show_add_choices(query, int(query.data.split('_')[2]))


async def deck_add_item_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    parts = query.data.split('_')  # deck_additem_<deck>_<item>
    deck_id, item_id = int(parts[2]), int(parts[3])

    db.add_items_to_deck(deck_id, [item_id])
    await query.answer("Added")
    await _show_add_choices(query, deck_id)


async def _show_add_choices(query: CallbackQuery, deck_id: int) -> None:
    candidates = db.get_items_not_in_deck(deck_id)[:ADD_CHOICES_MAX]
    if not candidates:
        await safe_edit_text(
            query,
            "Every word is already in this deck.",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton('← Back', callback_data=f'deck_open_{deck_id}')]
            ]),
        )
        return

    buttons = [
        [InlineKeyboardButton(
            f"➕ {_truncate(item['source'], SOURCE_MAX)} — {_truncate(item['meaning'], SOURCE_MAX)}",
            callback_data=f"deck_additem_{deck_id}_{item['id']}",
        )]
        for item in candidates
    ]
    buttons.append([InlineKeyboardButton('✔ Done', callback_data=f'deck_open_{deck_id}')])
    await safe_edit_text(query, "Tap a word to add it:", reply_markup=InlineKeyboardMarkup(buttons))


async def deck_delete_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    deck_id = int(query.data.split('_')[2])

    deck_name = db.get_deck_name(deck_id) or 'this deck'
    await safe_edit_text(
        query,
        f"\U0001f5d1 Delete deck <b>{html.escape(deck_name)}</b>?\n<i>The words stay in your collection.</i>",
        reply_markup=InlineKeyboardMarkup([
            [
                InlineKeyboardButton('Yes, delete', callback_data=f'deck_delete_yes_{deck_id}'),
                InlineKeyboardButton('Cancel', callback_data=f'deck_open_{deck_id}'),
            ]
        ]),
    )


async def deck_delete_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    deck_id = int(query.data.split('_')[3])

    try:
        db.delete_deck(deck_id)
    except ValidationError as e:
        await query.answer(str(e), show_alert=True)
        return

    await query.answer()
    context.user_data.pop('manage_deck_id', None)
    context.user_data.pop('manage_deck_page', None)

    # Straight back to My Decks, no "Deck deleted" message
    header, markup = build_decks_page(page=0)
    await safe_edit_text(query, header, reply_markup=markup)


# ── Edit item conversation ────────────────────────────────────

EDIT_PREVIEW_BUTTONS = InlineKeyboardMarkup([
    [InlineKeyboardButton('✔ Save', callback_data='save_edit')],
    [
        InlineKeyboardButton('\U0001f3f7 Type', callback_data='edit_kind'),
        InlineKeyboardButton('✖ Cancel', callback_data='cancel_edit'),
    ],
])


def _edit_kind_markup(current: str) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(
            f"{'✔ ' if kind.value == current else ''}{KIND_EMOJIS[kind.value]} {kind.value.capitalize()}",
            callback_data=f'edit_kind_{kind.value}',
        )]
        for kind in ItemKind
    ]
    return InlineKeyboardMarkup(rows)


def _edit_preview_text(parsed: dict[str, str], kind: str) -> str:
    notes = parsed.get('notes')
    notes_line = f"<b>Notes:</b> {html.escape(notes)}\n" if notes else ""
    return (
        f"<b>\U0001f4cb Preview</b>\n\n"
        f"<b>Word:</b> {html.escape(parsed['source'])}\n"
        f"<b>Meaning:</b> {html.escape(parsed['meaning'])}\n"
        f"{notes_line}\n"
        f"<i>{KIND_EMOJIS.get(kind, '')} {kind}</i>"
    )


def _clear_edit_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    for key in ('editing_item_id', 'edit_item_parsed', 'edit_item_kind'):
        context.user_data.pop(key, None)


async def start_edit_item(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    item_id = int(query.data.split('_')[2])  # item_edit_<id>

    item = db.get_item(item_id)
    if not item:
        await safe_edit_text(query, "Word not found.", reply_markup=InlineKeyboardMarkup([MY_DECKS_BUTTON]))
        return ConversationHandler.END

    context.user_data['editing_item_id'] = item_id
    context.user_data['edit_item_kind'] = item['type']
    context.user_data['edit_item_parsed'] = {
        'source': item['source'],
        'meaning': item['meaning'],
        'notes': item['notes'] or '',
    }

    parts = [item['source'], item['meaning']] + ([item['notes']] if item['notes'] else [])
    copyable = ' | '.join(parts)
    await safe_edit_text(
        query,
        f"✏️ <b>Edit word</b>\n\n"
        f"<code>{html.escape(copyable)}</code>\n\n"
        f"<i>Tap the text above to copy, edit and send.\n/cancel to abort</i>",
        reply_markup=EDIT_PREVIEW_BUTTONS,
    )
    return ManageState.EDIT_ITEM_CONTENT


async def receive_edit_content(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    parsed = parse_item_text(update.message.text or '')

    if not parsed['source'] or not parsed['meaning']:
        await safe_send_text(
            update.message,
            "⚠️ Send both sides: <code>word | meaning</code> (notes optional). Try again:",
        )
        return ManageState.EDIT_ITEM_CONTENT

    context.user_data['edit_item_parsed'] = parsed
    kind = context.user_data.get('edit_item_kind', ItemKind.WORD.value)
    await safe_send_text(update.message, _edit_preview_text(parsed, kind), reply_markup=EDIT_PREVIEW_BUTTONS)
    return ManageState.EDIT_ITEM_PREVIEW


async def change_edit_kind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    current = context.user_data.get('edit_item_kind', ItemKind.WORD.value)
    await safe_edit_text(query, "\U0001f3f7 What kind of item is it?", reply_markup=_edit_kind_markup(current))
    return ManageState.EDIT_ITEM_PREVIEW


async def set_edit_kind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    kind = query.data[len('edit_kind_'):]
    context.user_data['edit_item_kind'] = kind

    parsed = context.user_data.get('edit_item_parsed')
    if not parsed:
        return await _edit_expired(query, context)

    await safe_edit_text(query, _edit_preview_text(parsed, kind), reply_markup=EDIT_PREVIEW_BUTTONS)
    return ManageState.EDIT_ITEM_PREVIEW


async def save_edit_item(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    item_id = context.user_data.get('editing_item_id')
    parsed = context.user_data.get('edit_item_parsed')
    kind = context.user_data.get('edit_item_kind')
    if not item_id or not parsed or not kind:
        return await _edit_expired(query, context)

    try:
        updated = db.update_item(item_id, kind, parsed['source'], parsed['meaning'], parsed.get('notes'))
    except ValidationError as e:
        logging.info(f"Edit of item {item_id} rejected: {e}")
        await safe_edit_text(query, f"⚠️ {html.escape(str(e))}. Send the corrected text:")
        return ManageState.EDIT_ITEM_CONTENT

    if updated:
        logging.info(f"Edited item {item_id}")
    _clear_edit_data(context)

    deck_id = context.user_data.get('manage_deck_id', DEFAULT_DECK_ID)
    page = context.user_data.get('manage_deck_page', 0)
    await _show_deck_detail(query, context, deck_id, page)
    return ConversationHandler.END


async def cancel_edit_item(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    _clear_edit_data(context)

    deck_id = context.user_data.get('manage_deck_id', DEFAULT_DECK_ID)
    page = context.user_data.get('manage_deck_page', 0)
    await _show_deck_detail(query, context, deck_id, page)
    return ConversationHandler.END


async def _edit_expired(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE) -> int:
    _clear_edit_data(context)
    await safe_edit_text(
        query,
        "⚠️ Session expired. Open the word again.",
        reply_markup=InlineKeyboardMarkup([MY_DECKS_BUTTON]),
    )
    return ConversationHandler.END


# ── Create / rename deck conversations ────────────────────────

async def start_create_deck(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(query, "✏️ Name for the new deck:\n\n<i>/cancel to abort</i>")
    return ManageState.CREATE_DECK


async def receive_new_deck_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    name = update.message.text or ''

    try:
        deck_id = db.create_deck(name)
    except ValidationError as e:
        await safe_send_text(update.message, f"⚠️ {html.escape(str(e))}. Try again:")
        return ManageState.CREATE_DECK

    await safe_send_text(
        update.message,
        f"✅ Deck <b>{html.escape(name.strip())}</b> created!",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton('➕ Add words', callback_data=f'deck_add_{deck_id}')],
            MY_DECKS_BUTTON,
        ]),
    )
    return ConversationHandler.END


async def start_rename_deck(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    deck_id = int(query.data.split('_')[2])

    deck_name = db.get_deck_name(deck_id) or 'this deck'
    context.user_data['renaming_deck_id'] = deck_id

    await safe_edit_text(
        query,
        f"✏️ Rename <b>{html.escape(deck_name)}</b>\n\n<i>Send the new name:\n/cancel to abort</i>",
    )
    return ManageState.RENAME_DECK


async def receive_rename(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    new_name = update.message.text or ''
    deck_id = context.user_data.get('renaming_deck_id')

    if deck_id:
        try:
            db.rename_deck(deck_id, new_name)
        except ValidationError as e:
            await safe_send_text(update.message, f"⚠️ {html.escape(str(e))}. Try again:")
            return ManageState.RENAME_DECK
        context.user_data.pop('renaming_deck_id', None)
        logging.info(f"Renamed deck {deck_id}")

    await safe_send_text(
        update.message,
        f"✔️ Renamed to <b>{html.escape(new_name.strip())}</b>",
        reply_markup=InlineKeyboardMarkup([MY_DECKS_BUTTON]),
    )
    return ConversationHandler.END


async def cancel_manage(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop('renaming_deck_id', None)
    _clear_edit_data(context)

    from handlers.start import build_main_menu
    text, markup = build_main_menu()

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)

    return ConversationHandler.END


# ── ConversationHandlers ──────────────────────────────────────

create_deck_handler = ConversationHandler(
    entry_points=[CallbackQueryHandler(start_create_deck, pattern='^new_deck$')],
    per_message=False,
    states={
        ManageState.CREATE_DECK: [
            MessageHandler(filters.TEXT & ~filters.COMMAND, receive_new_deck_name),
        ],
    },
    fallbacks=[CommandHandler('cancel', cancel_manage), CommandHandler('start', force_start)],
)

rename_deck_handler = ConversationHandler(
    entry_points=[CallbackQueryHandler(start_rename_deck, pattern=r'^deck_rename_\d+$')],
    per_message=False,
    states={
        ManageState.RENAME_DECK: [
            MessageHandler(filters.TEXT & ~filters.COMMAND, receive_rename),
        ],
    },
    fallbacks=[CommandHandler('cancel', cancel_manage), CommandHandler('start', force_start)],
)

_edit_item_callbacks = [
    CallbackQueryHandler(save_edit_item, pattern='^save_edit$'),
    CallbackQueryHandler(change_edit_kind, pattern='^edit_kind$'),
    CallbackQueryHandler(set_edit_kind, pattern=r'^edit_kind_[a-z]+$'),
    CallbackQueryHandler(cancel_edit_item, pattern='^cancel_edit$'),
]

edit_item_handler = ConversationHandler(
    entry_points=[CallbackQueryHandler(start_edit_item, pattern=r'^item_edit_\d+$')],
    per_message=False,
    states={
        ManageState.EDIT_ITEM_CONTENT: [
            MessageHandler(filters.TEXT & ~filters.COMMAND, receive_edit_content),
            *_edit_item_callbacks,
        ],
        ManageState.EDIT_ITEM_PREVIEW: [
            MessageHandler(filters.TEXT & ~filters.COMMAND, receive_edit_content),
            *_edit_item_callbacks,
        ],
    },
    fallbacks=[CommandHandler('cancel', cancel_manage), CommandHandler('start', force_start)],
)
