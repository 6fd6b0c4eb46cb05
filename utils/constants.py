from enum import auto, IntEnum
from telegram import InlineKeyboardButton


class AddItemState(IntEnum):
    AWAITING_CONTENT = auto()
    AWAITING_KIND = auto()
    AWAITING_DECK = auto()
    CONFIRMATION_PREVIEW = auto()


class StudyState(IntEnum):
    DECK_PICKER = auto()
    AWAITING_ANSWER = auto()
    FEEDBACK = auto()
    SETTINGS = auto()


class ManageState(IntEnum):
    CREATE_DECK = auto()
    RENAME_DECK = auto()
    EDIT_ITEM_CONTENT = auto()
    EDIT_ITEM_PREVIEW = auto()


KIND_EMOJIS = {
    'word': '\U0001f4d6',
    'prefix': '\u2b05\ufe0f',
    'suffix': '\u27a1\ufe0f',
    'root': '\U0001f331',
    'particle': '\u2728',
}

DIRECTION_LABELS = {
    'source_first': 'Word first',
    'target_first': 'Meaning first',
    'random': 'Random',
}

PREVIEW_BUTTONS = [
    [InlineKeyboardButton("\u2705 Save", callback_data='save_item')],
    [
        InlineKeyboardButton("\u270f\ufe0f Edit", callback_data='edit_item'),
        InlineKeyboardButton("\U0001f4c1 Deck", callback_data='change_deck'),
        InlineKeyboardButton("\U0001f3f7 Type", callback_data='change_kind'),
    ],
    [InlineKeyboardButton("\u2716 Cancel", callback_data='cancel')],
]

MENU_BUTTON = [InlineKeyboardButton("\U0001f3e0 Menu", callback_data='main_menu')]
