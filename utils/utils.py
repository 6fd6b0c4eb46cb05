from telegram import InlineKeyboardButton


def parse_item_text(content: str) -> dict[str, str]:
    """
    Split a message into an item.

    'word | meaning' or 'word | meaning | notes'; two or more lines work
    the same way (first line word, second meaning, the rest notes).
    returns: {'source': str, 'meaning': str, 'notes': str}
    """
    text = content.strip()

    if '|' in text:
        parts = [p.strip() for p in text.split('|', 2)]
    elif '\n' in text:
        lines = [l.strip() for l in text.split('\n') if l.strip()]
        parts = lines[:2] + (['\n'.join(lines[2:])] if len(lines) > 2 else [])
    else:
        parts = [text]

    parts += [''] * (3 - len(parts))
    return {'source': parts[0], 'meaning': parts[1], 'notes': parts[2]}


def get_buttons(items: list[dict[str, str | int]], prefix: str) -> list[list[InlineKeyboardButton]]:
    """One button per row, labelled by name, callback '<prefix>_<id>'."""
    buttons: list[list[InlineKeyboardButton]] = []
    for item in items:
        buttons.append([
            InlineKeyboardButton(
                item['name'],
                callback_data=f"{prefix}_{item['id']}"
            )
        ])
    return buttons


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"
