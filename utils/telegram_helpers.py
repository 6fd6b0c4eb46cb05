"""
Telegram send/edit calls that never crash a handler.

Handlers go through these instead of query.edit_message_text / reply_text.
Failures from the Telegram side are logged and reported as False.

Messages use parse_mode='HTML', so every piece of learner-supplied text
(item source, meaning, notes, deck names, typed answers) must pass through
html.escape() before it is put into a message:

    await safe_send_text(message, f"✅ <b>{html.escape(card.answer)}</b>")
"""

import logging
from typing import Any

from telegram import CallbackQuery, InlineKeyboardMarkup, Message
from telegram.error import BadRequest, Forbidden, TimedOut, NetworkError

logger = logging.getLogger(__name__)


async def safe_edit_text(
    query: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = 'HTML',
) -> bool:
    """Edit the message behind a button press; send a fresh one if that fails."""
    try:
        await query.edit_message_text(text, reply_markup=reply_markup, parse_mode=parse_mode)
        return True
    except BadRequest as e:
        if "message is not modified" in str(e).lower():
            return True
        logger.warning(f"safe_edit_text BadRequest: {e}")
        return await _fallback_reply(query, text, reply_markup, parse_mode)
    except (TimedOut, NetworkError) as e:
        logger.warning(f"safe_edit_text network error: {e}")
        return False


async def safe_send_text(
    target: Message | tuple[int, Any],
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = 'HTML',
) -> bool:
    """Send a new message. target is a Message to reply to or a (chat_id, bot) pair."""
    try:
        if hasattr(target, 'reply_text'):
            await target.reply_text(text, reply_markup=reply_markup, parse_mode=parse_mode)  # type: ignore[union-attr]
        else:
            chat_id, bot = target
            await bot.send_message(chat_id=chat_id, text=text, reply_markup=reply_markup, parse_mode=parse_mode)
        return True
    except Forbidden:
        logger.warning("Bot was blocked by user")
        return False
    except (TimedOut, NetworkError, BadRequest) as e:
        logger.warning(f"safe_send_text failed: {e}")
        return False


async def _fallback_reply(
    query: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None,
    parse_mode: str = 'HTML',
) -> bool:
    try:
        await query.message.reply_text(text, reply_markup=reply_markup, parse_mode=parse_mode)
        return True
    except (BadRequest, Forbidden, TimedOut, NetworkError) as e:
        logger.warning(f"_fallback_reply also failed: {e}")
        return False
