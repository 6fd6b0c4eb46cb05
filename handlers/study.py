import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from study import service
from study.models import Direction, SessionConfig, StudyCard, StudyDirection
from study.session import Phase, StudySession
from study.srs import format_interval
from utils.constants import StudyState, KIND_EMOJIS, DIRECTION_LABELS, MENU_BUTTON
from utils.telegram_helpers import safe_edit_text, safe_send_text
from utils.utils import plural


async def study_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Entry point: user clicks 'Study' in the main menu."""
    query = update.callback_query
    await query.answer()

    text, markup = _deck_picker()
    await safe_edit_text(query, text, reply_markup=markup)
    return StudyState.DECK_PICKER


async def study_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """/study slash command: send the deck picker as a new message."""
    text, markup = _deck_picker()
    await safe_send_text(update.message, text, reply_markup=markup)
    return StudyState.DECK_PICKER


async def study_deck_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """A deck was picked (from the picker or a deck's detail screen)."""
    query = update.callback_query
    await query.answer()

    deck_id = int(query.data.split('_')[2])  # study_deck_<id>
    session = service.open_session(deck_id)

    if session is None:
        await safe_edit_text(
            query,
            "Deck not found.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
        )
        return ConversationHandler.END

    context.user_data['study_session'] = session
    context.user_data['study_deck_id'] = deck_id
    return await _show_phase(update, context)


async def receive_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User typed an answer for the card on screen."""
    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    result = service.submit_answer(session, update.message.text or '')
    if result is None:
        return await _show_phase(update, context)

    return await _show_feedback(update, context, result)


async def dont_know(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """'I don't know' button: grade an empty answer, which always misses."""
    query = update.callback_query
    await query.answer()

    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    result = service.submit_answer(session, '')
    if result is None:
        return await _show_phase(update, context)
    return await _show_feedback(update, context, result)


async def mark_correct(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Accept the last miss (e.g. a typo) as correct."""
    query = update.callback_query
    await query.answer()

    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    if service.mark_correct(session):
        result = context.user_data.get('study_last_result')
        logging.info(f"Marked study state {result.card.review_state_id} as correct")
        text = (
            f"✔️ Counted as correct\n\n"
            f"<b>{html.escape(result.card.prompt)}</b> → {html.escape(result.expected)}"
        )
        await safe_edit_text(query, text, reply_markup=_feedback_buttons(allow_override=False))

    return StudyState.FEEDBACK


async def next_card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    if context.user_data.get('study_session') is None:
        return await _session_expired(update)
    return await _show_phase(update, context)


async def settings_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Show direction and endless-mode options."""
    query = update.callback_query
    await query.answer()

    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    config = session.config

    def _label(direction: StudyDirection) -> str:
        base = DIRECTION_LABELS[direction.value]
        return f"✔ {base}" if config.direction is direction else base

    endless_label = "♾ Endless: on" if config.endless else "♾ Endless: off"
    await safe_edit_text(
        query,
        "<b>⚙️ Study settings</b>\n\n"
        "Direction sets which side you are shown.\n"
        "Endless mode ignores due dates and keeps cycling.\n\n"
        "<i>Changing a setting restarts the session.</i>",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton(_label(d), callback_data=f'study_dir_{d.value}')] for d in StudyDirection
        ] + [
            [InlineKeyboardButton(endless_label, callback_data='study_endless')],
            [InlineKeyboardButton("← Back", callback_data='study_next')],
        ])
    )
    return StudyState.SETTINGS


async def set_direction(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    direction = StudyDirection(query.data[len('study_dir_'):])
    config = SessionConfig(direction=direction, endless=session.config.endless)
    service.reload_session(session, context.user_data['study_deck_id'], config)
    return await _show_phase(update, context)


async def toggle_endless(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    session: StudySession | None = context.user_data.get('study_session')
    if session is None:
        return await _session_expired(update)

    config = SessionConfig(direction=session.config.direction, endless=not session.config.endless)
    service.reload_session(session, context.user_data['study_deck_id'], config)
    return await _show_phase(update, context)


async def stop_study(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User leaves mid-session. Works for both the button and /cancel."""
    session: StudySession | None = context.user_data.get('study_session')
    answered = session.stats.total if session else 0
    _cleanup_study_data(context)

    text = f"⏹ Stopped after {plural(answered, 'answer')}"
    if answered:
        text += f"\n\n<i>{session.stats.correct}/{answered} correct · {session.stats.accuracy()}%</i>"
    markup = InlineKeyboardMarkup([MENU_BUTTON])

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)

    return ConversationHandler.END


# ============================================================
# Private helpers
# ============================================================

def _deck_picker() -> tuple[str, InlineKeyboardMarkup]:
    decks = db.get_all_decks()
    buttons: list[list[InlineKeyboardButton]] = []
    for deck in decks:
        due = deck['due_count']
        due_part = f"  ·  {due} due" if due else ""
        buttons.append([InlineKeyboardButton(
            f"\U0001f4da {deck['name']}{due_part}",
            callback_data=f"study_deck_{deck['id']}",
        )])
    buttons.append(MENU_BUTTON)
    return "\U0001f9e0 Which deck do you want to study?", InlineKeyboardMarkup(buttons)


async def _reply(update: Update, text: str, markup: InlineKeyboardMarkup | None = None) -> None:
    """Edit the pressed message for button presses, answer with a new one for typed text."""
    if update.callback_query:
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)


def _progress_label(session: StudySession) -> str:
    if session.config.endless:
        return f"♾ Lap {session.laps + 1}  ·  {session.stats.correct}/{session.stats.total}"
    return f"{session.remaining} of {session.initial_count} left"


def _prompt_text(card: StudyCard, session: StudySession) -> str:
    emoji = KIND_EMOJIS.get(card.kind.value, '')
    ask = "meaning" if card.direction is Direction.SOURCE_TO_TARGET else "word"
    return (
        f"{emoji} <i>{card.kind.value}</i>\n\n"
        f"<b>{html.escape(card.prompt)}</b>\n\n"
        f"✍️ Type the {ask}\n\n"
        f"<i>{_progress_label(session)}</i>"
    )


def _prompt_buttons() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("\U0001f937 I don't know", callback_data='study_dont_know')],
        [
            InlineKeyboardButton("⚙️ Settings", callback_data='study_settings'),
            InlineKeyboardButton("⏹ Stop", callback_data='study_stop'),
        ],
    ])


def _feedback_buttons(allow_override: bool) -> InlineKeyboardMarkup:
    rows: list[list[InlineKeyboardButton]] = []
    if allow_override:
        rows.append([InlineKeyboardButton("✔️ I was right", callback_data='study_mark_correct')])
    rows.append([
        InlineKeyboardButton("▶ Next", callback_data='study_next'),
        InlineKeyboardButton("⏹ Stop", callback_data='study_stop'),
    ])
    rows.append([InlineKeyboardButton("⚙️ Settings", callback_data='study_settings')])
    return InlineKeyboardMarkup(rows)


async def _show_feedback(update: Update, context: ContextTypes.DEFAULT_TYPE, result: service.GradeResult) -> int:
    session: StudySession = context.user_data['study_session']
    context.user_data['study_last_result'] = result

    prompt = html.escape(result.card.prompt)
    expected = html.escape(result.expected)
    if result.correct:
        text = f"✅ Correct!\n\n<b>{prompt}</b> → {expected}"
    else:
        submitted = html.escape(result.submitted.strip()) or '<i>nothing</i>'
        text = (
            f"❌ Not quite\n\n"
            f"<b>{prompt}</b> → {expected}\n"
            f"You wrote: {submitted}"
        )
    text += f"\n\n<i>Next review: {format_interval(result.next_interval)}</i>"

    if session.phase is Phase.COMPLETE:
        # Only a correct answer can finish a session, so there is nothing left to override
        text += "\n\n" + _completion_text(session)
        _cleanup_study_data(context)
        await _reply(update, text, InlineKeyboardMarkup([MENU_BUTTON]))
        return ConversationHandler.END

    await _reply(update, text, _feedback_buttons(allow_override=not result.correct))
    return StudyState.FEEDBACK


def _completion_text(session: StudySession) -> str:
    stats = session.stats
    return (
        f"\U0001f389 <b>Session complete!</b>\n"
        f"{stats.correct}/{stats.total} correct · {stats.accuracy()}%"
    )


async def _show_phase(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Render whatever the session currently needs: a prompt or a terminal screen."""
    session: StudySession = context.user_data['study_session']

    if session.phase is Phase.ACTIVE:
        await _reply(update, _prompt_text(session.current_card, session), _prompt_buttons())
        return StudyState.AWAITING_ANSWER

    if session.phase is Phase.EMPTY_DECK:
        _cleanup_study_data(context)
        await _reply(
            update,
            "\U0001f4ed <b>No cards yet</b>\n\nAdd some words to this deck to start studying.",
            InlineKeyboardMarkup([
                [InlineKeyboardButton("\U0001f4dd New Word", callback_data='add_item')],
                MENU_BUTTON,
            ]),
        )
        return ConversationHandler.END

    if session.phase is Phase.NOTHING_DUE:
        await _reply(
            update,
            "✨ <b>All caught up!</b>\n\nNothing in this deck is due right now.",
            InlineKeyboardMarkup([
                [InlineKeyboardButton("♾ Try endless mode", callback_data='study_endless')],
                [InlineKeyboardButton("⏹ Done", callback_data='study_stop')],
            ]),
        )
        return StudyState.FEEDBACK

    if session.phase is Phase.COMPLETE:
        _cleanup_study_data(context)
        await _reply(update, _completion_text(session), InlineKeyboardMarkup([MENU_BUTTON]))
        return ConversationHandler.END

    # LOADING only exists between SettingsChanged and the reload
    logging.warning(f"Study session stuck in {session.phase.value}")
    return await _session_expired(update)


async def _session_expired(update: Update) -> int:
    await _reply(
        update,
        "⚠️ Session expired: start again from the menu.",
        InlineKeyboardMarkup([MENU_BUTTON]),
    )
    return ConversationHandler.END


def _cleanup_study_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    context.user_data.pop('study_session', None)
    context.user_data.pop('study_deck_id', None)
    context.user_data.pop('study_last_result', None)
