"""
Glue between the session state machine and the store.

Handlers call these; each call does its store I/O and then feeds the
matching event into the session.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime

import database.database as db
from study import selector
from study.grading import is_correct
from study.models import SessionConfig, StudyCard, parse_study_direction
from study.session import AnswerGraded, CardsLoaded, MarkedCorrect, Phase, SettingsChanged, StudySession
from study.srs import record_review

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeResult:
    card: StudyCard
    correct: bool
    submitted: str
    next_interval: int

    @property
    def expected(self) -> str:
        return self.card.answer


def _load(session: StudySession, deck_id: int, now: datetime | None) -> Phase:
    preference = session.config.direction
    if session.config.endless:
        cards = selector.all_cards(deck_id, preference)
        return session.transition(CardsLoaded(cards))

    cards = selector.due_cards(deck_id, preference, now=now)
    has_cards = bool(cards) or bool(selector.all_cards(deck_id, preference))
    return session.transition(CardsLoaded(cards, deck_has_cards=has_cards))


def open_session(
    deck_id: int,
    config: SessionConfig | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> StudySession | None:
    """Start a session on a deck. Without a config the deck's stored direction is used."""
    deck = db.get_deck(deck_id)
    if deck is None:
        logger.info(f"Deck {deck_id} not found, no session opened")
        return None

    if config is None:
        config = SessionConfig(direction=parse_study_direction(deck['study_direction']))

    session = StudySession(config, rng)
    phase = _load(session, deck_id, now)
    logger.info(f"Opened session on deck {deck_id}: {phase.value}, {session.remaining} cards")
    return session


def reload_session(
    session: StudySession,
    deck_id: int,
    config: SessionConfig,
    now: datetime | None = None,
) -> Phase:
    """Apply new settings: progress and statistics start over."""
    if config.direction is not session.config.direction:
        db.set_deck_study_direction(deck_id, config.direction)

    session.transition(SettingsChanged(config))
    return _load(session, deck_id, now)


def submit_answer(session: StudySession, text: str, now: datetime | None = None) -> GradeResult | None:
    """Grade typed text against the current card, persist it, move the session on."""
    card = session.current_card
    if card is None:
        return None

    correct = is_correct(text, card.answer)
    record_review(card.review_state_id, correct, now=now)
    session.transition(AnswerGraded(correct))

    # The card snapshot can be stale after a miss earlier in the session
    state = db.get_review_state(card.review_state_id)
    return GradeResult(
        card=card,
        correct=correct,
        submitted=text,
        next_interval=state['interval'] if state else 0,
    )


def mark_correct(session: StudySession, now: datetime | None = None) -> bool:
    """Accept the last miss after all. Queue placement from the miss stands."""
    card = session.last_missed
    if card is None:
        return False

    session.transition(MarkedCorrect())
    record_review(card.review_state_id, True, now=now)
    return True
