"""
Tests for study/session.py: the state machine alone, with a scripted
random source. No DB, no Telegram.
"""
import pytest

from study.models import SessionConfig, StudyDirection
from study.session import (
    AnswerGraded, CardsLoaded, MarkedCorrect, Phase, SettingsChanged, StudySession,
)

from helpers import ScriptedRandom, make_card

ENDLESS = SessionConfig(endless=True)


def _session(cards, positions=(), config=None, has_cards=True):
    rng = ScriptedRandom(positions)
    session = StudySession(config, rng)
    session.transition(CardsLoaded(list(cards), deck_has_cards=has_cards))
    return session, rng


def _ids(session):
    return [c.review_state_id for c in session.queue]


# ── Loading ───────────────────────────────────────────────────

class TestLoading:
    def test_starts_loading(self):
        assert StudySession().phase is Phase.LOADING
        assert StudySession().current_card is None

    def test_cards_make_it_active(self):
        session, _ = _session([make_card(1), make_card(2)])
        assert session.phase is Phase.ACTIVE
        assert session.initial_count == 2
        assert session.current_card.review_state_id == 1

    def test_standard_keeps_load_order(self):
        session, rng = _session([make_card(1), make_card(2), make_card(3)])
        assert _ids(session) == [1, 2, 3]
        assert rng.shuffles == 0

    def test_empty_deck(self):
        session, _ = _session([], has_cards=False)
        assert session.phase is Phase.EMPTY_DECK

    def test_nothing_due(self):
        session, _ = _session([], has_cards=True)
        assert session.phase is Phase.NOTHING_DUE
        assert session.current_card is None

    def test_endless_shuffles_once(self):
        session, rng = _session([make_card(1), make_card(2), make_card(3)], config=ENDLESS)
        assert rng.shuffles == 1
        assert _ids(session) == [3, 2, 1]
        assert session.phase is Phase.ACTIVE

    def test_endless_without_cards_is_empty_deck(self):
        session, _ = _session([], config=ENDLESS)
        assert session.phase is Phase.EMPTY_DECK


# ── Standard mode ─────────────────────────────────────────────

class TestStandard:
    def test_single_card_correct_completes(self):
        session, _ = _session([make_card(1)])
        assert session.transition(AnswerGraded(True)) is Phase.COMPLETE
        assert session.remaining == 0
        assert session.current_card is None

    def test_single_card_miss_stays_put(self):
        session, rng = _session([make_card(1)])
        assert session.transition(AnswerGraded(False)) is Phase.ACTIVE
        assert session.current_card.review_state_id == 1
        assert rng.randint_calls == []

    def test_correct_moves_to_next(self):
        session, _ = _session([make_card(1), make_card(2), make_card(3)])
        session.transition(AnswerGraded(True))
        assert _ids(session) == [2, 3]
        assert session.current_card.review_state_id == 2

    def test_miss_reinserted_at_random_position(self):
        session, rng = _session([make_card(1), make_card(2), make_card(3)], positions=[1])
        session.transition(AnswerGraded(False))
        # remaining after removal: [2, 3]; insert position drawn from 0..2
        assert rng.randint_calls == [(0, 2)]
        assert _ids(session) == [2, 1, 3]
        assert session.current_card.review_state_id == 2

    def test_miss_reinserted_at_end(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))
        assert _ids(session) == [2, 1]

    def test_miss_reinserted_in_front_comes_straight_back(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[0])
        session.transition(AnswerGraded(False))
        assert session.current_card.review_state_id == 1

    def test_missed_card_must_be_recalled_to_finish(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))  # 1 -> back of queue
        session.transition(AnswerGraded(True))   # 2 done
        assert session.phase is Phase.ACTIVE
        assert session.current_card.review_state_id == 1
        assert session.transition(AnswerGraded(True)) is Phase.COMPLETE
        assert (session.stats.total, session.stats.correct) == (3, 2)
        assert session.stats.accuracy() == 67

    def test_grades_ignored_once_complete(self):
        session, _ = _session([make_card(1)])
        session.transition(AnswerGraded(True))
        session.transition(AnswerGraded(False))
        assert session.phase is Phase.COMPLETE
        assert session.stats.total == 1

    def test_grades_ignored_while_nothing_due(self):
        session, _ = _session([], has_cards=True)
        session.transition(AnswerGraded(True))
        assert session.stats.total == 0


# ── Endless mode ──────────────────────────────────────────────

class TestEndless:
    def test_wraps_and_reshuffles(self):
        cards = [make_card(1), make_card(2), make_card(3)]
        session, rng = _session(cards, config=ENDLESS)
        for _ in range(3):
            session.transition(AnswerGraded(True))
        assert session.laps == 1
        assert rng.shuffles == 2
        assert session.remaining == 3
        assert session.phase is Phase.ACTIVE

    def test_never_completes(self):
        session, _ = _session([make_card(1), make_card(2)], config=ENDLESS)
        for i in range(10):
            assert session.transition(AnswerGraded(i % 3 == 0)) is Phase.ACTIVE
        assert session.stats.total == 10
        assert session.laps == 5

    def test_single_card_cycles(self):
        session, _ = _session([make_card(1)], config=ENDLESS)
        session.transition(AnswerGraded(True))
        session.transition(AnswerGraded(True))
        assert session.laps == 2
        assert session.current_card.review_state_id == 1

    def test_miss_is_not_requeued(self):
        session, rng = _session([make_card(1), make_card(2), make_card(3)], config=ENDLESS)
        before = _ids(session)
        session.transition(AnswerGraded(False))
        assert _ids(session) == before
        assert session.index == 1
        assert rng.randint_calls == []


# ── Mark as correct ───────────────────────────────────────────

class TestMarkCorrect:
    def test_after_miss(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))
        assert session.last_missed.review_state_id == 1

        session.transition(MarkedCorrect())
        assert (session.stats.total, session.stats.correct) == (1, 1)
        assert session.last_missed is None

    def test_queue_placement_stands(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))
        session.transition(MarkedCorrect())
        assert _ids(session) == [2, 1]

    def test_only_once(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))
        session.transition(MarkedCorrect())
        session.transition(MarkedCorrect())
        assert session.stats.correct == 1

    def test_ignored_after_correct_answer(self):
        session, _ = _session([make_card(1), make_card(2)])
        session.transition(AnswerGraded(True))
        session.transition(MarkedCorrect())
        assert (session.stats.total, session.stats.correct) == (1, 1)

    def test_ignored_before_any_answer(self):
        session, _ = _session([make_card(1)])
        session.transition(MarkedCorrect())
        assert session.stats.correct == 0

    def test_works_in_endless(self):
        session, _ = _session([make_card(1), make_card(2)], config=ENDLESS)
        session.transition(AnswerGraded(False))
        session.transition(MarkedCorrect())
        assert session.stats.correct == 1


# ── Settings ──────────────────────────────────────────────────

class TestSettingsChanged:
    def test_resets_progress(self):
        session, _ = _session([make_card(1), make_card(2)], positions=[1])
        session.transition(AnswerGraded(False))

        new = SessionConfig(direction=StudyDirection.SOURCE_FIRST, endless=True)
        assert session.transition(SettingsChanged(new)) is Phase.LOADING
        assert session.config == new
        assert session.remaining == 0
        assert session.stats.total == 0
        assert session.last_missed is None
        assert session.current_card is None

    def test_reload_after_change(self):
        session, rng = _session([make_card(1)])
        session.transition(SettingsChanged(ENDLESS))
        session.transition(CardsLoaded([make_card(1), make_card(2)]))
        assert session.phase is Phase.ACTIVE
        assert rng.shuffles == 1


def test_unknown_event_rejected():
    session = StudySession()
    with pytest.raises(TypeError):
        session.transition("next")
