"""
Tests for study/service.py: sessions driven end to end against a temp
SQLite file, with a scripted random source.
"""
import sqlite3
from datetime import timedelta

import database.database as db
from database.schema import DEFAULT_DECK_ID
from study import service
from study.models import Direction, SessionConfig, StudyDirection
from study.session import Phase

from helpers import ScriptedRandom


def _push_due_out(db_path, days=3):
    conn = sqlite3.connect(db_path)
    conn.execute(
        'UPDATE study_states SET due = ?',
        ((db.utcnow() + timedelta(days=days)).strftime('%Y-%m-%d %H:%M:%S'),)
    )
    conn.commit()
    conn.close()


def _answer(session, right=True):
    text = session.current_card.answer if right else 'wrong'
    return service.submit_answer(session, text)


# ── Opening ───────────────────────────────────────────────────

class TestOpenSession:
    def test_missing_deck(self, tdb):
        assert service.open_session(999) is None

    def test_empty_deck(self, tdb):
        deck_id = db.create_deck('Suttas')
        session = service.open_session(deck_id)
        assert session.phase is Phase.EMPTY_DECK

    def test_nothing_due(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        _push_due_out(tdb)
        session = service.open_session(DEFAULT_DECK_ID)
        assert session.phase is Phase.NOTHING_DUE

    def test_endless_ignores_due_dates(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        _push_due_out(tdb)
        session = service.open_session(DEFAULT_DECK_ID, SessionConfig(endless=True), rng=ScriptedRandom())
        assert session.phase is Phase.ACTIVE
        assert session.remaining == 2

    def test_uses_deck_direction(self, tdb):
        deck_id = db.create_deck('Suttas')
        db.create_item('word', 'dhamma', 'teaching', deck_ids=[deck_id])
        db.set_deck_study_direction(deck_id, StudyDirection.TARGET_FIRST)

        session = service.open_session(deck_id)
        assert session.config.direction is StudyDirection.TARGET_FIRST
        assert session.remaining == 1
        assert session.current_card.direction is Direction.TARGET_TO_SOURCE
        assert session.current_card.prompt == 'teaching'
        assert session.current_card.answer == 'dhamma'

    def test_random_drills_both_directions(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID)
        assert {c.direction for c in session.queue} == set(Direction)


# ── Answering ─────────────────────────────────────────────────

class TestSubmitAnswer:
    def test_full_session(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        rng = ScriptedRandom([1])
        session = service.open_session(DEFAULT_DECK_ID, rng=rng)
        assert session.phase is Phase.ACTIVE
        missed = session.current_card

        result = _answer(session, right=False)
        assert not result.correct
        assert result.next_interval == 0
        assert result.expected == missed.answer
        assert rng.randint_calls == [(0, 1)]

        _answer(session)
        assert session.current_card.review_state_id == missed.review_state_id
        _answer(session)

        assert session.phase is Phase.COMPLETE
        assert (session.stats.total, session.stats.correct) == (3, 2)
        assert session.stats.accuracy() == 67

    def test_persists_schedule(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID, SessionConfig(direction=StudyDirection.SOURCE_FIRST))
        card = session.current_card

        result = service.submit_answer(session, '  Teaching ')
        assert result.correct
        assert result.next_interval == 1

        state = db.get_review_state(card.review_state_id)
        assert state['interval'] == 1
        assert state['ease'] == 2.5

    def test_miss_lowers_ease(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID, SessionConfig(direction=StudyDirection.SOURCE_FIRST))
        card = session.current_card

        service.submit_answer(session, 'doctrine')
        assert db.get_review_state(card.review_state_id)['ease'] == 2.3
        assert session.phase is Phase.ACTIVE

    def test_no_current_card(self, tdb):
        deck_id = db.create_deck('Suttas')
        session = service.open_session(deck_id)
        assert service.submit_answer(session, 'anything') is None

    def test_deleted_item_mid_session(self, tdb):
        item_id = db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID, SessionConfig(direction=StudyDirection.SOURCE_FIRST))
        db.delete_item(item_id)

        result = _answer(session)
        assert result.correct
        assert result.next_interval == 0
        assert session.phase is Phase.COMPLETE


# ── Mark as correct ───────────────────────────────────────────

class TestMarkCorrect:
    def test_overrides_last_miss(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID, SessionConfig(direction=StudyDirection.SOURCE_FIRST))
        card = session.current_card

        _answer(session, right=False)
        assert service.mark_correct(session)

        state = db.get_review_state(card.review_state_id)
        assert state['interval'] == 1
        assert state['ease'] == 2.3
        assert (session.stats.total, session.stats.correct) == (1, 1)
        # still in the queue: a lone missed card stays up
        assert session.current_card.review_state_id == card.review_state_id

    def test_nothing_to_override(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID)
        assert not service.mark_correct(session)
        _answer(session)
        assert not service.mark_correct(session)


# ── Settings ──────────────────────────────────────────────────

class TestReloadSession:
    def test_direction_change_persists_and_resets(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        session = service.open_session(DEFAULT_DECK_ID)
        _answer(session, right=False)

        config = SessionConfig(direction=StudyDirection.SOURCE_FIRST)
        phase = service.reload_session(session, DEFAULT_DECK_ID, config)

        assert phase is Phase.ACTIVE
        assert db.get_deck(DEFAULT_DECK_ID)['study_direction'] == 'source_first'
        assert session.stats.total == 0
        assert [c.direction for c in session.queue] == [Direction.SOURCE_TO_TARGET]

    def test_endless_toggle_keeps_direction(self, tdb):
        db.create_item('word', 'dhamma', 'teaching')
        _push_due_out(tdb)
        session = service.open_session(DEFAULT_DECK_ID)
        assert session.phase is Phase.NOTHING_DUE

        config = SessionConfig(direction=session.config.direction, endless=True)
        assert service.reload_session(session, DEFAULT_DECK_ID, config) is Phase.ACTIVE
        assert db.get_deck(DEFAULT_DECK_ID)['study_direction'] == 'random'
