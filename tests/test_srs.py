"""
Tests for study/srs.py: schedule() is pure, record_review() runs against
a temp SQLite file.
"""
import sqlite3
from datetime import datetime, timedelta

import pytest

import database.database as db
from study.srs import (
    DEFAULT_EASE, MAX_INTERVAL_DAYS, MIN_EASE,
    format_interval, record_review, schedule,
)

NOW = datetime(2024, 3, 1, 12, 0, 0)


def _raw(db_path: str, sql: str, params=()):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    rows = [dict(r) for r in conn.execute(sql, params).fetchall()]
    conn.close()
    return rows


# ── Correct answers ───────────────────────────────────────────

class TestCorrect:
    def test_first_recall_is_one_day(self):
        r = schedule(0, DEFAULT_EASE, True, NOW)
        assert r.interval == 1
        assert r.due == NOW + timedelta(days=1)

    def test_ease_unchanged(self):
        assert schedule(4, 2.1, True, NOW).ease == 2.1

    def test_interval_times_ease_floored(self):
        # 1 * 2.5 = 2.5 -> 2
        assert schedule(1, 2.5, True, NOW).interval == 2
        # 3 * 2.5 = 7.5 -> 7
        assert schedule(3, 2.5, True, NOW).interval == 7

    def test_growth_sequence(self):
        interval, ease = 0, DEFAULT_EASE
        seen = []
        for _ in range(5):
            r = schedule(interval, ease, True, NOW)
            interval, ease = r.interval, r.ease
            seen.append(interval)
        assert seen == [1, 2, 5, 12, 30]

    def test_capped_at_30_days(self):
        r = schedule(20, 2.5, True, NOW)
        assert r.interval == MAX_INTERVAL_DAYS
        assert r.due == NOW + timedelta(days=30)

    def test_cap_holds_from_cap(self):
        assert schedule(30, 2.5, True, NOW).interval == 30

    def test_low_ease_interval_can_stall(self):
        # 1 * 1.3 floors back to 1
        assert schedule(1, MIN_EASE, True, NOW).interval == 1


# ── Missed answers ────────────────────────────────────────────

class TestIncorrect:
    def test_resets_interval_and_due_now(self):
        r = schedule(12, 2.5, False, NOW)
        assert r.interval == 0
        assert r.due == NOW

    def test_ease_penalty(self):
        assert schedule(5, 2.5, False, NOW).ease == 2.3

    def test_ease_floor(self):
        assert schedule(0, 1.4, False, NOW).ease == MIN_EASE
        assert schedule(0, MIN_EASE, False, NOW).ease == MIN_EASE

    def test_penalised_ease_is_rounded(self):
        ease = schedule(0, 2.3, False, NOW).ease
        assert ease == 2.1
        assert schedule(10, ease, True, NOW).interval == 21

    def test_repeated_misses_land_exactly_on_floor(self):
        ease = DEFAULT_EASE
        for _ in range(10):
            ease = schedule(0, ease, False, NOW).ease
        assert ease == MIN_EASE

    def test_default_now_is_utc_clock(self):
        before = db.utcnow()
        r = schedule(0, 2.5, False)
        assert before <= r.due <= db.utcnow()


# ── Persistence ───────────────────────────────────────────────

class TestRecordReview:
    @pytest.fixture()
    def state_id(self, tdb):
        item_id = db.create_item('word', 'dhamma', 'teaching')
        rows = _raw(tdb, "SELECT id FROM study_states WHERE item_id = ? AND direction = 'source_to_target'", (item_id,))
        return rows[0]['id']

    def test_correct_persists(self, tdb, state_id):
        assert record_review(state_id, True, NOW) == 1
        state = db.get_review_state(state_id)
        assert state['interval'] == 1
        assert state['ease'] == 2.5
        assert state['due'] == '2024-03-02 12:00:00'

    def test_miss_persists(self, tdb, state_id):
        record_review(state_id, True, NOW)
        record_review(state_id, False, NOW)
        state = db.get_review_state(state_id)
        assert state['interval'] == 0
        assert state['ease'] == 2.3
        assert state['due'] == '2024-03-01 12:00:00'

    def test_builds_on_stored_values(self, tdb, state_id):
        db.update_review_state(state_id, 3, 2.0, NOW)
        record_review(state_id, True, NOW)
        assert db.get_review_state(state_id)['interval'] == 6

    def test_other_direction_untouched(self, tdb, state_id):
        record_review(state_id, False, NOW)
        other = _raw(tdb, 'SELECT * FROM study_states WHERE id != ?', (state_id,))
        assert len(other) == 1
        assert other[0]['ease'] == 2.5

    def test_missing_state_is_noop(self, tdb):
        assert record_review(999, True, NOW) == 0
        assert _raw(tdb, 'SELECT * FROM study_states') == []


class TestFormatInterval:
    @pytest.mark.parametrize("days,label", [
        (0, "now"), (1, "1d"), (13, "13d"), (14, "2w"), (30, "4w"),
    ])
    def test_labels(self, days, label):
        assert format_interval(days) == label
