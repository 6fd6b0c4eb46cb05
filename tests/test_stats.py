"""
Tests for study/stats.py.
"""
from study.stats import SessionStats


class TestSessionStats:
    def test_starts_empty(self):
        s = SessionStats()
        assert (s.total, s.correct) == (0, 0)

    def test_record_answer_counts(self):
        s = SessionStats()
        s.record_answer(True)
        s.record_answer(False)
        s.record_answer(True)
        assert (s.total, s.correct) == (3, 2)

    def test_accuracy_zero_when_nothing_answered(self):
        assert SessionStats().accuracy() == 0

    def test_accuracy_80(self):
        assert SessionStats(total=10, correct=8).accuracy() == 80

    def test_accuracy_rounds(self):
        assert SessionStats(total=3, correct=2).accuracy() == 67
        assert SessionStats(total=3, correct=1).accuracy() == 33

    def test_override_adds_one_correct(self):
        s = SessionStats()
        s.record_answer(False)
        s.record_override()
        assert (s.total, s.correct) == (1, 1)

    def test_override_never_exceeds_total(self):
        s = SessionStats(total=1, correct=1)
        s.record_override()
        assert s.correct == 1

    def test_accuracy_rounds_halves_up(self):
        assert SessionStats(total=8, correct=1).accuracy() == 13
        assert SessionStats(total=8, correct=5).accuracy() == 63
