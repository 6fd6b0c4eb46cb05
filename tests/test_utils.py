"""
Tests for utils/utils.py: parse_item_text (pure Python, no Telegram objects).
"""
from utils.utils import parse_item_text, plural


class TestParseItemText:
    # ── Pipe separator ────────────────────────────────────────

    def test_pipe_basic(self):
        r = parse_item_text("dhamma | teaching")
        assert r == {'source': 'dhamma', 'meaning': 'teaching', 'notes': ''}

    def test_pipe_strips_whitespace(self):
        r = parse_item_text("  dhamma  |  teaching  ")
        assert r['source'] == 'dhamma'
        assert r['meaning'] == 'teaching'

    def test_pipe_third_part_is_notes(self):
        r = parse_item_text("pa | forth | verbal prefix")
        assert r['notes'] == 'verbal prefix'

    def test_pipe_notes_keep_further_pipes(self):
        r = parse_item_text("a | b | c | d")
        assert r['notes'] == 'c | d'

    def test_pipe_empty_meaning(self):
        r = parse_item_text("dhamma |")
        assert r['source'] == 'dhamma'
        assert r['meaning'] == ''

    # ── Newline separator ─────────────────────────────────────

    def test_newline_two_lines(self):
        r = parse_item_text("dhamma\nteaching")
        assert r['source'] == 'dhamma'
        assert r['meaning'] == 'teaching'
        assert r['notes'] == ''

    def test_newline_rest_is_notes(self):
        r = parse_item_text("dhamma\nteaching\nalso: nature\nsee sutta")
        assert r['notes'] == 'also: nature\nsee sutta'

    def test_blank_lines_skipped(self):
        r = parse_item_text("dhamma\n\n\nteaching")
        assert r['meaning'] == 'teaching'

    # ── Single part ───────────────────────────────────────────

    def test_single_word_has_no_meaning(self):
        r = parse_item_text("dhamma")
        assert r == {'source': 'dhamma', 'meaning': '', 'notes': ''}

    def test_empty(self):
        assert parse_item_text("   ")['source'] == ''


def test_plural():
    assert plural(1, 'card') == '1 card'
    assert plural(0, 'card') == '0 cards'
    assert plural(3, 'answer') == '3 answers'
