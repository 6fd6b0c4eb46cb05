"""Test doubles shared by the pure-logic suites."""
from datetime import datetime

from study.models import Direction, ItemKind, StudyCard


class ScriptedRandom:
    """
    Stand-in random source with fully predictable behaviour.

    randint() hands out the queued positions in order; shuffle() reverses
    the list in place and counts how often it was called.
    """

    def __init__(self, positions=()):
        self.positions = list(positions)
        self.randint_calls = []
        self.shuffles = 0

    def randint(self, a, b):
        self.randint_calls.append((a, b))
        position = self.positions.pop(0)
        assert a <= position <= b
        return position

    def shuffle(self, seq):
        self.shuffles += 1
        seq.reverse()


def make_card(n, direction=Direction.SOURCE_TO_TARGET, interval=0, ease=2.5):
    """A study card that needs no database row."""
    return StudyCard(
        review_state_id=n,
        item_id=n,
        direction=direction,
        source=f'word{n}',
        target=f'meaning{n}',
        kind=ItemKind.WORD,
        interval=interval,
        ease=ease,
        due=datetime(2024, 1, 1),
    )
