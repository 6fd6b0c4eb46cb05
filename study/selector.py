"""Which cards of a deck can be studied right now. Read-only."""

from datetime import datetime

import database.database as db
from study.models import Direction, StudyCard, StudyDirection

_DIRECTION_FILTERS = {
    StudyDirection.SOURCE_FIRST: Direction.SOURCE_TO_TARGET,
    StudyDirection.TARGET_FIRST: Direction.TARGET_TO_SOURCE,
    StudyDirection.RANDOM: None,
}


def direction_filter(preference: StudyDirection) -> Direction | None:
    """RANDOM drills both directions, so it maps to no filter."""
    return _DIRECTION_FILTERS[StudyDirection(preference)]


def due_cards(deck_id: int, preference: StudyDirection, now: datetime | None = None) -> list[StudyCard]:
    rows = db.get_due_review_cards(deck_id, direction_filter(preference), now=now)
    return [StudyCard.from_row(row) for row in rows]


def all_cards(deck_id: int, preference: StudyDirection) -> list[StudyCard]:
    """Every unsuspended card regardless of due date (endless mode, empty-deck check)."""
    rows = db.get_all_review_cards(deck_id, direction_filter(preference))
    return [StudyCard.from_row(row) for row in rows]
