"""
Review scheduler: a two-parameter, pass/fail take on SM-2.

Each study state carries an interval (whole days) and an ease multiplier.

    correct   -> interval = 1 if never recalled, else floor(interval * ease),
                 capped at 30 days; ease unchanged; due in `interval` days
    incorrect -> interval = 0, ease -= 0.2 (floor 1.3), due immediately

Ease has no upper bound.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

import database.database as db

logger = logging.getLogger(__name__)

DEFAULT_EASE = 2.5
MIN_EASE = 1.3
EASE_PENALTY = 0.2
MAX_INTERVAL_DAYS = 30


@dataclass(frozen=True, slots=True)
class ReviewSchedule:
    interval: int
    ease: float
    due: datetime


def schedule(interval: int, ease: float, correct: bool, now: datetime | None = None) -> ReviewSchedule:
    """Next (interval, ease, due) for a study state after one graded answer."""
    now = now or db.utcnow()

    if correct:
        base = 1 if interval == 0 else math.floor(interval * ease)
        new_interval = min(base, MAX_INTERVAL_DAYS)
        return ReviewSchedule(new_interval, ease, now + timedelta(days=new_interval))

    # round() keeps repeated penalties from drifting to 1.2999999...
    new_ease = max(round(ease - EASE_PENALTY, 2), MIN_EASE)
    return ReviewSchedule(0, new_ease, now)


def record_review(review_state_id: int, correct: bool, now: datetime | None = None) -> int:
    """
    Grade one study state and persist the result in a single transaction.

    Returns the number of rows written. A state that has disappeared
    (item deleted mid-session) is a no-op returning 0, not an error.
    """
    now = now or db.utcnow()
    written = db.apply_review(
        review_state_id,
        lambda interval, ease: schedule(interval, ease, correct, now),
    )

    if written:
        logger.info(f"Study state {review_state_id}: {'correct' if correct else 'missed'}")
    else:
        logger.info(f"Study state {review_state_id} not found, review dropped")
    return written


def format_interval(days: int) -> str:
    """Short label for a scheduled interval, e.g. 'now', '1d', '3w'."""
    if days <= 0:
        return "now"
    if days < 14:
        return f"{days}d"
    weeks = round(days / 7)
    return f"{weeks}w"
