"""
Value types shared by the study core, the store and the handlers.

Enum values are the exact strings stored in SQLite.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class ItemKind(str, Enum):
    WORD = 'word'
    PREFIX = 'prefix'
    SUFFIX = 'suffix'
    ROOT = 'root'
    PARTICLE = 'particle'


class Direction(str, Enum):
    """Which side of an item is shown as the prompt."""
    SOURCE_TO_TARGET = 'source_to_target'
    TARGET_TO_SOURCE = 'target_to_source'


class StudyDirection(str, Enum):
    """Per-deck preference for which directions get drilled."""
    SOURCE_FIRST = 'source_first'
    TARGET_FIRST = 'target_first'
    RANDOM = 'random'


def parse_study_direction(value: str | None) -> StudyDirection:
    """Unknown or missing values fall back to RANDOM."""
    try:
        return StudyDirection(value)
    except ValueError:
        return StudyDirection.RANDOM


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True, slots=True)
class StudyCard:
    """One study state joined with its item's text, built fresh per session."""

    review_state_id: int
    item_id: int
    direction: Direction
    source: str
    target: str
    kind: ItemKind
    interval: int
    ease: float
    due: datetime

    @property
    def prompt(self) -> str:
        if self.direction is Direction.SOURCE_TO_TARGET:
            return self.source
        return self.target

    @property
    def answer(self) -> str:
        if self.direction is Direction.SOURCE_TO_TARGET:
            return self.target
        return self.source

    @classmethod
    def from_row(cls, row: dict) -> 'StudyCard':
        return cls(
            review_state_id=row['review_state_id'],
            item_id=row['item_id'],
            direction=Direction(row['direction']),
            source=row['source'],
            target=row['target'],
            kind=ItemKind(row['kind']),
            interval=row['interval'],
            ease=row['ease'],
            due=parse_timestamp(row['due']),
        )


@dataclass(frozen=True, slots=True)
class SessionConfig:
    direction: StudyDirection = StudyDirection.RANDOM
    endless: bool = False
