"""
In-memory sequencing of one study session.

    LOADING --CardsLoaded--> ACTIVE | EMPTY_DECK | NOTHING_DUE
    ACTIVE --AnswerGraded--> ACTIVE | COMPLETE
    any    --SettingsChanged--> LOADING

Standard mode removes a card once it is answered correctly and puts a
missed card back at a random position among the remaining ones, so the
session ends only when every card has been recalled. Endless mode cycles
through the whole queue forever and reshuffles it at each wraparound.

Nothing here touches the store; study.service does the I/O and feeds
events in. The random source is injectable so orderings can be pinned
down in tests.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from study.models import SessionConfig, StudyCard
from study.stats import SessionStats

logger = logging.getLogger(__name__)


class Phase(Enum):
    LOADING = 'loading'
    ACTIVE = 'active'
    COMPLETE = 'complete'
    EMPTY_DECK = 'empty_deck'
    NOTHING_DUE = 'nothing_due'


# ── Events ────────────────────────────────────────────────────

@dataclass(frozen=True)
class CardsLoaded:
    cards: list[StudyCard] = field(default_factory=list)
    # Standard mode only: whether the deck has any studyable card at all
    deck_has_cards: bool = True


@dataclass(frozen=True)
class AnswerGraded:
    correct: bool


@dataclass(frozen=True)
class MarkedCorrect:
    pass


@dataclass(frozen=True)
class SettingsChanged:
    config: SessionConfig


# ── State machine ─────────────────────────────────────────────

class StudySession:
    def __init__(self, config: SessionConfig | None = None, rng: random.Random | None = None):
        self.config = config or SessionConfig()
        self.rng = rng or random.Random()
        self.phase = Phase.LOADING
        self.queue: list[StudyCard] = []
        self.index = 0
        self.stats = SessionStats()
        self.initial_count = 0
        self.laps = 0
        self._last_graded: StudyCard | None = None
        self._last_correct = True

    @property
    def current_card(self) -> StudyCard | None:
        if self.phase is not Phase.ACTIVE or not self.queue:
            return None
        return self.queue[self.index]

    @property
    def remaining(self) -> int:
        return len(self.queue)

    @property
    def last_missed(self) -> StudyCard | None:
        """The card just answered wrong, while it can still be marked correct."""
        if self._last_graded is not None and not self._last_correct:
            return self._last_graded
        return None

    def transition(self, event) -> Phase:
        if isinstance(event, CardsLoaded):
            self._on_loaded(event)
        elif isinstance(event, AnswerGraded):
            self._on_graded(event.correct)
        elif isinstance(event, MarkedCorrect):
            self._on_marked_correct()
        elif isinstance(event, SettingsChanged):
            self._on_settings_changed(event.config)
        else:
            raise TypeError(f"Unknown session event: {event!r}")
        return self.phase

    # ── Handlers ──────────────────────────────────────────────

    def _reset(self) -> None:
        self.queue = []
        self.index = 0
        self.stats = SessionStats()
        self.initial_count = 0
        self.laps = 0
        self._last_graded = None
        self._last_correct = True

    def _on_loaded(self, event: CardsLoaded) -> None:
        self._reset()
        self.queue = list(event.cards)
        self.initial_count = len(self.queue)

        if self.config.endless:
            self.rng.shuffle(self.queue)
            self.phase = Phase.ACTIVE if self.queue else Phase.EMPTY_DECK
        elif not event.deck_has_cards:
            self.phase = Phase.EMPTY_DECK
        elif not self.queue:
            self.phase = Phase.NOTHING_DUE
        else:
            self.phase = Phase.ACTIVE

        logger.debug(f"Session loaded {len(self.queue)} cards -> {self.phase.value}")

    def _on_graded(self, correct: bool) -> None:
        if self.phase is not Phase.ACTIVE:
            logger.debug(f"Ignoring grade in phase {self.phase.value}")
            return

        card = self.queue[self.index]
        self.stats.record_answer(correct)
        self._last_graded = card
        self._last_correct = correct

        if self.config.endless:
            self._advance_endless()
        elif correct:
            self._retire_current()
        else:
            self._requeue_current()

    def _advance_endless(self) -> None:
        # Misses get no special treatment here; every card comes round again.
        self.index = (self.index + 1) % len(self.queue)
        if self.index == 0:
            self.rng.shuffle(self.queue)
            self.laps += 1

    def _retire_current(self) -> None:
        self.queue.pop(self.index)
        if not self.queue:
            self.index = 0
            self.phase = Phase.COMPLETE
            return
        if self.index >= len(self.queue):
            self.index = 0

    def _requeue_current(self) -> None:
        if len(self.queue) == 1:
            # A lone missed card simply stays up.
            return

        card = self.queue.pop(self.index)
        position = self.rng.randint(0, len(self.queue))
        self.queue.insert(position, card)
        if self.index >= len(self.queue):
            self.index = 0

    def _on_marked_correct(self) -> None:
        if self.last_missed is None:
            logger.debug("Nothing to mark as correct")
            return
        self.stats.record_override()
        self._last_correct = True

    def _on_settings_changed(self, config: SessionConfig) -> None:
        self.config = config
        self._reset()
        self.phase = Phase.LOADING
