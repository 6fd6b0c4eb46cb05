import math
from dataclasses import dataclass


@dataclass
class SessionStats:
    """Running answer counters for one study session."""

    total: int = 0
    correct: int = 0

    def record_answer(self, correct: bool) -> None:
        self.total += 1
        if correct:
            self.correct += 1

    def record_override(self) -> None:
        """A miss was accepted after the fact ("mark as correct")."""
        self.correct = min(self.correct + 1, self.total)

    def accuracy(self) -> int:
        """Percentage of correct answers, halves rounded up, 0 before anything was answered."""
        if self.total == 0:
            return 0
        return math.floor(self.correct / self.total * 100 + 0.5)
