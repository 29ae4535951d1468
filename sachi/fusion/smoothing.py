"""
Temporal smoothing of fused decisions by sliding-window majority vote.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from .decision_fusion import PredictionCandidate


@dataclass(frozen=True)
class SmoothedPrediction:
    """Majority label over the window and its mean score."""
    label: str
    averaged_score: float


class TemporalSmoother:
    """
    Fixed-size FIFO of the most recent candidates.

    Old entries age out as new ones arrive; there is no explicit reset.
    """

    def __init__(self, window: int = 5):
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._history: deque[PredictionCandidate] = deque(maxlen=window)

    def push(self, candidate: PredictionCandidate) -> None:
        self._history.append(candidate)

    def vote(self) -> Optional[SmoothedPrediction]:
        """
        Majority label in the window.

        Entries are scanned oldest first; a label that ties the running
        maximum count takes over, so among equally frequent labels the one
        that reached the count last wins.
        """
        if not self._history:
            return None

        counts: dict[str, int] = {}
        winner = None
        best = 0
        for candidate in self._history:
            counts[candidate.label] = counts.get(candidate.label, 0) + 1
            if counts[candidate.label] >= best:
                best = counts[candidate.label]
                winner = candidate.label

        scores = [c.score for c in self._history if c.label == winner]
        return SmoothedPrediction(label=winner, averaged_score=sum(scores) / len(scores))

    @property
    def history(self) -> list[PredictionCandidate]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)
