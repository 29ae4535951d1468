"""
Decision Fusion Module for combining custom and pretrained classifications.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from loguru import logger

from ..audio.activity import VoiceActivityGate
from ..audio.categories import OTHER, is_speech_like
from ..core.prototype_store import MatchResult


class CandidateSource(Enum):
    """Where a prediction came from."""
    CUSTOM = "custom"
    PRETRAINED = "pretrained"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PredictionCandidate:
    """One fused decision fed to the smoother."""
    label: str
    score: float  # 0..1
    source: CandidateSource


def residual_candidate() -> PredictionCandidate:
    return PredictionCandidate(label=OTHER, score=0.0, source=CandidateSource.FALLBACK)


class DecisionFusion:
    """
    Precedence policy over the custom match and the pretrained label.

    1. A custom match at or above the sensitivity threshold always wins.
    2. Otherwise a pretrained label wins if it is confident enough, or if it
       is speech-like and the window is loud enough for speech.
    3. Otherwise a residual "Other" candidate keeps the smoother fed.
    """

    def __init__(
        self,
        pretrained_min_confidence: float = 0.3,
        gate: Optional[VoiceActivityGate] = None
    ):
        self.pretrained_min_confidence = pretrained_min_confidence
        self.gate = gate or VoiceActivityGate()
        logger.info(
            f"DecisionFusion initialized: pretrained>={pretrained_min_confidence}, "
            f"speech rms>={self.gate.speech_threshold}"
        )

    def decide(
        self,
        custom: MatchResult,
        pretrained: Optional[PredictionCandidate],
        rms: float,
        threshold: float
    ) -> PredictionCandidate:
        """
        Fuse one cycle's results.

        A listening session only classifies windows at or above the VAD
        threshold, which is above the speech threshold. So inside a session
        the speech level check always passes for speech labels, and rule 2
        in effect lowers the confidence floor for speech. The level check
        only rejects anything for direct callers passing a quieter `rms`.

        Args:
            custom: Best prototype match (label None when nothing matched)
            pretrained: Category-normalized pretrained prediction, if any
            rms: RMS level of the classified window
            threshold: Current sensitivity, read by the caller each cycle

        Returns:
            The chosen candidate
        """
        if custom.label is not None and custom.score >= threshold:
            logger.debug(f"Custom '{custom.label}' {custom.score:.3f} >= {threshold:.2f}")
            return PredictionCandidate(custom.label, custom.score, CandidateSource.CUSTOM)

        if pretrained is not None and pretrained.label:
            confident = pretrained.score >= self.pretrained_min_confidence
            faint_speech = (
                is_speech_like(pretrained.label) and self.gate.allows_speech(rms)
            )
            if confident or faint_speech:
                logger.debug(f"Pretrained '{pretrained.label}' {pretrained.score:.3f}")
                return pretrained

        return residual_candidate()
