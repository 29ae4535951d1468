"""
Sound Classifier - embedding acquisition and matching for one window.

Runs the pretrained provider on a resampled copy of the window, falls back
to the local spectrum embedding when the provider has none, and matches the
result against the custom prototypes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np
from loguru import logger

from ..audio.categories import categorize
from ..audio.embedding import EmbeddingProvider, InferenceOutput
from ..audio.features import FallbackFeatureExtractor
from ..audio.resampling import pad_to_min_length, resample
from ..core.prototype_store import MatchResult, PrototypeStore
from ..fusion.decision_fusion import CandidateSource, PredictionCandidate


class EmbeddingSource(Enum):
    """Which extractor produced an embedding."""
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass
class ClassificationResult:
    """Everything one classification cycle learned about a window."""
    embedding: np.ndarray
    embedding_source: EmbeddingSource
    custom: MatchResult = field(default_factory=MatchResult)
    pretrained: Optional[PredictionCandidate] = None
    raw_label: Optional[str] = None  # model vocabulary name behind `pretrained`

    @property
    def confidence(self) -> Optional[float]:
        """Pretrained score, None when the model gave no label."""
        return None if self.pretrained is None else self.pretrained.score


class SoundClassifier:
    """
    Turns a raw window into an embedding, a pretrained label and a custom match.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        fallback: FallbackFeatureExtractor,
        store: PrototypeStore,
        top_k: int = 5
    ):
        self.provider = provider
        self.fallback = fallback
        self.store = store
        self.top_k = top_k

        source = "pretrained model" if provider.available else "spectrum fallback"
        logger.info(f"SoundClassifier initialized ({source})")

    def _infer(self, samples: np.ndarray, sample_rate: int) -> InferenceOutput:
        if not self.provider.available:
            return InferenceOutput.unavailable()

        waveform = resample(samples, sample_rate, self.provider.sample_rate)
        waveform = pad_to_min_length(waveform, self.provider.min_input_samples)
        return self.provider.infer(waveform)

    def _embedding(
        self,
        output: InferenceOutput,
        samples: np.ndarray,
        sample_rate: int
    ) -> tuple[np.ndarray, EmbeddingSource]:
        if output.embedding is not None and output.embedding.size > 0:
            return output.embedding, EmbeddingSource.MODEL
        return self.fallback.compute_spectrum(samples, sample_rate), EmbeddingSource.FALLBACK

    def embed(self, samples: np.ndarray, sample_rate: int) -> tuple[np.ndarray, EmbeddingSource]:
        """
        Embedding for a clip, acquired exactly as live classification does.

        Returns:
            Tuple of (embedding, source)
        """
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        return self._embedding(self._infer(samples, sample_rate), samples, sample_rate)

    def analyze(self, samples: np.ndarray, sample_rate: int) -> ClassificationResult:
        """
        Pretrained label and embedding for one mono window, without matching.

        This is the part that runs the model; `result.custom` is left empty.
        """
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        output = self._infer(samples, sample_rate)

        pretrained = None
        raw_label = None
        if output.scores is not None and output.scores.size > 0:
            category, score, raw_label = categorize(
                output.scores, self.provider.vocabulary, self.top_k
            )
            pretrained = PredictionCandidate(category, score, CandidateSource.PRETRAINED)

        embedding, source = self._embedding(output, samples, sample_rate)
        logger.debug(
            f"Analyzed window: pretrained={pretrained.label if pretrained else None}, "
            f"embedding={source.value}"
        )
        return ClassificationResult(
            embedding=embedding,
            embedding_source=source,
            pretrained=pretrained,
            raw_label=raw_label
        )

    def classify(self, samples: np.ndarray, sample_rate: int) -> ClassificationResult:
        """
        Classify one mono window.

        Args:
            samples: Mono window at `sample_rate`
            sample_rate: Capture sample rate in Hz

        Returns:
            ClassificationResult with the custom match and pretrained label
        """
        result = self.analyze(samples, sample_rate)
        result.custom = self.store.match(result.embedding)
        return result
