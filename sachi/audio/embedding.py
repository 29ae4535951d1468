"""
Embedding Provider Module for the SACHI sound listener.

Wraps an external pretrained audio model behind a small capability
interface. A provider may produce class scores, an embedding, both, or
nothing; callers always keep a local fallback path.
"""

import csv
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
import numpy as np
from loguru import logger

from ..core.config import EmbeddingConfig


class ProviderKind(Enum):
    """What an inference produced."""
    SCORE_AND_EMBEDDING = "score_and_embedding"
    SCORE_ONLY = "score_only"
    EMBEDDING_ONLY = "embedding_only"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class InferenceOutput:
    """Result of one provider inference."""
    scores: Optional[np.ndarray] = None
    embedding: Optional[np.ndarray] = None

    @property
    def kind(self) -> ProviderKind:
        has_scores = self.scores is not None and self.scores.size > 0
        has_embedding = self.embedding is not None and self.embedding.size > 0
        if has_scores and has_embedding:
            return ProviderKind.SCORE_AND_EMBEDDING
        if has_scores:
            return ProviderKind.SCORE_ONLY
        if has_embedding:
            return ProviderKind.EMBEDDING_ONLY
        return ProviderKind.UNAVAILABLE

    @classmethod
    def unavailable(cls) -> "InferenceOutput":
        return cls()


class EmbeddingProvider(ABC):
    """
    Abstract base class for pretrained audio models.

    Subclasses implement `_infer`; `infer` guarantees that no model error
    escapes to the caller.
    """

    kind: ProviderKind = ProviderKind.UNAVAILABLE

    def __init__(
        self,
        sample_rate: int = 16000,
        min_input_samples: int = 15600,
        vocabulary: Optional[Sequence[str]] = None
    ):
        self.sample_rate = sample_rate
        self.min_input_samples = min_input_samples
        self.vocabulary = list(vocabulary) if vocabulary is not None else None

    @property
    def available(self) -> bool:
        return self.kind is not ProviderKind.UNAVAILABLE

    @abstractmethod
    def _infer(self, waveform: np.ndarray) -> InferenceOutput:
        pass

    def infer(self, waveform: np.ndarray) -> InferenceOutput:
        """
        Run the model on a mono waveform at `sample_rate`, at least
        `min_input_samples` long.

        Returns:
            The inference output restricted to this provider's capabilities,
            or an unavailable output if the model failed.
        """
        if not self.available:
            return InferenceOutput.unavailable()

        try:
            output = self._infer(np.asarray(waveform, dtype=np.float32))
        except Exception as e:
            logger.warning(f"{type(self).__name__} inference failed: {e}")
            return InferenceOutput.unavailable()

        scores = output.scores
        embedding = output.embedding
        if self.kind is ProviderKind.EMBEDDING_ONLY:
            scores = None
        elif self.kind is ProviderKind.SCORE_ONLY:
            embedding = None

        return InferenceOutput(
            scores=None if scores is None else np.asarray(scores, dtype=np.float64).reshape(-1),
            embedding=None if embedding is None else np.asarray(embedding, dtype=np.float64).reshape(-1)
        )


class UnavailableProvider(EmbeddingProvider):
    """Stands in when no pretrained model could be loaded."""

    kind = ProviderKind.UNAVAILABLE

    def _infer(self, waveform: np.ndarray) -> InferenceOutput:
        return InferenceOutput.unavailable()


class YamnetProvider(EmbeddingProvider):
    """
    YAMNet loaded from TensorFlow Hub.

    The model returns per-frame scores (521 AudioSet classes) and 1024-d
    embeddings; both are averaged over frames.
    """

    kind = ProviderKind.SCORE_AND_EMBEDDING

    def __init__(self, model, vocabulary: Optional[Sequence[str]] = None,
                 sample_rate: int = 16000, min_input_samples: int = 15600):
        super().__init__(sample_rate, min_input_samples, vocabulary)
        self._model = model

    @classmethod
    def load(cls, config: EmbeddingConfig) -> "YamnetProvider":
        """Load the model and its class map. Raises on any failure."""
        import tensorflow_hub as hub

        logger.info(f"Loading YAMNet from {config.model_url}")
        model = hub.load(config.model_url)
        vocabulary = cls._load_class_names(model)
        logger.info(f"YAMNet loaded: {len(vocabulary) if vocabulary else 0} classes")
        return cls(model, vocabulary, config.target_sample_rate, config.min_input_samples)

    @staticmethod
    def _load_class_names(model) -> Optional[list[str]]:
        """Read display names from the class map bundled with the model."""
        try:
            import tensorflow as tf

            path = model.class_map_path().numpy().decode("utf-8")
            with tf.io.gfile.GFile(path, "r") as f:
                reader = csv.DictReader(io.StringIO(f.read()))
                return [row["display_name"] for row in reader]
        except Exception as e:
            logger.warning(f"YAMNet class map unavailable, using indexed labels: {e}")
            return None

    def _infer(self, waveform: np.ndarray) -> InferenceOutput:
        scores, embeddings, _ = self._model(waveform)
        return InferenceOutput(
            scores=scores.numpy().mean(axis=0),
            embedding=embeddings.numpy().mean(axis=0)
        )


def load_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """
    Build the configured provider.

    Any load failure degrades to `UnavailableProvider`; startup never aborts
    because the model could not be fetched.
    """
    unavailable = UnavailableProvider(config.target_sample_rate, config.min_input_samples)
    if config.provider == "none":
        logger.info("Pretrained model disabled, using spectrum fallback only")
        return unavailable

    try:
        return YamnetProvider.load(config)
    except Exception as e:
        logger.warning(f"Failed to load YAMNet ({e}), using spectrum fallback")
        return unavailable
