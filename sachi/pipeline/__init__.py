"""Real-time classification pipeline."""

from .classifier import SoundClassifier, ClassificationResult, EmbeddingSource
from .session import ListeningSession, SessionContext

__all__ = [
    "SoundClassifier",
    "ClassificationResult",
    "EmbeddingSource",
    "ListeningSession",
    "SessionContext"
]
