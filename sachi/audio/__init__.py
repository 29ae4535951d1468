"""Audio processing module for the SACHI sound listener."""

from .capture import AudioCapture, AudioFrame, CaptureError, RingBuffer
from .resampling import resample, pad_to_min_length
from .embedding import EmbeddingProvider, InferenceOutput, ProviderKind, load_provider
from .features import FallbackFeatureExtractor, cosine_similarity, l1_normalize
from .activity import VoiceActivityGate
from .localization import DirectionEstimator, DirectionEstimate, DirectionLabel

__all__ = [
    "AudioCapture",
    "AudioFrame",
    "CaptureError",
    "RingBuffer",
    "resample",
    "pad_to_min_length",
    "EmbeddingProvider",
    "InferenceOutput",
    "ProviderKind",
    "load_provider",
    "FallbackFeatureExtractor",
    "cosine_similarity",
    "l1_normalize",
    "VoiceActivityGate",
    "DirectionEstimator",
    "DirectionEstimate",
    "DirectionLabel"
]
