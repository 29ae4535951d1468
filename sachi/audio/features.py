"""
Audio Feature Extraction Module.

Coarse spectral embedding used when the pretrained model is unavailable,
plus the vector helpers shared by training and matching.
"""

import numpy as np
from loguru import logger

from .resampling import resample


def l1_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale so that sum(|v_i|) == 1. All-zero input stays all-zero."""
    v = np.asarray(vector, dtype=np.float64).reshape(-1)
    total = np.sum(np.abs(v))
    if total == 0:
        return np.zeros_like(v)
    return v / total


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Returns 0.0 when the dimensions differ or either norm is zero.
    """
    if a is None or b is None:
        return 0.0
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape or a.size == 0:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def rms(audio: np.ndarray) -> float:
    """Root-mean-square level; 0.0 for empty input."""
    samples = np.asarray(audio, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


class FallbackFeatureExtractor:
    """
    Deterministic amplitude-profile embedding.

    Resamples to a low rate, takes a fixed window and accumulates absolute
    amplitude into equal-width buckets before L1 normalization.
    """

    def __init__(self, sample_rate: int = 8000, window: int = 1024, bins: int = 64):
        self.sample_rate = sample_rate
        self.window = window
        self.bins = bins
        logger.info(f"FallbackFeatureExtractor initialized: {bins} bins @ {sample_rate}Hz")

    def compute_spectrum(self, audio: np.ndarray, rate: int, bins: int | None = None) -> np.ndarray:
        """
        Compute the fallback embedding.

        Args:
            audio: Mono samples
            rate: Sample rate of `audio`
            bins: Number of buckets (defaults to the configured count)

        Returns:
            L1-normalized vector of length `bins`
        """
        bins = bins or self.bins
        low_rate = resample(audio, rate, self.sample_rate)

        samples = np.zeros(self.window, dtype=np.float64)
        head = low_rate[:self.window]
        samples[:len(head)] = np.abs(head)

        idx = (np.arange(self.window) * bins) // self.window
        mags = np.bincount(idx, weights=samples, minlength=bins)
        return l1_normalize(mags)
