"""
Sound activity gate.

Energy threshold deciding whether a window is worth classifying, with a
lower threshold reserved for speech-like labels.
"""

import numpy as np
from loguru import logger

from .features import rms


class VoiceActivityGate:
    """
    Energy-based activity detection.

    `vad_threshold` opens the gate for every label. `speech_threshold` is a
    second, lower level at which speech-like labels are still accepted.
    """

    def __init__(self, vad_threshold: float = 0.01, speech_threshold: float = 0.005):
        self.vad_threshold = vad_threshold
        self.speech_threshold = speech_threshold
        logger.info(
            f"VoiceActivityGate initialized: vad={vad_threshold}, speech={speech_threshold}"
        )

    @staticmethod
    def rms(window: np.ndarray) -> float:
        """sqrt(mean(x^2)) over the window."""
        return rms(window)

    def is_active(self, level: float) -> bool:
        return level >= self.vad_threshold

    def allows_speech(self, level: float) -> bool:
        return level >= self.speech_threshold
