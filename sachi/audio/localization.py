"""
Sound Direction Module for the SACHI sound listener.

Estimates a coarse left/right direction from the inter-channel level
difference (ILD) of a stereo input.
"""

from dataclasses import dataclass
from enum import Enum
import numpy as np
from loguru import logger

from .features import rms


class DirectionLabel(Enum):
    """Coarse sound direction."""
    LEFT = "Left"
    CENTER = "Center"
    RIGHT = "Right"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DirectionEstimate:
    """Result of direction estimation."""
    label: DirectionLabel
    angle_degrees: float  # -90 (left) .. 90 (right)

    def __repr__(self) -> str:
        return f"DirectionEstimate({self.label.value}, {self.angle_degrees:.1f}deg)"


UNKNOWN_DIRECTION = DirectionEstimate(DirectionLabel.UNKNOWN, 0.0)


class DirectionEstimator:
    """
    Stereo ILD direction estimator.

    ``ild = (R - L) / (R + L + eps)`` and ``angle = clamp(ild * 90, -90, 90)``.
    The latest estimate is kept so it can be attached to whichever log entry
    is produced next.
    """

    def __init__(
        self,
        quiet_rms: float = 0.003,
        side_angle_deg: float = 15.0,
        epsilon: float = 1e-9
    ):
        self.quiet_rms = quiet_rms
        self.side_angle_deg = side_angle_deg
        self.epsilon = epsilon
        self.latest: DirectionEstimate = UNKNOWN_DIRECTION
        logger.info(
            f"DirectionEstimator initialized: side>{side_angle_deg}deg, quiet<{quiet_rms}"
        )

    def estimate(self, left_rms: float, right_rms: float) -> DirectionEstimate:
        """Classify one pair of simultaneous per-channel RMS readings."""
        ild = (right_rms - left_rms) / (right_rms + left_rms + self.epsilon)
        angle = float(np.clip(ild * 90.0, -90.0, 90.0))

        if (left_rms + right_rms) / 2.0 < self.quiet_rms:
            return DirectionEstimate(DirectionLabel.UNKNOWN, angle)
        if angle < -self.side_angle_deg:
            return DirectionEstimate(DirectionLabel.LEFT, angle)
        if angle > self.side_angle_deg:
            return DirectionEstimate(DirectionLabel.RIGHT, angle)
        return DirectionEstimate(DirectionLabel.CENTER, angle)

    def update(self, frame: np.ndarray) -> DirectionEstimate:
        """
        Update the carried-forward estimate from a (samples, channels) chunk.

        Mono input cannot be localized and yields Unknown.
        """
        data = np.asarray(frame)
        if data.ndim != 2 or data.shape[1] < 2:
            self.latest = UNKNOWN_DIRECTION
        else:
            self.latest = self.estimate(rms(data[:, 0]), rms(data[:, 1]))
        return self.latest

    def reset(self) -> None:
        self.latest = UNKNOWN_DIRECTION
