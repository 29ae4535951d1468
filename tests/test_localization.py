"""Tests for stereo ILD direction estimation."""

import numpy as np
import pytest

from sachi.audio.localization import DirectionEstimator, DirectionLabel


@pytest.fixture
def estimator() -> DirectionEstimator:
    return DirectionEstimator(quiet_rms=0.003, side_angle_deg=15.0)


def test_equal_levels_are_center(estimator):
    result = estimator.estimate(0.1, 0.1)
    assert result.label is DirectionLabel.CENTER
    assert result.angle_degrees == pytest.approx(0.0, abs=1e-6)


def test_louder_right_channel(estimator):
    result = estimator.estimate(0.05, 0.15)
    assert result.label is DirectionLabel.RIGHT
    assert result.angle_degrees == pytest.approx(45.0, rel=1e-6)


def test_louder_left_channel(estimator):
    assert estimator.estimate(0.2, 0.02).label is DirectionLabel.LEFT


def test_small_imbalance_stays_center(estimator):
    # ild = 0.1 -> 9 degrees
    assert estimator.estimate(0.09, 0.11).label is DirectionLabel.CENTER


def test_quiet_signal_is_unknown(estimator):
    result = estimator.estimate(0.0, 0.004)
    assert result.label is DirectionLabel.UNKNOWN
    assert -90.0 <= result.angle_degrees <= 90.0


def test_update_from_stereo_frame(estimator):
    frame = np.stack([np.full(256, 0.01), np.full(256, 0.03)], axis=1)
    assert estimator.update(frame).label is DirectionLabel.RIGHT
    assert estimator.latest.label is DirectionLabel.RIGHT


def test_update_from_mono_frame_is_unknown(estimator):
    estimator.update(np.stack([np.full(16, 0.1), np.full(16, 0.3)], axis=1))
    assert estimator.update(np.full(256, 0.2)).label is DirectionLabel.UNKNOWN


def test_reset(estimator):
    estimator.estimate(0.1, 0.3)
    estimator.update(np.stack([np.full(16, 0.1), np.full(16, 0.3)], axis=1))
    estimator.reset()
    assert estimator.latest.label is DirectionLabel.UNKNOWN
