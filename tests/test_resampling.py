"""Tests for window-average resampling and padding."""

import numpy as np
import pytest

from sachi.audio.resampling import pad_to_min_length, resample


def test_downsample_averages_windows():
    out = resample(np.arange(9, dtype=np.float32), 48000, 16000)
    np.testing.assert_allclose(out, [1.0, 4.0, 7.0])


def test_upsample_leaves_empty_windows_at_zero():
    out = resample(np.array([1.0, 2.0], dtype=np.float32), 8000, 16000)
    # windows [0,1) [1,1) [1,2) [2,2)
    np.testing.assert_allclose(out, [1.0, 0.0, 2.0, 0.0])


def test_output_length_follows_rate_ratio():
    assert len(resample(np.zeros(48000), 48000, 16000)) == 16000
    assert len(resample(np.zeros(44100), 44100, 16000)) == 16000
    assert len(resample(np.zeros(2048), 48000, 8000)) == 341


def test_equal_rates_return_copy():
    data = np.array([0.1, -0.2, 0.3], dtype=np.float32)
    out = resample(data, 16000, 16000)
    np.testing.assert_array_equal(out, data)
    out[0] = 5.0
    assert data[0] == pytest.approx(0.1)


def test_constant_signal_is_preserved():
    out = resample(np.full(4410, 0.25, dtype=np.float32), 44100, 16000)
    np.testing.assert_allclose(out, 0.25, rtol=1e-6)


def test_empty_input():
    assert resample(np.zeros(0), 48000, 16000).size == 0


def test_rejects_non_positive_rates():
    with pytest.raises(ValueError):
        resample(np.zeros(10), 0, 16000)
    with pytest.raises(ValueError):
        resample(np.zeros(10), 16000, -1)


def test_pad_short_buffer_with_trailing_zeros():
    out = pad_to_min_length(np.ones(3, dtype=np.float32), 6)
    np.testing.assert_array_equal(out, [1, 1, 1, 0, 0, 0])


def test_pad_leaves_long_buffer_unchanged():
    data = np.arange(10, dtype=np.float32)
    np.testing.assert_array_equal(pad_to_min_length(data, 4), data)
