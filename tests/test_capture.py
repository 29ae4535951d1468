"""Tests for the rolling window and capture helpers."""

import numpy as np
import pytest

from sachi.audio.capture import AudioFrame, RingBuffer


def test_capacity_is_clamped():
    assert RingBuffer.capacity_for(8000, 1.0) == 16000
    assert RingBuffer.capacity_for(44100, 1.0) == 44100
    assert RingBuffer.capacity_for(96000, 1.0) == 48000
    assert RingBuffer.capacity_for(22050, 0.5, min_capacity=1000) == 11025


def test_exact_capacity_snapshot_preserves_order():
    ring = RingBuffer(8)
    data = np.arange(8, dtype=np.float32)
    ring.append(data)
    np.testing.assert_array_equal(ring.snapshot(), data)


def test_overflow_evicts_oldest():
    ring = RingBuffer(8)
    data = np.arange(11, dtype=np.float32)
    ring.append(data[:5])
    ring.append(data[5:])
    np.testing.assert_array_equal(ring.snapshot(), data[3:])
    assert ring.total_written == 11


def test_chunk_larger_than_capacity_keeps_newest():
    ring = RingBuffer(4)
    ring.append(np.arange(3, dtype=np.float32))
    ring.append(np.arange(10, dtype=np.float32))
    np.testing.assert_array_equal(ring.snapshot(), [6, 7, 8, 9])


def test_many_small_writes_wrap():
    ring = RingBuffer(5)
    for value in range(13):
        ring.append(np.array([value], dtype=np.float32))
    np.testing.assert_array_equal(ring.snapshot(), [8, 9, 10, 11, 12])


def test_partial_fill_snapshot_has_leading_zeros():
    ring = RingBuffer(6)
    ring.append(np.array([1, 2, 3], dtype=np.float32))
    np.testing.assert_array_equal(ring.snapshot(), [0, 0, 0, 1, 2, 3])
    assert len(ring) == 3


def test_is_warm_threshold():
    ring = RingBuffer(10)
    ring.append(np.zeros(7, dtype=np.float32))
    assert not ring.is_warm()
    ring.append(np.zeros(1, dtype=np.float32))
    assert ring.is_warm()


def test_clear_resets_state():
    ring = RingBuffer(4)
    ring.append(np.ones(4, dtype=np.float32))
    ring.clear()
    assert ring.total_written == 0
    assert not ring.is_warm()
    np.testing.assert_array_equal(ring.snapshot(), np.zeros(4))


def test_invalid_capacity():
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_audio_frame_properties():
    frame = AudioFrame(data=np.zeros((480, 2), dtype=np.float32), timestamp=0.0, sample_rate=48000)
    assert frame.channels == 2
    assert frame.duration == pytest.approx(0.01)
