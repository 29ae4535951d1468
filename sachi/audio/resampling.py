"""
Sample-rate conversion and padding helpers.
"""

import numpy as np


def _round_half_up(x: np.ndarray) -> np.ndarray:
    return np.floor(x + 0.5).astype(np.int64)


def resample(buffer: np.ndarray, in_rate: int, out_rate: int) -> np.ndarray:
    """
    Resample by window averaging.

    Output sample `o` is the mean of the input samples in
    ``[round(o * ratio), round((o + 1) * ratio))`` with ``ratio = in_rate / out_rate``.
    When upsampling leaves a window empty, that output sample is 0.

    Args:
        buffer: 1D float samples
        in_rate: Input sample rate in Hz
        out_rate: Output sample rate in Hz

    Returns:
        float32 samples at `out_rate`
    """
    if in_rate <= 0 or out_rate <= 0:
        raise ValueError("sample rates must be positive")

    samples = np.asarray(buffer, dtype=np.float32).reshape(-1)
    if in_rate == out_rate:
        return samples.copy()

    n = len(samples)
    ratio = in_rate / out_rate
    out_len = int(np.floor(n / ratio + 0.5))
    if n == 0 or out_len == 0:
        return np.zeros(0, dtype=np.float32)

    edges = _round_half_up(np.arange(out_len + 1) * ratio)
    starts = np.minimum(edges[:-1], n)
    ends = np.minimum(edges[1:], n)

    # Window sums from a prefix sum keep this O(n)
    prefix = np.concatenate(([0.0], np.cumsum(samples, dtype=np.float64)))
    counts = ends - starts
    sums = prefix[ends] - prefix[starts]

    out = np.zeros(out_len, dtype=np.float64)
    filled = counts > 0
    out[filled] = sums[filled] / counts[filled]
    return out.astype(np.float32)


def pad_to_min_length(buffer: np.ndarray, min_length: int) -> np.ndarray:
    """Right-pad with zeros up to `min_length`; longer buffers pass through."""
    samples = np.asarray(buffer, dtype=np.float32).reshape(-1)
    if len(samples) >= min_length:
        return samples
    return np.pad(samples, (0, min_length - len(samples)))
