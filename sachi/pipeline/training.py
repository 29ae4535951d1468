"""
Training helpers for custom sound labels.
"""

from pathlib import Path
from typing import Iterable
import numpy as np
from scipy.io import wavfile
from loguru import logger

from ..core.prototype_store import Prototype, PrototypeStore
from .classifier import SoundClassifier


def load_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """
    Read a WAV file as mono float32 in [-1, 1].

    Integer PCM is scaled by its dtype range; multi-channel audio is
    averaged down to one channel.

    Returns:
        Tuple of (samples, sample_rate)
    """
    sample_rate, data = wavfile.read(str(path))

    if np.issubdtype(data.dtype, np.integer):
        info = np.iinfo(data.dtype)
        if info.min == 0:
            # 8-bit WAV is unsigned
            audio = (data.astype(np.float32) - 128.0) / 128.0
        else:
            audio = data.astype(np.float32) / float(-info.min)
    else:
        audio = data.astype(np.float32)

    if audio.ndim == 2:
        audio = audio.mean(axis=1)

    logger.debug(f"Loaded {path}: {len(audio)} samples @ {sample_rate}Hz")
    return audio, int(sample_rate)


def train_from_samples(
    classifier: SoundClassifier,
    store: PrototypeStore,
    label: str,
    samples: np.ndarray,
    sample_rate: int
) -> Prototype:
    """
    Add one recorded example to a custom label.

    The embedding is acquired the same way live classification does, so
    prototypes stay comparable with what the session will match against.

    Raises:
        ValueError: On an empty label or clip.
    """
    label = (label or "").strip()
    if not label:
        raise ValueError("label must not be empty")

    samples = np.asarray(samples, dtype=np.float32).reshape(-1)
    if samples.size == 0:
        raise ValueError("training clip is empty")

    embedding, source = classifier.embed(samples, sample_rate)
    prototype = store.train(label, embedding)
    logger.info(
        f"Trained '{label}' from {len(samples) / sample_rate:.2f}s clip "
        f"({source.value} embedding, {prototype.example_count} examples)"
    )
    return prototype


def train_from_files(
    classifier: SoundClassifier,
    store: PrototypeStore,
    label: str,
    paths: Iterable[str | Path]
) -> Prototype:
    """Train `label` with every WAV file in `paths`, in order."""
    prototype = None
    for path in paths:
        samples, sample_rate = load_wav(path)
        prototype = train_from_samples(classifier, store, label, samples, sample_rate)

    if prototype is None:
        raise ValueError("no training files given")
    return prototype
