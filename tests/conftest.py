"""Shared fixtures and fakes for the SACHI test suite."""

import threading
from typing import Optional, Sequence
import numpy as np
import pytest

from sachi.audio.capture import AudioFrame, CaptureError
from sachi.audio.embedding import EmbeddingProvider, InferenceOutput, ProviderKind
from sachi.core.config import Config


class ScriptedProvider(EmbeddingProvider):
    """Provider returning fixed scores/embedding, optionally failing or blocking."""

    def __init__(
        self,
        scores: Optional[Sequence[float]] = None,
        embedding: Optional[Sequence[float]] = None,
        vocabulary: Optional[Sequence[str]] = None,
        kind: ProviderKind = ProviderKind.SCORE_AND_EMBEDDING,
        error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None
    ):
        super().__init__(16000, 15600, vocabulary)
        self.kind = kind
        self.scores = None if scores is None else np.asarray(scores, dtype=np.float32)
        self.embedding = None if embedding is None else np.asarray(embedding, dtype=np.float32)
        self.error = error
        self.gate = gate
        self.calls: list[int] = []

    def _infer(self, waveform: np.ndarray) -> InferenceOutput:
        self.calls.append(len(waveform))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return InferenceOutput(scores=self.scores, embedding=self.embedding)


class FakeCapture:
    """Capture source fed by the test instead of a device."""

    def __init__(self, sample_rate: int = 16000, channels: int = 2, fail: bool = False):
        self.sample_rate = sample_rate
        self.channels = channels
        self.fail = fail
        self.is_running = False
        self.stop_calls = 0
        self._chunks: list[AudioFrame] = []

    def feed(self, data) -> None:
        self._chunks.append(AudioFrame(
            data=np.asarray(data, dtype=np.float32),
            timestamp=0.0,
            sample_rate=self.sample_rate
        ))

    def start(self) -> None:
        if self.fail:
            raise CaptureError("input device denied")
        self.is_running = True

    def stop(self) -> None:
        self.is_running = False
        self.stop_calls += 1

    def read_chunks(self) -> list[AudioFrame]:
        chunks, self._chunks = self._chunks, []
        return chunks


def stereo_tone(amplitude_left: float, amplitude_right: float,
                samples: int = 16000, sample_rate: int = 16000,
                freq: float = 440.0) -> np.ndarray:
    t = np.arange(samples) / sample_rate
    tone = np.sin(2 * np.pi * freq * t)
    return np.stack([amplitude_left * tone, amplitude_right * tone], axis=1).astype(np.float32)


@pytest.fixture
def config(tmp_path) -> Config:
    """Default configuration with storage under a temp directory."""
    cfg = Config()
    cfg.system.data_dir = str(tmp_path / "data")
    cfg.audio.capture.sample_rate = 16000
    cfg.audio.embedding.provider = "none"
    return cfg


@pytest.fixture
def vocabulary() -> list[str]:
    return ["Silence", "Speech", "Bark", "Music", "Rain"]
