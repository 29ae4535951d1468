"""
Audio Capture Module for the SACHI sound listener.

Provides live multi-channel audio capture and the rolling mono window
that classification cycles read from.
"""

import queue
import time
from dataclasses import dataclass
from typing import Optional, Any
import numpy as np
from loguru import logger

try:
    import sounddevice as sd
except (ImportError, OSError):
    # OSError: PortAudio shared library missing
    sd = None
    logger.warning("sounddevice not available")


class CaptureError(RuntimeError):
    """Raised when the capture device is missing, denied or fails to open."""


@dataclass
class AudioFrame:
    """Represents a captured audio chunk."""
    data: np.ndarray  # Shape: (samples, channels)
    timestamp: float  # Unix timestamp
    sample_rate: int

    @property
    def channels(self) -> int:
        return 1 if self.data.ndim == 1 else self.data.shape[1]

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return len(self.data) / self.sample_rate


class RingBuffer:
    """
    Circular buffer holding the most recent mono samples.

    Keeps a write cursor and a monotonic count of everything ever written,
    so callers can tell whether the window holds real history yet.
    """

    def __init__(self, capacity: int, warm_ratio: float = 0.8):
        """
        Initialize ring buffer.

        Args:
            capacity: Number of samples retained
            warm_ratio: Fraction of capacity that must be written before
                the buffer counts as warm
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self.capacity = int(capacity)
        self.warm_ratio = warm_ratio
        self.buffer = np.zeros(self.capacity, dtype=np.float32)

        # Circular buffer state
        self.write_pos = 0
        self.total_written = 0

        logger.debug(f"RingBuffer initialized: {self.capacity} samples")

    @staticmethod
    def capacity_for(
        sample_rate: int,
        ring_seconds: float = 1.0,
        min_capacity: int = 16000,
        max_capacity: int = 48000
    ) -> int:
        """Capacity for a device rate, clamped to [min_capacity, max_capacity]."""
        capacity = int(np.floor(sample_rate * ring_seconds + 0.5))
        return int(min(max(capacity, min_capacity), max_capacity))

    def append(self, chunk: np.ndarray) -> None:
        """
        Write mono samples, overwriting the oldest ones on wrap-around.

        Args:
            chunk: 1D array of samples
        """
        data = np.asarray(chunk, dtype=np.float32).reshape(-1)
        num_samples = len(data)
        if num_samples == 0:
            return

        self.total_written += num_samples

        # Only the newest `capacity` samples can survive
        if num_samples >= self.capacity:
            self.buffer[:] = data[-self.capacity:]
            self.write_pos = 0
            return

        end = self.write_pos + num_samples
        if end <= self.capacity:
            self.buffer[self.write_pos:end] = data
        else:
            # Split write across buffer boundary
            first_part = self.capacity - self.write_pos
            self.buffer[self.write_pos:] = data[:first_part]
            self.buffer[:num_samples - first_part] = data[first_part:]

        self.write_pos = end % self.capacity

    def snapshot(self) -> np.ndarray:
        """Return the last `capacity` samples, oldest first."""
        return np.concatenate(
            (self.buffer[self.write_pos:], self.buffer[:self.write_pos])
        )

    def is_warm(self) -> bool:
        """True once enough real audio has been written to classify."""
        return self.total_written >= self.warm_ratio * self.capacity

    def clear(self) -> None:
        """Clear the buffer."""
        self.buffer.fill(0)
        self.write_pos = 0
        self.total_written = 0

    def __len__(self) -> int:
        return min(self.total_written, self.capacity)


class AudioCapture:
    """
    Live audio capture from an input device.

    The PortAudio callback only enqueues copies of each chunk; the owner
    drains them with `read_chunks()` from its own thread.
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        channels: int = 2,
        chunk_size: int = 1024,
        device: Optional[int] = None
    ):
        """
        Initialize audio capture.

        Args:
            sample_rate: Requested sample rate in Hz
            channels: Requested channel count (2 enables direction estimates)
            chunk_size: Samples per callback
            device: Input device index (None for default)
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.device = device

        self.stream = None
        self.is_running = False
        self.frame_index = 0
        self._queue: queue.SimpleQueue = queue.SimpleQueue()

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: Any,
        status: Any
    ) -> None:
        """Callback for audio stream."""
        if status:
            logger.warning(f"Audio capture status: {status}")

        self._queue.put(AudioFrame(
            data=indata.copy(),
            timestamp=time.time(),
            sample_rate=self.sample_rate
        ))
        self.frame_index += 1

    def start(self) -> None:
        """
        Open the input stream.

        Raises:
            CaptureError: If the device is unavailable or access is denied.
        """
        if self.is_running:
            logger.warning("Audio capture already running")
            return

        if sd is None:
            raise CaptureError("sounddevice library required for audio capture")

        try:
            device_info = sd.query_devices(self.device, 'input')
            channels = max(1, min(self.channels, int(device_info['max_input_channels'])))

            self.stream = sd.InputStream(
                device=self.device,
                channels=channels,
                samplerate=self.sample_rate,
                blocksize=self.chunk_size,
                dtype=np.float32,
                callback=self._audio_callback
            )
            self.stream.start()
        except Exception as e:
            self.stream = None
            raise CaptureError(f"Failed to start audio capture: {e}") from e

        self.channels = channels
        self.is_running = True
        logger.info(
            f"Audio capture started: {self.channels}ch @ {self.sample_rate}Hz, "
            f"chunk={self.chunk_size}"
        )

    def stop(self) -> None:
        """Stop audio capture and release the device."""
        if self.stream is not None:
            try:
                self.stream.stop()
                self.stream.close()
            except Exception as e:
                logger.error(f"Error stopping audio stream: {e}")
            finally:
                self.stream = None

        self.is_running = False
        logger.info("Audio capture stopped")

    def read_chunks(self) -> list[AudioFrame]:
        """Drain every chunk captured since the last call."""
        frames = []
        while True:
            try:
                frames.append(self._queue.get_nowait())
            except queue.Empty:
                return frames

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


def record_sample(
    duration_s: float = 1.8,
    sample_rate: int = 48000,
    device: Optional[int] = None
) -> np.ndarray:
    """
    Record a short mono clip from the input device.

    Raises:
        CaptureError: If recording fails or access is denied.
    """
    if sd is None:
        raise CaptureError("sounddevice library required for audio capture")

    try:
        audio = sd.rec(
            int(duration_s * sample_rate),
            samplerate=sample_rate,
            channels=1,
            dtype=np.float32,
            device=device
        )
        sd.wait()
    except Exception as e:
        raise CaptureError(f"Recording failed: {e}") from e

    return audio.reshape(-1)
