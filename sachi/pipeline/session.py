"""
Listening Session for the SACHI sound listener.

Drives the real-time pipeline from a fixed-rate tick on the asyncio event
loop. Every tick drains the capture queue into the ring buffer; every
classify interval one classification cycle is launched, with inference
running in the default executor so buffering keeps up while it is pending.
Only model inference runs off the loop. Prototype matching and everything
after it run back on the loop once inference returns.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
import numpy as np
from loguru import logger

from ..audio.activity import VoiceActivityGate
from ..audio.capture import RingBuffer
from ..audio.categories import icon_for_label
from ..audio.localization import DirectionEstimator
from ..core.config import Config
from ..core.event_log import EventLogger, LogEntry
from ..core.persistence import save_log
from ..core.prototype_store import PrototypeStore
from ..fusion.decision_fusion import DecisionFusion
from ..fusion.smoothing import TemporalSmoother
from .classifier import ClassificationResult, SoundClassifier


@dataclass
class SessionContext:
    """State owned by exactly one running session."""
    store: PrototypeStore
    ring: RingBuffer
    smoother: TemporalSmoother
    gate: VoiceActivityGate
    direction: DirectionEstimator
    fusion: DecisionFusion
    sample_rate: int

    @classmethod
    def create(cls, config: Config, store: PrototypeStore, capture_rate: int) -> "SessionContext":
        buffer_cfg = config.audio.buffer
        activity_cfg = config.audio.activity
        direction_cfg = config.audio.direction

        capacity = RingBuffer.capacity_for(
            capture_rate,
            buffer_cfg.ring_seconds,
            buffer_cfg.min_capacity,
            buffer_cfg.max_capacity
        )
        gate = VoiceActivityGate(
            activity_cfg.vad_threshold,
            activity_cfg.speech_override_threshold
        )
        return cls(
            store=store,
            ring=RingBuffer(capacity, buffer_cfg.warm_ratio),
            smoother=TemporalSmoother(config.classification.smoothing_window),
            gate=gate,
            direction=DirectionEstimator(
                quiet_rms=direction_cfg.quiet_rms,
                side_angle_deg=direction_cfg.side_angle_deg,
                epsilon=direction_cfg.epsilon
            ),
            fusion=DecisionFusion(config.audio.embedding.pretrained_min_confidence, gate),
            sample_rate=capture_rate
        )


def _mono(data: np.ndarray) -> np.ndarray:
    data = np.asarray(data, dtype=np.float32)
    if data.ndim == 2:
        return data.mean(axis=1)
    return data.reshape(-1)


class ListeningSession:
    """
    One live listening session.

    Only one classification cycle is ever in flight. Stopping cancels the
    tick and any pending cycle, and nothing is logged after `stop()`.
    """

    def __init__(
        self,
        config: Config,
        classifier: SoundClassifier,
        store: PrototypeStore,
        event_logger: EventLogger,
        capture,
        threshold_source: Optional[Callable[[], float]] = None,
        on_event: Optional[Callable[[LogEntry], None]] = None,
        on_level: Optional[Callable[[float], None]] = None,
        log_path: Optional[str | Path] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            config: Loaded configuration
            classifier: Embedding acquisition and matching
            store: Custom prototypes
            event_logger: Detection log entries are appended to
            capture: Source with start/stop/read_chunks and a sample_rate
            threshold_source: Returns the sensitivity, called at every decision
            on_event: Called with each logged entry
            on_level: Called with the RMS of the audio drained each tick
            log_path: Where the log is persisted after each append
            clock: Timestamp source for log entries
        """
        self.config = config
        self.classifier = classifier
        self.store = store
        self.event_logger = event_logger
        self.capture = capture
        self.threshold_source = threshold_source or (lambda: self.config.classification.sensitivity)
        self.on_event = on_event
        self.on_level = on_level
        self.log_path = log_path
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.context: Optional[SessionContext] = None
        self.last_rms = 0.0
        self.cycles_started = 0

        self._tick_task: Optional[asyncio.Task] = None
        self._pending: Optional[asyncio.Task] = None
        self._last_classify = float("-inf")
        self._stopped = True

    @property
    def is_running(self) -> bool:
        return not self._stopped

    @property
    def in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def start(self) -> None:
        """
        Open capture and start ticking.

        Raises:
            CaptureError: If the capture device cannot be opened. No session
                state is built in that case.
        """
        if self.is_running:
            logger.warning("Listening session already running")
            return

        self.capture.start()

        self.context = SessionContext.create(self.config, self.store, self.capture.sample_rate)
        self.last_rms = 0.0
        self._last_classify = float("-inf")
        self._stopped = False
        self._tick_task = asyncio.create_task(self._tick_loop(), name="sachi_tick")

        logger.info(
            f"Listening session started: ring={self.context.ring.capacity} samples, "
            f"tick={self.config.scheduler.tick_ms}ms, "
            f"classify every {self.config.scheduler.classify_interval_ms}ms"
        )

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.scheduler.tick_ms / 1000.0
        while not self._stopped:
            try:
                await self.tick(loop.time())
            except Exception as e:
                logger.error(f"Tick failed: {e}")
            await asyncio.sleep(interval)

    async def tick(self, now: float) -> Optional[asyncio.Task]:
        """
        Run one scheduler tick.

        Args:
            now: Monotonic time in seconds

        Returns:
            The classification task launched by this tick, if any
        """
        ctx = self.context
        if ctx is None or self._stopped:
            return None

        chunks = self.capture.read_chunks()
        if chunks:
            for frame in chunks:
                mono = _mono(frame.data)
                ctx.ring.append(mono)
                ctx.direction.update(frame.data)
            self.last_rms = ctx.gate.rms(np.concatenate([_mono(f.data) for f in chunks]))
            if self.on_level:
                self.on_level(self.last_rms)

        interval = self.config.scheduler.classify_interval_ms / 1000.0
        if now - self._last_classify < interval:
            return None
        self._last_classify = now

        if self.in_flight:
            logger.debug("Classification still in flight, skipping cycle")
            return None
        if not ctx.ring.is_warm():
            return None

        window = ctx.ring.snapshot()
        level = ctx.gate.rms(window)
        if not ctx.gate.is_active(level):
            return None

        self.cycles_started += 1
        self._pending = asyncio.create_task(self._classify_cycle(ctx, window, level))
        return self._pending

    async def _classify_cycle(
        self,
        ctx: SessionContext,
        window: np.ndarray,
        level: float
    ) -> Optional[LogEntry]:
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                None, self.classifier.analyze, window, ctx.sample_rate
            )
        except Exception as e:
            logger.error(f"Classification failed: {e}")
            return None

        # Stopped (or restarted) while inference was pending
        if self._stopped or self.context is not ctx:
            return None

        try:
            return self._decide(ctx, result, level)
        except Exception as e:
            logger.error(f"Classification cycle failed: {e}")
            return None

    def _decide(
        self,
        ctx: SessionContext,
        result: ClassificationResult,
        level: float
    ) -> Optional[LogEntry]:
        result.custom = ctx.store.match(result.embedding)
        threshold = min(max(float(self.threshold_source()), 0.0), 1.0)
        candidate = ctx.fusion.decide(result.custom, result.pretrained, level, threshold)
        ctx.smoother.push(candidate)
        smoothed = ctx.smoother.vote()

        entry = LogEntry(
            timestamp=self._clock(),
            label=smoothed.label,
            similarity=smoothed.averaged_score,
            confidence=result.confidence,
            direction=ctx.direction.latest.label.value,
            icon_hint=icon_for_label(smoothed.label)
        )
        if not self.event_logger.append(entry):
            return None

        if self.log_path is not None:
            try:
                save_log(self.log_path, self.event_logger.entries)
            except OSError as e:
                logger.error(f"Failed to persist log: {e}")
        if self.on_event:
            self.on_event(entry)
        return entry

    async def stop(self) -> None:
        """Cancel the tick and any pending cycle, then release capture."""
        if self._stopped and self.context is None:
            return

        self._stopped = True
        tasks = [t for t in (self._tick_task, self._pending) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tick_task = None
        self._pending = None

        self.capture.stop()
        self.context = None
        logger.info("Listening session stopped")

    async def run_forever(self, duration: Optional[float] = None) -> None:
        """Listen until cancelled, or for `duration` seconds."""
        await self.start()
        try:
            if duration is None:
                await self._tick_task
            else:
                await asyncio.sleep(duration)
        finally:
            await self.stop()
