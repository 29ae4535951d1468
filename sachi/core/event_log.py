"""
Detection event log with duplicate suppression.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional
from loguru import logger


@dataclass(frozen=True)
class LogEntry:
    """One logged detection. Immutable once appended."""
    timestamp: datetime
    label: str
    similarity: float
    confidence: Optional[float]
    direction: str
    icon_hint: str

    @property
    def when(self) -> str:
        """ISO-8601 timestamp."""
        return self.timestamp.isoformat()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.when
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        # "when"/"icon" are the keys older log files used
        raw_time = data.get("timestamp") or data["when"]
        timestamp = datetime.fromisoformat(raw_time.replace("Z", "+00:00"))
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        confidence = data.get("confidence")
        return cls(
            timestamp=timestamp,
            label=str(data["label"]),
            similarity=float(data.get("similarity") or 0.0),
            confidence=None if confidence is None else float(confidence),
            direction=str(data.get("direction") or "Unknown"),
            icon_hint=str(data.get("icon_hint") or data.get("icon") or "fa-wave-square"),
        )


class EventLogger:
    """
    Append-only detection log.

    An entry is kept when the log is empty, the label changed, or more than
    the dedup window has passed since the last kept entry. Sustained sounds
    are therefore re-logged periodically instead of on every cycle.
    """

    def __init__(self, dedup_window_ms: int = 3000, entries: Optional[list[LogEntry]] = None):
        self.dedup_window_ms = dedup_window_ms
        self._entries: list[LogEntry] = list(entries or [])
        self._paused = False
        logger.info(f"EventLogger initialized: {len(self._entries)} entries, dedup={dedup_window_ms}ms")

    def should_append(self, entry: LogEntry) -> bool:
        last = self.last
        if last is None or entry.label != last.label:
            return True
        elapsed_ms = (entry.timestamp - last.timestamp).total_seconds() * 1000.0
        return elapsed_ms > self.dedup_window_ms

    def append(self, entry: LogEntry) -> bool:
        """Append unless paused or a duplicate. Returns True when kept."""
        if self._paused:
            return False
        if not self.should_append(entry):
            logger.debug(f"Duplicate '{entry.label}' suppressed")
            return False

        self._entries.append(entry)
        logger.info(
            f"Logged {entry.label} (sim {entry.similarity:.2f}, {entry.direction})"
        )
        return True

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    @property
    def paused(self) -> bool:
        return self._paused

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Event log cleared")

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    @property
    def last(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)
