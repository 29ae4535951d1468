"""
Export Manager - export the detection log to JSON or CSV.
"""

import csv
import io
import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence
from loguru import logger

from .event_log import LogEntry

CSV_HEADERS = ["when", "label", "similarity", "confidence", "direction"]


def _format_score(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.4f}"


def to_records(entries: Sequence[LogEntry]) -> list[dict]:
    """Structured records, one per entry."""
    return [entry.to_dict() for entry in entries]


def to_csv(entries: Sequence[LogEntry]) -> str:
    """
    Delimited text with every field quoted and embedded quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        writer.writerow([
            entry.when,
            entry.label,
            _format_score(entry.similarity),
            _format_score(entry.confidence),
            entry.direction,
        ])
    return buffer.getvalue()


class ExportManager:
    """
    Writes the detection log to disk.
    """

    def __init__(self, output_dir: str = "exports"):
        self.output_dir = Path(output_dir)

    def _resolve(self, path: Optional[str | Path], suffix: str) -> Path:
        if path is None:
            path = self.output_dir / f"sachi-logs_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{suffix}"
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def export_json(self, entries: Sequence[LogEntry], path: Optional[str | Path] = None) -> str:
        """Export all entries to JSON."""
        if not entries:
            raise ValueError("no logs to export")

        output_path = self._resolve(path, "json")
        with open(output_path, 'w') as f:
            json.dump(to_records(entries), f, indent=2)

        logger.info(f"Exported JSON: {output_path}")
        return str(output_path)

    def export_csv(self, entries: Sequence[LogEntry], path: Optional[str | Path] = None) -> str:
        """Export all entries to CSV."""
        if not entries:
            raise ValueError("no logs to export")

        output_path = self._resolve(path, "csv")
        with open(output_path, 'w', newline='') as f:
            f.write(to_csv(entries))

        logger.info(f"Exported CSV: {output_path}")
        return str(output_path)

    def export(self, entries: Sequence[LogEntry], path: Optional[str | Path] = None,
               fmt: str = "csv") -> str:
        if fmt == "csv":
            return self.export_csv(entries, path)
        if fmt == "json":
            return self.export_json(entries, path)
        raise ValueError(f"unknown export format: {fmt}")
