"""
Persistence for the custom model and the detection log.

Both are stored as JSON. Loading is fail-open: a missing or malformed file
yields an empty collection. Importing is strict: an invalid file is
rejected before anything in memory changes.
"""

import json
import math
from pathlib import Path
from typing import Literal
import numpy as np
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from loguru import logger

from .event_log import LogEntry
from .prototype_store import Prototype, PrototypeStore

MODEL_FILE_VERSION = 1


class ModelFileError(ValueError):
    """Raised when an imported model file is invalid."""


class PrototypeRecord(BaseModel):
    """One prototype as stored on disk."""
    label: str = Field(min_length=1)
    vector: list[float] = Field(min_length=1)
    example_count: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("exampleCount", "examples", "example_count"),
    )

    @field_validator("vector")
    @classmethod
    def _finite(cls, value: list[float]) -> list[float]:
        if not all(math.isfinite(x) for x in value):
            raise ValueError("vector values must be finite")
        return value

    def to_prototype(self) -> Prototype:
        return Prototype(
            label=self.label,
            vector=np.asarray(self.vector, dtype=np.float64),
            example_count=self.example_count,
        )


class ModelFile(BaseModel):
    """Versioned collection of prototypes."""
    version: int = MODEL_FILE_VERSION
    prototypes: list[PrototypeRecord] = Field(default_factory=list)


def _parse_model(raw: str) -> ModelFile:
    data = json.loads(raw)
    if isinstance(data, list):
        # Unversioned list written by older releases
        data = {"version": MODEL_FILE_VERSION, "prototypes": data}
    return ModelFile.model_validate(data)


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def model_to_dict(store: PrototypeStore) -> dict:
    return {
        "version": MODEL_FILE_VERSION,
        "prototypes": [p.to_dict() for p in store],
    }


def load_model(path: str | Path, store: PrototypeStore) -> PrototypeStore:
    """Fill `store` from disk; a missing or malformed file leaves it empty."""
    path = Path(path)
    store.reset_all()
    if not path.exists():
        return store

    try:
        model = _parse_model(path.read_text())
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Ignoring malformed model file {path}: {e}")
        return store

    for record in model.prototypes:
        store.add(record.to_prototype())
    logger.info(f"Loaded {len(store)} prototypes from {path}")
    return store


def save_model(path: str | Path, store: PrototypeStore) -> None:
    _write_json(Path(path), model_to_dict(store))
    logger.debug(f"Saved {len(store)} prototypes to {path}")


def export_model(path: str | Path, store: PrototypeStore) -> str:
    """Write the model in its persisted shape for sharing."""
    save_model(path, store)
    logger.info(f"Exported model: {path}")
    return str(path)


def import_model(
    path: str | Path,
    store: PrototypeStore,
    mode: Literal["merge", "replace"] = "merge"
) -> int:
    """
    Import prototypes from a model file.

    Merge overwrites labels present in the file and keeps the rest; replace
    drops everything first.

    Returns:
        Number of prototypes imported.

    Raises:
        ModelFileError: If the file cannot be read or fails validation.
    """
    if mode not in ("merge", "replace"):
        raise ValueError(f"unknown import mode: {mode}")

    try:
        model = _parse_model(Path(path).read_text())
    except (OSError, ValueError, ValidationError) as e:
        raise ModelFileError(f"Invalid model file {path}: {e}") from e

    if mode == "replace":
        store.reset_all()
    for record in model.prototypes:
        store.add(record.to_prototype())

    logger.info(f"Imported {len(model.prototypes)} prototypes ({mode}) from {path}")
    return len(model.prototypes)


def load_log(path: str | Path) -> list[LogEntry]:
    """Read persisted log entries; a missing or malformed file yields []."""
    path = Path(path)
    if not path.exists():
        return []

    try:
        data = json.loads(path.read_text())
        if not isinstance(data, list):
            raise ValueError("log file must contain a list")
        return [LogEntry.from_dict(item) for item in data]
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Ignoring malformed log file {path}: {e}")
        return []


def save_log(path: str | Path, entries: list[LogEntry]) -> None:
    _write_json(Path(path), [entry.to_dict() for entry in entries])
