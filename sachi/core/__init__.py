"""Core module for configuration, custom labels and the detection log."""

from .config import Config, get_config
from .prototype_store import Prototype, PrototypeStore, MatchResult
from .event_log import EventLogger, LogEntry
from .persistence import ModelFileError
from .export_manager import ExportManager

__all__ = [
    "Config",
    "get_config",
    "Prototype",
    "PrototypeStore",
    "MatchResult",
    "EventLogger",
    "LogEntry",
    "ModelFileError",
    "ExportManager"
]
