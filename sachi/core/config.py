"""
Configuration loader and manager for the SACHI sound listener.

Provides centralized configuration management with validation,
environment variable overrides, and persistent storage.
"""

import os
from pathlib import Path
from typing import Any, Optional, Dict, Literal
import yaml
from pydantic import BaseModel, Field, field_validator
from loguru import logger


class SystemConfig(BaseModel):
    """System-level configuration."""
    name: str = "SACHI"
    version: str = "1.2.0"
    log_level: str = "INFO"
    data_dir: str = "./data"


class AudioCaptureConfig(BaseModel):
    """Audio capture settings."""
    sample_rate: int = 48000
    channels: int = 2
    chunk_size: int = 1024
    device: Optional[int] = None


class RingBufferConfig(BaseModel):
    """Rolling audio window settings."""
    ring_seconds: float = 1.0
    min_capacity: int = 16000
    max_capacity: int = 48000
    warm_ratio: float = 0.8


class EmbeddingConfig(BaseModel):
    """Pretrained embedding/classification model settings."""
    provider: Literal["yamnet", "none"] = "yamnet"
    model_url: str = "https://tfhub.dev/google/yamnet/1"
    target_sample_rate: int = 16000
    min_input_samples: int = 15600  # 0.975s @ 16kHz
    pretrained_min_confidence: float = 0.3
    secondary_top_k: int = 5


class FallbackFeatureConfig(BaseModel):
    """Local spectrum embedding used when the model is unavailable."""
    sample_rate: int = 8000
    window: int = 1024
    bins: int = 64


class ActivityConfig(BaseModel):
    """Energy-based activity gate settings."""
    vad_threshold: float = 0.01
    speech_override_threshold: float = 0.005


class DirectionConfig(BaseModel):
    """Stereo direction estimation settings."""
    quiet_rms: float = 0.003
    side_angle_deg: float = 15.0
    epsilon: float = 1e-9


class AudioConfig(BaseModel):
    """Audio processing configuration."""
    capture: AudioCaptureConfig = Field(default_factory=AudioCaptureConfig)
    buffer: RingBufferConfig = Field(default_factory=RingBufferConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    fallback: FallbackFeatureConfig = Field(default_factory=FallbackFeatureConfig)
    activity: ActivityConfig = Field(default_factory=ActivityConfig)
    direction: DirectionConfig = Field(default_factory=DirectionConfig)


class ClassificationConfig(BaseModel):
    """Decision settings."""
    sensitivity: float = 0.75
    smoothing_window: int = 5

    @field_validator("sensitivity")
    @classmethod
    def _clamp_sensitivity(cls, value: float) -> float:
        return min(max(float(value), 0.0), 1.0)

    @field_validator("smoothing_window")
    @classmethod
    def _positive_window(cls, value: int) -> int:
        if value < 1:
            raise ValueError("smoothing_window must be >= 1")
        return value


class SchedulerConfig(BaseModel):
    """Tick scheduling settings."""
    tick_ms: int = 50
    classify_interval_ms: int = 900


class EventLogConfig(BaseModel):
    """Detection log settings."""
    dedup_window_ms: int = 3000


class StorageConfig(BaseModel):
    """Persisted model and log file names (relative to data_dir)."""
    model_file: str = "sachi_model_v1.json"
    log_file: str = "sachi_logs_v1.json"


class Config(BaseModel):
    """Main configuration class for the SACHI sound listener."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    event_log: EventLogConfig = Field(default_factory=EventLogConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls(**cls._apply_env_overrides({}))

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        # Apply environment variable overrides
        data = cls._apply_env_overrides(data)

        return cls(**data)

    @staticmethod
    def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            "SACHI_LOG_LEVEL": ("system", "log_level"),
            "SACHI_DATA_DIR": ("system", "data_dir"),
            "SACHI_SENSITIVITY": ("classification", "sensitivity"),
            "SACHI_EMBEDDING_PROVIDER": ("audio", "embedding", "provider"),
            "SACHI_INPUT_DEVICE": ("audio", "capture", "device"),
            "SACHI_SAMPLE_RATE": ("audio", "capture", "sample_rate"),
        }

        for env_var, path in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                Config._set_nested(data, path, value)

        return data

    @staticmethod
    def _set_nested(data: Dict[str, Any], path: tuple, value: Any) -> None:
        """Set a nested dictionary value by path."""
        for key in path[:-1]:
            data = data.setdefault(key, {})

        # Convert value to appropriate type
        final_key = path[-1]
        if isinstance(value, str):
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)

        data[final_key] = value

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {path}")

    @property
    def model_path(self) -> Path:
        """Location of the persisted custom model."""
        return Path(self.system.data_dir) / self.storage.model_file

    @property
    def log_path(self) -> Path:
        """Location of the persisted detection log."""
        return Path(self.system.data_dir) / self.storage.log_file


# Global configuration instance
_config: Optional[Config] = None


def get_config(config_path: Optional[str | Path] = None) -> Config:
    """Get the global configuration instance."""
    global _config

    if _config is None:
        if config_path is None:
            # Default config path
            config_path = Path(__file__).parent.parent.parent / "config" / "settings.yaml"
        _config = Config.from_yaml(config_path)
        logger.info(f"Loaded configuration from {config_path}")

    return _config


def reload_config(config_path: Optional[str | Path] = None) -> Config:
    """Reload the configuration from file."""
    global _config
    _config = None
    return get_config(config_path)
