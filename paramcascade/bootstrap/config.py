"""
bootstrap/config.py - paramcascade configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from paramcascade.sequencing.completion import (
    DEFAULT_RETRIEVED_PATTERN,
    DEFAULT_STARTED_PATTERN,
    CompletionPatterns,
)

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class SequencerConfig:
    """Update sequencing settings."""

    update_timeout_ms: int = 5000
    serialize_sequences: bool = True  # Queue overlapping sequences FIFO
    initial_pass: bool = True         # Forced full pass on start

    # Channel lines used to infer completion
    started_pattern: str = DEFAULT_STARTED_PATTERN
    retrieved_pattern: str = DEFAULT_RETRIEVED_PATTERN

    def __post_init__(self):
        if self.update_timeout_ms <= 0:
            raise ValueError(f"update_timeout_ms must be positive, got {self.update_timeout_ms}")

    @property
    def update_timeout_seconds(self) -> float:
        return self.update_timeout_ms / 1000.0

    def patterns(self) -> CompletionPatterns:
        return CompletionPatterns.compile(self.started_pattern, self.retrieved_pattern)

    @classmethod
    def from_env(cls) -> "SequencerConfig":
        return cls(
            update_timeout_ms=int(os.getenv("PARAMCASCADE_UPDATE_TIMEOUT_MS", "5000")),
            serialize_sequences=_env_bool("PARAMCASCADE_SERIALIZE", "true"),
            initial_pass=_env_bool("PARAMCASCADE_INITIAL_PASS", "true"),
            started_pattern=os.getenv("PARAMCASCADE_STARTED_PATTERN", DEFAULT_STARTED_PATTERN),
            retrieved_pattern=os.getenv("PARAMCASCADE_RETRIEVED_PATTERN", DEFAULT_RETRIEVED_PATTERN),
        )


@dataclass
class ChannelConfig:
    """Event channel settings."""

    max_history: int = 100

    @classmethod
    def from_env(cls) -> "ChannelConfig":
        return cls(max_history=int(os.getenv("PARAMCASCADE_MAX_HISTORY", "100")))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("PARAMCASCADE_LOG_LEVEL", "INFO"),
            format=os.getenv("PARAMCASCADE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("PARAMCASCADE_LOG_FILE"),
            json_logs=_env_bool("PARAMCASCADE_JSON_LOGS", "false"),
        )


@dataclass
class CascadeConfig:
    """Root configuration for paramcascade."""

    sequencer: SequencerConfig = field(default_factory=SequencerConfig)
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "CascadeConfig":
        """Create configuration from environment variables."""
        return cls(
            sequencer=SequencerConfig.from_env(),
            channel=ChannelConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "CascadeConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "CascadeConfig":
        """Create config from dictionary, file values over environment."""
        config = cls.from_env()

        for section in ("sequencer", "channel", "logging"):
            target = getattr(config, section)
            known = {f.name for f in fields(target)}
            for key, value in data.get(section, {}).items():
                if key in known:
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key: {section}.{key}")

        # Re-run validation after overrides
        config.sequencer.__post_init__()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "sequencer": {
                "update_timeout_ms": self.sequencer.update_timeout_ms,
                "serialize_sequences": self.sequencer.serialize_sequences,
                "initial_pass": self.sequencer.initial_pass,
                "started_pattern": self.sequencer.started_pattern,
                "retrieved_pattern": self.sequencer.retrieved_pattern,
            },
            "channel": {
                "max_history": self.channel.max_history,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[CascadeConfig] = None


def load_config(filepath: Optional[str] = None) -> CascadeConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        CascadeConfig instance
    """
    global _config

    if filepath:
        _config = CascadeConfig.from_file(filepath)
    else:
        default_paths = [
            "./paramcascade.json",
            "./config/paramcascade.json",
            os.path.expanduser("~/.paramcascade/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = CascadeConfig.from_file(path)
                return _config

        _config = CascadeConfig.from_env()

    logger.debug(f"Configuration loaded: update_timeout_ms={_config.sequencer.update_timeout_ms}")
    return _config


def get_config() -> CascadeConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the loaded configuration."""
    global _config
    _config = None
