"""
bootstrap/ - Configuration and entry points

Provides:
- CascadeConfig: root configuration (sequencer, channel, logging)
- load_config / get_config: configuration loading
- setup_logging / cli_main: see bootstrap.entrypoints
"""

from .config import (
    CascadeConfig,
    ChannelConfig,
    LoggingConfig,
    SequencerConfig,
    get_config,
    load_config,
    reset_config,
)

__all__ = [
    "CascadeConfig",
    "ChannelConfig",
    "LoggingConfig",
    "SequencerConfig",
    "get_config",
    "load_config",
    "reset_config",
]
