"""
events/log_bridge.py - logging to EventChannel bridge

Hosts that report refresh progress through the standard ``logging`` module
can feed the channel by attaching a ChannelLogHandler to their logger.
Records emitted by paramcascade's own loggers are never republished.
"""

from __future__ import annotations
from typing import Optional, Union
import logging

from .channel import EventChannel

ENGINE_LOGGER_PREFIX = "paramcascade"


class _ExcludeEngineRecords(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        return not (name == ENGINE_LOGGER_PREFIX or name.startswith(ENGINE_LOGGER_PREFIX + "."))


class ChannelLogHandler(logging.Handler):
    """Republish log records as LOG events on a channel."""

    def __init__(self, channel: EventChannel, level: int = logging.NOTSET):
        super().__init__(level)
        self.channel = channel
        self.addFilter(_ExcludeEngineRecords())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self.channel.log(text, source=record.name)


def _resolve(logger: Union[str, logging.Logger, None]) -> logging.Logger:
    if isinstance(logger, logging.Logger):
        return logger
    return logging.getLogger(logger)


def attach_channel(
    channel: EventChannel,
    logger: Union[str, logging.Logger, None] = None,
    level: int = logging.NOTSET,
) -> ChannelLogHandler:
    """
    Attach a ChannelLogHandler to a logger.

    Args:
        channel: Channel to publish on
        logger: Logger or logger name (None = root logger)
        level: Minimum record level to forward

    Returns:
        The installed handler (pass it to detach_channel)
    """
    handler = ChannelLogHandler(channel, level=level)
    _resolve(logger).addHandler(handler)
    return handler


def detach_channel(
    handler: ChannelLogHandler,
    logger: Union[str, logging.Logger, None] = None,
) -> None:
    _resolve(logger).removeHandler(handler)
