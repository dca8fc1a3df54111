"""
paramcascade events

Provides:
- EventChannel: publish/subscribe channel for log lines and diagnostics
- Subscription: scoped subscription handle
- ChannelLogHandler: bridge from the logging module onto a channel
"""

from .channel import (
    ChannelEvent,
    EventChannel,
    EventHandler,
    EventKind,
    Subscription,
)
from .log_bridge import (
    ChannelLogHandler,
    attach_channel,
    detach_channel,
)

__all__ = [
    # Channel
    "ChannelEvent",
    "EventChannel",
    "EventHandler",
    "EventKind",
    "Subscription",
    # Logging bridge
    "ChannelLogHandler",
    "attach_channel",
    "detach_channel",
]
