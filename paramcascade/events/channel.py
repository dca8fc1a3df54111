"""
events/channel.py - Shared event channel

Publish/subscribe channel carrying host log lines and engine diagnostics.
It is the only signal the engine has for inferring that a parameter's
refresh completed, so consumers take a scoped Subscription for the duration
of a wait and release it when done.

Usage:
    channel = EventChannel()

    with channel.subscribe(handler, kind=EventKind.LOG):
        ...  # handler receives LOG events while the block runs

    channel.log("Updating B from A", source="host")
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
import logging
import uuid

if TYPE_CHECKING:
    from paramcascade.errors.diagnostics import Diagnostic

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of events carried by the channel."""
    LOG = "log"
    DIAGNOSTIC = "diagnostic"


@dataclass(frozen=True)
class ChannelEvent:
    """A single entry on the channel."""

    kind: EventKind
    text: str
    source: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "text": self.text,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


EventHandler = Callable[[ChannelEvent], None]


class Subscription:
    """
    Handle for a channel subscription.

    Closing is idempotent. Used as a context manager the subscription is
    released on every exit path.
    """

    def __init__(
        self,
        channel: "EventChannel",
        handler: EventHandler,
        kind: Optional[EventKind],
        subscription_id: str,
    ):
        self._channel = channel
        self.handler = handler
        self.kind = kind  # None = wildcard
        self.subscription_id = subscription_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: ChannelEvent) -> bool:
        return self.kind is None or self.kind == event.kind

    def close(self) -> None:
        if self._active:
            self._channel.unsubscribe(self)

    def _mark_closed(self) -> None:
        self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = self.kind.value if self.kind else "*"
        return f"Subscription({self.subscription_id}, kind={kind}, active={self._active})"


class EventChannel:
    """
    Instance-scoped event channel.

    Features:
    - Kind-specific and wildcard subscriptions
    - Subscription handles with guaranteed release
    - Event history (configurable depth)
    - Pause/resume
    """

    def __init__(self, name: str = "default", max_history: int = 100):
        self._name = name
        self._max_history = max_history

        self._subscriptions: List[Subscription] = []
        self._history: List[ChannelEvent] = []
        self._subscription_counter = 0
        self._paused = False

        logger.debug(f"EventChannel created: {name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_history(self) -> int:
        return self._max_history

    def subscribe(
        self,
        handler: EventHandler,
        kind: Optional[EventKind] = None,
    ) -> Subscription:
        """
        Subscribe to channel events.

        Args:
            handler: Callback function(event) -> None
            kind: Event kind to receive, or None for all events

        Returns:
            Subscription handle (close it, or use it as a context manager)
        """
        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"
        subscription = Subscription(self, handler, kind, sub_id)
        self._subscriptions.append(subscription)

        logger.debug(f"Subscribed {sub_id} to {kind.value if kind else 'all events'}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """
        Release a subscription.

        Returns:
            True if the subscription was active on this channel
        """
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False

        subscription._mark_closed()
        logger.debug(f"Unsubscribed {subscription.subscription_id}")
        return True

    def publish(self, event: ChannelEvent) -> None:
        """Deliver an event to all matching subscribers."""
        if self._paused:
            logger.debug(f"Channel paused, dropping: {event.kind.value}")
            return

        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        # Snapshot: handlers may release their own subscription
        for subscription in list(self._subscriptions):
            if not subscription.active or not subscription.matches(event):
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Handler {subscription.subscription_id} failed for {event.kind.value}: {e}")

    def log(self, text: str, source: str = "") -> ChannelEvent:
        """Publish a text line."""
        event = ChannelEvent(kind=EventKind.LOG, text=text, source=source)
        self.publish(event)
        return event

    def diagnostic(self, diagnostic: "Diagnostic", source: str = "paramcascade") -> ChannelEvent:
        """Publish a diagnostic."""
        event = ChannelEvent(
            kind=EventKind.DIAGNOSTIC,
            text=str(diagnostic),
            source=source,
            payload={"diagnostic": diagnostic},
        )
        self.publish(event)
        return event

    def pause(self) -> None:
        """Pause delivery (events are dropped)."""
        self._paused = True
        logger.debug("EventChannel paused")

    def resume(self) -> None:
        self._paused = False
        logger.debug("EventChannel resumed")

    @property
    def is_paused(self) -> bool:
        return self._paused

    def get_history(
        self,
        limit: int = 20,
        kind: Optional[EventKind] = None,
    ) -> List[ChannelEvent]:
        """
        Get recent events.

        Args:
            limit: Maximum events to return
            kind: Filter by kind (optional)
        """
        history = self._history
        if kind:
            history = [e for e in history if e.kind == kind]
        return history[-limit:]

    def get_diagnostics(self, limit: int = 20) -> List["Diagnostic"]:
        """Get recent diagnostics."""
        return [
            e.payload["diagnostic"]
            for e in self.get_history(limit=limit, kind=EventKind.DIAGNOSTIC)
        ]

    def clear_history(self) -> None:
        self._history.clear()

    @property
    def handler_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)

    @property
    def event_count(self) -> int:
        return len(self._history)
