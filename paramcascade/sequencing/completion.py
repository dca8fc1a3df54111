"""
sequencing/completion.py - Refresh completion signals

A refresh handle gives no direct callback, so completion is either signalled
explicitly (the handle returns an awaitable) or inferred from log lines on
the event channel. Both strategies sit behind the CompletionSignal protocol.

Inference protocol, per update wave:
    "Updating {dependent} from {source}"         -> pending pair (last start wins)
    "Values retrieved from Referenced Parameters:" -> consumes the pending pair;
        the dependent is satisfied when the pair's source is the parameter
        being refreshed
    Start lines naming another source set the pair but never mark a
    tracked dependent pending.
Anything else is ignored and leaves the pending pair untouched.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Pattern, Protocol, Sequence, Tuple
import asyncio
import logging
import re

from paramcascade.events.channel import ChannelEvent, EventKind

logger = logging.getLogger(__name__)


DEFAULT_STARTED_PATTERN = r"^Updating (\S+) from (\S+)$"
DEFAULT_RETRIEVED_PATTERN = r"^Values retrieved from Referenced Parameters:"


class DependentStatus(Enum):
    """Inferred refresh state of a dependent within one wave."""
    IDLE = "idle"
    PENDING = "pending"
    SATISFIED = "satisfied"


@dataclass(frozen=True)
class CompletionPatterns:
    """Text patterns recognised on the channel."""
    started: Pattern[str]
    retrieved: Pattern[str]

    @classmethod
    def compile(
        cls,
        started: str = DEFAULT_STARTED_PATTERN,
        retrieved: str = DEFAULT_RETRIEVED_PATTERN,
    ) -> "CompletionPatterns":
        patterns = cls(started=re.compile(started), retrieved=re.compile(retrieved))
        if patterns.started.groups < 2:
            raise ValueError(
                f"Started pattern must capture (dependent, source) groups: {started!r}"
            )
        return patterns


DEFAULT_PATTERNS = CompletionPatterns.compile()


class CompletionSignal(Protocol):
    """Something an update can wait on, bounded by a timeout."""

    async def wait(self, timeout: float) -> bool:
        """Return True on completion, False when the timeout elapsed first."""
        ...

    def status_map(self) -> Dict[str, str]:
        ...


class CompletionTracker:
    """
    Infers dependents' refresh completion from channel log lines.

    Feed it events through ``observe`` (typically as a channel subscription
    handler); ``wait`` returns as soon as every tracked dependent is
    satisfied.
    """

    def __init__(
        self,
        source: str,
        dependents: Sequence[str],
        patterns: Optional[CompletionPatterns] = None,
    ):
        self.source = source
        self.dependents = list(dependents)
        self._patterns = patterns or DEFAULT_PATTERNS
        self._status: Dict[str, DependentStatus] = {
            name: DependentStatus.IDLE for name in self.dependents
        }
        self._pending: Optional[Tuple[str, str]] = None
        self._settled = asyncio.Event()
        if not self.dependents:
            self._settled.set()

    @property
    def pending_pair(self) -> Optional[Tuple[str, str]]:
        return self._pending

    @property
    def is_satisfied(self) -> bool:
        return self._settled.is_set()

    def status_of(self, dependent: str) -> Optional[DependentStatus]:
        return self._status.get(dependent)

    def status_map(self) -> Dict[str, str]:
        return {name: status.value for name, status in self._status.items()}

    def unsatisfied(self) -> List[str]:
        return [
            name for name, status in self._status.items()
            if status != DependentStatus.SATISFIED
        ]

    def observe(self, event: ChannelEvent) -> None:
        """Channel handler: advance the state machine on LOG events."""
        if event.kind != EventKind.LOG:
            return
        self.feed(event.text)

    def feed(self, text: Any) -> None:
        """Advance the state machine with one line of text."""
        if not isinstance(text, str):
            return

        started = self._patterns.started.match(text)
        if started:
            dependent, source = started.group(1), started.group(2)
            self._pending = (dependent, source)
            if (
                source == self.source
                and dependent in self._status
                and self._status[dependent] != DependentStatus.SATISFIED
            ):
                self._status[dependent] = DependentStatus.PENDING
            return

        if self._pending is None:
            return

        if self._patterns.retrieved.match(text):
            dependent, source = self._pending
            self._pending = None
            if source == self.source and dependent in self._status:
                self._status[dependent] = DependentStatus.SATISFIED
                logger.debug(f"{dependent} satisfied by {source}")
                if not self.unsatisfied():
                    self._settled.set()
            elif dependent in self._status and self._status[dependent] == DependentStatus.PENDING:
                self._status[dependent] = DependentStatus.IDLE

    async def wait(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._settled.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True


class AwaitableCompletion:
    """
    Completion signalled by the awaitable a refresh handle returned.

    The host's operation is never cancelled on timeout; the engine only
    stops waiting for it.
    """

    def __init__(self, awaitable: Awaitable[Any], dependents: Sequence[str] = ()):
        self._future = asyncio.ensure_future(awaitable)
        self._future.add_done_callback(self._on_done)
        self.dependents = list(dependents)

    @staticmethod
    def _on_done(future: "asyncio.Future[Any]") -> None:
        # Late failures surface here once the engine stopped waiting
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Refresh awaitable failed: {future.exception()}")

    @property
    def error(self) -> Optional[BaseException]:
        if self._future.done() and not self._future.cancelled():
            return self._future.exception()
        return None

    def status_map(self) -> Dict[str, str]:
        if self._future.done() and not self._future.cancelled() and self.error is None:
            status = DependentStatus.SATISFIED
        else:
            status = DependentStatus.PENDING
        return {name: status.value for name in self.dependents}

    async def wait(self, timeout: float) -> bool:
        done, _ = await asyncio.wait({self._future}, timeout=timeout)
        return bool(done)
