"""
paramcascade Test Configuration and Fixtures

Provides a simulated host: fake selection controls and refresh handles that
report dependent updates on the event channel the way the host page does,
asynchronously and one dependent at a time.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

import pytest

from paramcascade.bootstrap.config import CascadeConfig, SequencerConfig
from paramcascade.core.parameter import Parameter
from paramcascade.events.channel import EventChannel


RETRIEVED_LINE = "Values retrieved from Referenced Parameters: {source}"


class FakeSelect:
    """Input control with a discrete-choice tag and change listeners."""

    def __init__(self, is_selection: bool = True):
        self.is_selection = is_selection
        self.listeners: List = []

    def add_change_listener(self, listener) -> None:
        self.listeners.append(listener)

    def change(self) -> None:
        for listener in list(self.listeners):
            listener()


class SimulatedHost:
    """
    Host page stand-in.

    Refreshing a parameter schedules, for each direct dependent, the
    "Updating {dependent} from {source}" line followed by the values
    retrieved line. Dependents listed in ``silent`` never report back.
    """

    def __init__(
        self,
        channel: EventChannel,
        delay: float = 0.01,
        silent: Iterable[str] = (),
        emit=None,
    ):
        self.channel = channel
        self.delay = delay
        self.silent = set(silent)
        self.refresh_calls: List[str] = []
        self.parameters: List[Parameter] = []
        self._emit_line = emit or (lambda text: channel.log(text, source="host"))

    def build(
        self,
        definitions: Dict[str, List[str]],
        selects: Iterable[str] = (),
        without_refresh: Iterable[str] = (),
    ) -> List[Parameter]:
        selects = set(selects)
        without_refresh = set(without_refresh)
        self.parameters = [
            Parameter(
                name=name,
                referenced_parameters=refs,
                refresh_handle=None if name in without_refresh else self._handle(name),
                input_control=FakeSelect() if name in selects else None,
            )
            for name, refs in definitions.items()
        ]
        return self.parameters

    def get(self, name: str) -> Parameter:
        return next(p for p in self.parameters if p.name == name)

    def _handle(self, name: str):
        def refresh():
            self.refresh_calls.append(name)
            loop = asyncio.get_running_loop()
            dependents = [p.name for p in self.parameters if p.references(name)]
            for i, dependent in enumerate(dependents, start=1):
                if dependent in self.silent:
                    continue
                loop.call_later(self.delay * i, self._report, dependent, name)
        return refresh

    def _report(self, dependent: str, source: str) -> None:
        self._emit_line(f"Updating {dependent} from {source}")
        self._emit_line(RETRIEVED_LINE.format(source=source))


@pytest.fixture
def channel():
    """Fresh event channel."""
    return EventChannel(name="test")


@pytest.fixture
def host(channel):
    """Simulated host publishing on the test channel."""
    return SimulatedHost(channel)


@pytest.fixture
def make_host(channel):
    """Factory for simulated hosts with custom delay or silent dependents."""
    def factory(**kwargs) -> SimulatedHost:
        return SimulatedHost(channel, **kwargs)
    return factory


@pytest.fixture
def fast_config():
    """Sequencer config with a short update timeout."""
    return SequencerConfig(update_timeout_ms=200)


@pytest.fixture
def cascade_config():
    """Root config with a generous timeout for completing cascades."""
    return CascadeConfig(sequencer=SequencerConfig(update_timeout_ms=2000))


@pytest.fixture
def restore_root_logging():
    """Undo handler and level changes made to the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
