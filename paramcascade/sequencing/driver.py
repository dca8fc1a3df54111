"""
sequencing/driver.py - Cascade wiring

Runs once per page session: sorts the parameters, forces a full sequenced
pass so the initial render is correct, then installs change observers that
re-sequence the downstream slice of whichever selection the user changes.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional, Sequence, Set
import asyncio
import logging

from paramcascade.core.parameter import Parameter
from paramcascade.dependencies.graph import GraphSorter, SortResult, direct_dependents, tail_from
from paramcascade.events.channel import EventChannel
from .updater import SequencedUpdater, SequenceResult

if TYPE_CHECKING:
    from paramcascade.bootstrap.config import CascadeConfig

logger = logging.getLogger(__name__)


class CascadeDriver:
    """Wires sorting, the initial pass and change observers together."""

    def __init__(
        self,
        parameters: Sequence[Parameter],
        channel: Optional[EventChannel] = None,
        config: Optional["CascadeConfig"] = None,
    ):
        if config is None:
            from paramcascade.bootstrap.config import CascadeConfig
            config = CascadeConfig()

        self._parameters = list(parameters)
        self._config = config
        self._channel = channel or EventChannel(max_history=config.channel.max_history)
        self._sorter = GraphSorter(self._channel)
        self._updater = SequencedUpdater(self._channel, config.sequencer)

        self._sort_result: Optional[SortResult] = None
        self._observed: List[str] = []
        self._tasks: Set["asyncio.Task[SequenceResult]"] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._initial_result: Optional[SequenceResult] = None

    @property
    def channel(self) -> EventChannel:
        return self._channel

    @property
    def updater(self) -> SequencedUpdater:
        return self._updater

    @property
    def order(self) -> List[Parameter]:
        return list(self._sort_result.order) if self._sort_result else []

    @property
    def sort_result(self) -> Optional[SortResult]:
        return self._sort_result

    @property
    def observed_parameters(self) -> List[str]:
        """Names of parameters with an installed change observer."""
        return list(self._observed)

    @property
    def initial_result(self) -> Optional[SequenceResult]:
        return self._initial_result

    async def start(self) -> None:
        """Sort, run the forced initial pass, then install observers."""
        self._loop = asyncio.get_running_loop()
        self._sort_result = self._sorter.resolve(self._parameters)
        order = self._sort_result.order

        logger.info(f"Cascade order: {self._sort_result.names}")

        if self._config.sequencer.initial_pass:
            self._initial_result = await self._updater.run_sequence(order, order)

        self._register_observers(order)

    def _register_observers(self, order: List[Parameter]) -> None:
        for param in order:
            if not param.has_selection_control:
                continue
            if not direct_dependents(param, order):
                continue
            param.input_control.add_change_listener(self._make_listener(param))
            self._observed.append(param.name)

        logger.debug(f"Change observers installed for {self._observed}")

    def _make_listener(self, param: Parameter):
        def listener(*_args, **_kwargs) -> None:
            self.schedule_change(param)
        return listener

    def schedule_change(self, param: Parameter) -> "asyncio.Task[SequenceResult]":
        """Schedule re-sequencing of everything after ``param``."""
        if self._loop is None:
            raise RuntimeError("CascadeDriver.start() has not run")

        task = self._loop.create_task(self.on_change(param))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def on_change(self, param: Parameter) -> SequenceResult:
        """Re-sequence the downstream slice of a changed parameter."""
        order = self.order
        remaining = tail_from(param, order)
        logger.debug(f"{param.name} changed, re-sequencing {[p.name for p in remaining]}")
        return await self._updater.run_sequence(remaining, order, trigger=param)

    async def wait_idle(self) -> None:
        """Wait until every scheduled change sequence has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def initialize(
    parameters: Sequence[Parameter],
    channel: Optional[EventChannel] = None,
    config: Optional["CascadeConfig"] = None,
) -> CascadeDriver:
    """
    Document-ready entry point.

    Performs the forced full-sequence pass and installs change observers.
    """
    driver = CascadeDriver(parameters, channel=channel, config=config)
    await driver.start()
    return driver
