"""
Unit tests for sequencing/driver.py

Tests the forced initial pass, observer installation and change-triggered
re-sequencing.
"""

import pytest

from paramcascade.bootstrap.config import CascadeConfig, SequencerConfig
from paramcascade.core.parameter import Parameter
from paramcascade.errors.diagnostics import DiagnosticKind
from paramcascade.sequencing.driver import CascadeDriver, initialize


CASCADE = {
    "Service": ["Region", "Environment"],
    "Region": [],
    "Environment": [],
    "Host": ["Service"],
    "Notes": [],
}


class TextBox:
    """Free-text control, never treated as a selection."""

    is_selection = False

    def __init__(self):
        self.listeners = []

    def add_change_listener(self, listener):
        self.listeners.append(listener)


@pytest.fixture
def no_initial_pass():
    return CascadeConfig(
        sequencer=SequencerConfig(update_timeout_ms=2000, initial_pass=False)
    )


class TestStart:
    """Tests for driver start-up."""

    @pytest.mark.asyncio
    async def test_initial_pass_refreshes_in_order(self, host, channel, cascade_config):
        """Every parameter is refreshed once in dependency order."""
        params = host.build(CASCADE)

        driver = await initialize(params, channel=channel, config=cascade_config)

        assert isinstance(driver, CascadeDriver)
        assert host.refresh_calls == ["Region", "Environment", "Notes", "Service", "Host"]
        assert [p.name for p in driver.order] == host.refresh_calls
        assert driver.initial_result.completed_count == 5
        assert driver.initial_result.success

    @pytest.mark.asyncio
    async def test_initial_pass_disabled(self, host, channel, no_initial_pass):
        """Without the initial pass nothing is refreshed on start."""
        params = host.build(CASCADE, selects=["Region"])

        driver = await initialize(params, channel=channel, config=no_initial_pass)

        assert host.refresh_calls == []
        assert driver.initial_result is None
        assert driver.observed_parameters == ["Region"]

    @pytest.mark.asyncio
    async def test_observers_only_for_selects_with_dependents(self, host, channel, no_initial_pass):
        """Selections without dependents are not observed."""
        params = host.build(CASCADE, selects=["Region", "Notes", "Host"])

        driver = await initialize(params, channel=channel, config=no_initial_pass)

        assert driver.observed_parameters == ["Region"]
        assert len(host.get("Region").input_control.listeners) == 1
        assert host.get("Notes").input_control.listeners == []
        assert host.get("Host").input_control.listeners == []

    @pytest.mark.asyncio
    async def test_non_selection_control_not_observed(self, channel, no_initial_pass):
        """Controls without the discrete-choice tag are skipped."""
        box = TextBox()
        params = [Parameter("A", input_control=box), Parameter("B", ["A"])]

        driver = await initialize(params, channel=channel, config=no_initial_pass)

        assert driver.observed_parameters == []
        assert box.listeners == []

    @pytest.mark.asyncio
    async def test_cycle_reported_on_start(self, channel, cascade_config):
        """A cyclic definition still starts, with the resolvable prefix."""
        params = [Parameter("A"), Parameter("B", ["C"]), Parameter("C", ["B"])]

        driver = await initialize(params, channel=channel, config=cascade_config)

        assert [p.name for p in driver.order] == ["A"]
        assert driver.sort_result.unresolved == ["B", "C"]
        kinds = [d.kind for d in channel.get_diagnostics()]
        assert DiagnosticKind.UNRESOLVED_DEPENDENCY in kinds

    def test_default_channel_created(self):
        """A driver without a channel owns one sized from config."""
        config = CascadeConfig()
        config.channel.max_history = 7

        driver = CascadeDriver([], config=config)

        assert driver.channel is not None
        assert driver.channel.max_history == 7
        assert driver.updater.channel is driver.channel


class TestChanges:
    """Tests for change-triggered re-sequencing."""

    @pytest.mark.asyncio
    async def test_change_resequences_tail(self, host, channel, cascade_config):
        """Changing a selection refreshes everything after it in order."""
        params = host.build(CASCADE, selects=["Region"])
        driver = await initialize(params, channel=channel, config=cascade_config)
        host.refresh_calls.clear()

        host.get("Region").input_control.change()
        await driver.wait_idle()

        assert host.refresh_calls == ["Environment", "Notes", "Service", "Host"]

    @pytest.mark.asyncio
    async def test_schedule_change_returns_task(self, host, channel, no_initial_pass):
        """schedule_change returns a task resolving to the sequence result."""
        params = host.build(CASCADE)
        driver = await initialize(params, channel=channel, config=no_initial_pass)

        task = driver.schedule_change(host.get("Service"))
        sequence = await task

        assert sequence.trigger_parameter == "Service"
        assert sequence.parameters == ["Host"]
        assert host.refresh_calls == ["Host"]

    @pytest.mark.asyncio
    async def test_repeated_changes_run_one_after_another(self, host, channel, no_initial_pass):
        """Two quick changes produce two complete, non-interleaved sequences."""
        params = host.build(CASCADE, selects=["Region"])
        driver = await initialize(params, channel=channel, config=no_initial_pass)
        tail = ["Environment", "Notes", "Service", "Host"]

        host.get("Region").input_control.change()
        host.get("Region").input_control.change()
        await driver.wait_idle()

        assert host.refresh_calls == tail + tail

    @pytest.mark.asyncio
    async def test_change_of_last_parameter(self, host, channel, no_initial_pass):
        """The last parameter in order has nothing to re-sequence."""
        params = host.build(CASCADE)
        driver = await initialize(params, channel=channel, config=no_initial_pass)

        sequence = await driver.on_change(host.get("Host"))

        assert sequence.total_count == 0
        assert host.refresh_calls == []

    def test_schedule_before_start_raises(self):
        """Changes cannot be scheduled before start()."""
        driver = CascadeDriver([Parameter("A")])

        with pytest.raises(RuntimeError):
            driver.schedule_change(Parameter("A"))
