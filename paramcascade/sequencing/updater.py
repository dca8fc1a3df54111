"""
sequencing/updater.py - Sequenced parameter updates

Drives parameter refreshes one at a time, waiting after each refresh until
its direct dependents are observed to have received fresh values, or until
the update timeout elapses.

Each pairwise wait is only approximately correct (completion is inferred),
but awaiting every update before starting the next gives the whole cascade
a total order.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence
import asyncio
import inspect
import logging
import time
import uuid

from paramcascade.core.parameter import Parameter
from paramcascade.dependencies.graph import direct_dependents
from paramcascade.errors.diagnostics import (
    Diagnostic,
    DiagnosticSeverity,
    missing_capability,
    refresh_failed,
    update_timeout,
)
from paramcascade.events.channel import EventChannel, EventKind
from .completion import AwaitableCompletion, CompletionSignal, CompletionTracker

if TYPE_CHECKING:
    from paramcascade.bootstrap.config import SequencerConfig

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================

class UpdateStatus(Enum):
    """Outcome of a single parameter update."""
    COMPLETED = "completed"  # All dependents observed, or explicit signal resolved
    TIMED_OUT = "timed_out"  # Proceeded after the timeout
    SKIPPED = "skipped"      # No refresh handle, nothing to wait for
    FAILED = "failed"        # Refresh handle raised


@dataclass
class UpdateResult:
    """Result of updating a single parameter."""
    parameter: str
    status: UpdateStatus
    started_at: datetime
    completed_at: Optional[datetime] = None

    dependents: List[str] = field(default_factory=list)
    status_map: Dict[str, str] = field(default_factory=dict)

    elapsed_ms: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status in (UpdateStatus.COMPLETED, UpdateStatus.SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameter": self.parameter,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "dependents": list(self.dependents),
            "status_map": dict(self.status_map),
            "elapsed_ms": self.elapsed_ms,
            "error": self.error,
        }


@dataclass
class SequenceResult:
    """Result of a sequenced run over several parameters."""
    sequence_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    results: List[UpdateResult] = field(default_factory=list)

    completed_count: int = 0
    timed_out_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0

    total_time_ms: int = 0
    trigger_parameter: Optional[str] = None

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def parameters(self) -> List[str]:
        return [r.parameter for r in self.results]

    @property
    def success(self) -> bool:
        return self.timed_out_count == 0 and self.failed_count == 0

    def record(self, result: UpdateResult) -> None:
        self.results.append(result)
        if result.status == UpdateStatus.COMPLETED:
            self.completed_count += 1
        elif result.status == UpdateStatus.TIMED_OUT:
            self.timed_out_count += 1
        elif result.status == UpdateStatus.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1

    def get_summary(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "success": self.success,
            "total": self.total_count,
            "completed": self.completed_count,
            "timed_out": self.timed_out_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "total_time_ms": self.total_time_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "results": [r.to_dict() for r in self.results],
            "completed_count": self.completed_count,
            "timed_out_count": self.timed_out_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "total_time_ms": self.total_time_ms,
            "trigger_parameter": self.trigger_parameter,
        }


# =============================================================================
# SEQUENCED UPDATER
# =============================================================================

class SequencedUpdater:
    """
    Refreshes parameters in order, inferring completion from the channel.

    Usage:
        updater = SequencedUpdater(channel)
        order = GraphSorter(channel).sort(parameters)
        await updater.run_sequence(order, order)
    """

    def __init__(
        self,
        channel: EventChannel,
        config: Optional["SequencerConfig"] = None,
    ):
        if config is None:
            from paramcascade.bootstrap.config import SequencerConfig
            config = SequencerConfig()

        self._channel = channel
        self._config = config
        self._patterns = config.patterns()
        self._lock = asyncio.Lock() if config.serialize_sequences else None

        self._progress_callbacks: List[Callable[[UpdateResult], None]] = []
        self._active_sequences = 0

    @property
    def channel(self) -> EventChannel:
        return self._channel

    @property
    def timeout_seconds(self) -> float:
        return self._config.update_timeout_seconds

    def is_running(self) -> bool:
        return self._active_sequences > 0

    async def update_one(self, param: Parameter, order: Sequence[Parameter]) -> UpdateResult:
        """
        Refresh ``param`` and wait for its direct dependents.

        Resolves once every direct dependent in ``order`` is observed to have
        received fresh values from ``param``, or once the update timeout
        elapses. Never raises for timeouts or failed refreshes.
        """
        dependents = [p.name for p in direct_dependents(param, order)]
        start = time.monotonic()
        result = UpdateResult(
            parameter=param.name,
            status=UpdateStatus.COMPLETED,
            started_at=datetime.now(timezone.utc),
            dependents=dependents,
        )

        if param.refresh_handle is None:
            logger.debug(missing_capability(param.name).message)
            result.status = UpdateStatus.SKIPPED
            return self._finish(result, start)

        tracker = CompletionTracker(param.name, dependents, self._patterns)

        # The subscription must exist before the refresh: hosts may log
        # synchronously from inside the handle.
        with self._channel.subscribe(tracker.observe, kind=EventKind.LOG):
            logger.debug(f"Refreshing {param.name}, waiting for {dependents}")
            try:
                outcome = param.refresh_handle()
            except Exception as e:
                self._emit(refresh_failed(param.name, e))
                result.status = UpdateStatus.FAILED
                result.error = str(e)
                result.status_map = tracker.status_map()
                return self._finish(result, start)

            signal: CompletionSignal
            if inspect.isawaitable(outcome):
                signal = AwaitableCompletion(outcome, dependents)
            else:
                signal = tracker

            completed = await signal.wait(self.timeout_seconds)
            result.status_map = signal.status_map()

        if isinstance(signal, AwaitableCompletion) and signal.error is not None:
            self._emit(refresh_failed(param.name, signal.error))
            result.status = UpdateStatus.FAILED
            result.error = str(signal.error)
        elif not completed:
            self._emit(update_timeout(
                param.name,
                dependents,
                result.status_map,
                self._config.update_timeout_ms,
            ))
            result.status = UpdateStatus.TIMED_OUT

        return self._finish(result, start)

    async def run_sequence(
        self,
        params: Sequence[Parameter],
        order: Sequence[Parameter],
        trigger: Optional[Parameter] = None,
    ) -> SequenceResult:
        """
        Update ``params`` strictly in the given order.

        Each update is awaited fully before the next starts. With
        ``serialize_sequences`` enabled, overlapping calls queue behind the
        running sequence in FIFO order.
        """
        if self._lock is None:
            return await self._run(params, order, trigger)

        if self._lock.locked():
            logger.debug("Sequence in progress, queueing")
        async with self._lock:
            return await self._run(params, order, trigger)

    async def _run(
        self,
        params: Sequence[Parameter],
        order: Sequence[Parameter],
        trigger: Optional[Parameter],
    ) -> SequenceResult:
        sequence = SequenceResult(
            sequence_id=str(uuid.uuid4())[:8],
            started_at=datetime.now(timezone.utc),
            trigger_parameter=trigger.name if trigger else None,
        )
        params = list(params)
        start = time.monotonic()
        self._active_sequences += 1

        logger.info(
            f"Starting sequence {sequence.sequence_id}: {len(params)} parameters"
            + (f", triggered by {trigger.name}" if trigger else "")
        )

        try:
            for param in params:
                update = await self.update_one(param, order)
                sequence.record(update)
                self._notify_progress(update)
        finally:
            self._active_sequences -= 1

        sequence.completed_at = datetime.now(timezone.utc)
        sequence.total_time_ms = int((time.monotonic() - start) * 1000)

        logger.info(
            f"Sequence {sequence.sequence_id} complete: "
            f"{sequence.completed_count} completed, "
            f"{sequence.timed_out_count} timed out, "
            f"{sequence.skipped_count} skipped, "
            f"{sequence.failed_count} failed in {sequence.total_time_ms}ms"
        )
        return sequence

    def _finish(self, result: UpdateResult, start: float) -> UpdateResult:
        result.completed_at = datetime.now(timezone.utc)
        result.elapsed_ms = int((time.monotonic() - start) * 1000)
        return result

    def _emit(self, diagnostic: Diagnostic) -> None:
        if diagnostic.severity == DiagnosticSeverity.ERROR:
            logger.error(diagnostic.message)
        else:
            logger.warning(diagnostic.message)
        self._channel.diagnostic(diagnostic)

    def _notify_progress(self, result: UpdateResult) -> None:
        for callback in self._progress_callbacks:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Progress callback error: {e}")

    def on_progress(self, callback: Callable[[UpdateResult], None]) -> None:
        """Register a callback invoked after each parameter update."""
        self._progress_callbacks.append(callback)
