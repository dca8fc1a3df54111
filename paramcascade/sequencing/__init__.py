"""
paramcascade Sequencing Engine

Provides:
- CompletionTracker: completion inferred from channel log lines
- AwaitableCompletion: completion signalled by the refresh handle
- SequencedUpdater: ordered, timeout-bounded parameter updates
- CascadeDriver: initial pass and change-observer wiring
"""

from .completion import (
    DEFAULT_RETRIEVED_PATTERN,
    DEFAULT_STARTED_PATTERN,
    AwaitableCompletion,
    CompletionPatterns,
    CompletionSignal,
    CompletionTracker,
    DependentStatus,
)
from .updater import (
    SequencedUpdater,
    SequenceResult,
    UpdateResult,
    UpdateStatus,
)
from .driver import (
    CascadeDriver,
    initialize,
)

__all__ = [
    # Completion
    "DEFAULT_RETRIEVED_PATTERN",
    "DEFAULT_STARTED_PATTERN",
    "AwaitableCompletion",
    "CompletionPatterns",
    "CompletionSignal",
    "CompletionTracker",
    "DependentStatus",
    # Updater
    "SequencedUpdater",
    "SequenceResult",
    "UpdateResult",
    "UpdateStatus",
    # Driver
    "CascadeDriver",
    "initialize",
]
