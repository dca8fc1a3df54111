"""
errors/diagnostics.py - Diagnostic taxonomy

Failures in sorting and sequencing are observability events, not control
flow. Each one is described by a Diagnostic and published on the event
channel; none of them aborts a sequence.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class DiagnosticSeverity(Enum):
    """Diagnostic severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(Enum):
    """Kinds of diagnostics raised by the engine."""
    UNRESOLVED_DEPENDENCY = "unresolved_dependency"  # Cycle or dangling reference
    UPDATE_TIMEOUT = "update_timeout"                # Dependents never observed satisfied
    MISSING_CAPABILITY = "missing_capability"        # No refresh handle, treated as success
    REFRESH_FAILED = "refresh_failed"                # Refresh handle raised


DEFAULT_SEVERITY: Dict[DiagnosticKind, DiagnosticSeverity] = {
    DiagnosticKind.UNRESOLVED_DEPENDENCY: DiagnosticSeverity.WARNING,
    DiagnosticKind.UPDATE_TIMEOUT: DiagnosticSeverity.WARNING,
    DiagnosticKind.MISSING_CAPABILITY: DiagnosticSeverity.INFO,
    DiagnosticKind.REFRESH_FAILED: DiagnosticSeverity.ERROR,
}


@dataclass
class Diagnostic:
    """Structured description of a non-fatal failure."""

    kind: DiagnosticKind
    message: str
    severity: Optional[DiagnosticSeverity] = None
    parameter: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.severity is None:
            self.severity = DEFAULT_SEVERITY[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "parameter": self.parameter,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


def unresolved_dependency(unresolved: List[str], resolved_count: int, node_count: int) -> Diagnostic:
    """Create a diagnostic for an incomplete topological sort."""
    return Diagnostic(
        kind=DiagnosticKind.UNRESOLVED_DEPENDENCY,
        message=(
            f"There may be a cycle or unresolved dependencies: "
            f"resolved {resolved_count} of {node_count} parameters, "
            f"unresolved {unresolved}"
        ),
        details={
            "unresolved": list(unresolved),
            "resolved_count": resolved_count,
            "node_count": node_count,
        },
    )


def update_timeout(
    parameter: str,
    dependents: List[str],
    status_map: Dict[str, str],
    timeout_ms: int,
) -> Diagnostic:
    """Create a diagnostic for dependents never observed as satisfied."""
    pending = [name for name, status in status_map.items() if status != "satisfied"]
    return Diagnostic(
        kind=DiagnosticKind.UPDATE_TIMEOUT,
        message=(
            f"Update timeout exceeded for parameter: {parameter} "
            f"after {timeout_ms}ms; dependent parameters: {dependents}; "
            f"status map: {status_map}"
        ),
        parameter=parameter,
        details={
            "dependents": list(dependents),
            "status_map": dict(status_map),
            "unsatisfied": pending,
            "timeout_ms": timeout_ms,
        },
    )


def missing_capability(parameter: str) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.MISSING_CAPABILITY,
        message=f"Parameter {parameter} has no refresh handle, nothing to wait for",
        parameter=parameter,
    )


def refresh_failed(parameter: str, error: BaseException) -> Diagnostic:
    return Diagnostic(
        kind=DiagnosticKind.REFRESH_FAILED,
        message=f"Refresh of parameter {parameter} failed: {error}",
        parameter=parameter,
        details={"error": str(error), "error_type": type(error).__name__},
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================

class CascadeError(Exception):
    """Base exception for paramcascade errors."""
    pass


class UnresolvedDependencyError(CascadeError):
    """Raised by strict sorting when some parameters cannot be ordered."""

    def __init__(self, unresolved: List[str]):
        self.unresolved = list(unresolved)
        super().__init__(f"Unresolved dependencies: {', '.join(self.unresolved)}")
