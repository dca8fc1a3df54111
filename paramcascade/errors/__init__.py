"""
errors/ - Diagnostic taxonomy

Sorting and sequencing failures are reported as Diagnostics on the event
channel. Exceptions are reserved for strict, configuration-time checks.
"""

from .diagnostics import (
    CascadeError,
    Diagnostic,
    DiagnosticKind,
    DiagnosticSeverity,
    UnresolvedDependencyError,
    missing_capability,
    refresh_failed,
    unresolved_dependency,
    update_timeout,
)

__all__ = [
    "CascadeError",
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticSeverity",
    "UnresolvedDependencyError",
    "missing_capability",
    "refresh_failed",
    "unresolved_dependency",
    "update_timeout",
]
