"""
core/parameter.py - Cascade parameter model

Defines the Parameter record and the opaque host capabilities the
sequencing engine relies on (refresh handle, input control).

The host owns Parameter objects. The engine only reads ``name`` and
``referenced_parameters``, invokes ``refresh_handle`` and observes
``input_control``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable


# Zero-argument refresh request. Returning an awaitable gives the engine an
# explicit completion signal; returning None leaves completion to be
# inferred from the event channel.
RefreshHandle = Callable[[], Union[None, Awaitable[Any]]]

ChangeListener = Callable[[], Any]


@runtime_checkable
class InputControl(Protocol):
    """Interactive element the user changes to trigger a cascade."""

    @property
    def is_selection(self) -> bool:
        """True when the control represents a discrete choice."""
        ...

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Attach a callback fired on user-driven change."""
        ...


@dataclass(frozen=True)
class ParameterRef:
    """Reference to another parameter by name."""
    name: str


@dataclass(eq=False)
class Parameter:
    """A named unit of user-configurable state."""
    name: str
    referenced_parameters: List[ParameterRef] = field(default_factory=list)
    refresh_handle: Optional[RefreshHandle] = None
    input_control: Optional[InputControl] = None

    # True for nodes synthesized from a reference to an unknown parameter
    synthetic: bool = False

    def __post_init__(self):
        self.referenced_parameters = [
            ref if isinstance(ref, ParameterRef) else ParameterRef(ref)
            for ref in self.referenced_parameters
        ]

    @classmethod
    def synthesize(cls, name: str) -> "Parameter":
        """Create a zero-dependency placeholder for an unknown reference."""
        return cls(name=name, synthetic=True)

    @property
    def referenced_names(self) -> List[str]:
        """Referenced parameter names, ordered, without duplicates."""
        seen: Dict[str, None] = {}
        for ref in self.referenced_parameters:
            seen.setdefault(ref.name, None)
        return list(seen)

    @property
    def is_refreshable(self) -> bool:
        return self.refresh_handle is not None

    @property
    def has_selection_control(self) -> bool:
        return self.input_control is not None and bool(self.input_control.is_selection)

    def references(self, name: str) -> bool:
        """Check whether this parameter depends directly on ``name``."""
        return any(ref.name == name for ref in self.referenced_parameters)

    def __repr__(self) -> str:
        refs = ", ".join(self.referenced_names)
        return f"Parameter({self.name!r}, refs=[{refs}])"
