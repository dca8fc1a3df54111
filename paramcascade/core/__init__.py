"""
paramcascade core

Provides:
- Parameter: host-owned parameter record
- ParameterRef: reference by name
- InputControl / RefreshHandle: opaque host capabilities
- CascadeDefinition: validated host records
"""

from .parameter import (
    ChangeListener,
    InputControl,
    Parameter,
    ParameterRef,
    RefreshHandle,
)
from .schema import (
    CascadeDefinition,
    ParameterModel,
    ParameterRefModel,
)

__all__ = [
    # Parameter
    "ChangeListener",
    "InputControl",
    "Parameter",
    "ParameterRef",
    "RefreshHandle",
    # Schema
    "CascadeDefinition",
    "ParameterModel",
    "ParameterRefModel",
]
