"""
core/schema.py - Host record validation

Pydantic models for Parameter-shaped records supplied by the host page,
either as live payloads or as JSON cascade definitions on disk.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .parameter import InputControl, Parameter, ParameterRef, RefreshHandle

logger = logging.getLogger(__name__)


class ParameterRefModel(BaseModel):
    """A ``{name}`` reference record."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="paramName", min_length=1)


class ParameterModel(BaseModel):
    """A Parameter-shaped host record."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="paramName", min_length=1)
    referenced_parameters: List[ParameterRefModel] = Field(
        default_factory=list,
        alias="referencedParameters",
        description="Parameters this parameter's value is computed from",
    )

    @field_validator("referenced_parameters", mode="before")
    @classmethod
    def _coerce_refs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    def to_parameter(
        self,
        refresh_handle: Optional[RefreshHandle] = None,
        input_control: Optional[InputControl] = None,
    ) -> Parameter:
        return Parameter(
            name=self.name,
            referenced_parameters=[ParameterRef(ref.name) for ref in self.referenced_parameters],
            refresh_handle=refresh_handle,
            input_control=input_control,
        )


class CascadeDefinition(BaseModel):
    """A collection of host parameter records."""

    parameters: List[ParameterModel] = Field(default_factory=list)

    @classmethod
    def from_records(cls, data: Union[List[Any], Mapping[str, Any]]) -> "CascadeDefinition":
        """Validate either a bare record list or ``{"parameters": [...]}``."""
        if isinstance(data, list):
            data = {"parameters": data}
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "CascadeDefinition":
        """Load and validate a JSON cascade definition."""
        path = Path(filepath)
        with open(path) as f:
            data = json.load(f)

        definition = cls.from_records(data)
        logger.debug(f"Loaded {len(definition.parameters)} parameter records from {path}")
        return definition

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def to_parameters(
        self,
        refresh_handles: Optional[Dict[str, RefreshHandle]] = None,
        input_controls: Optional[Dict[str, InputControl]] = None,
    ) -> List[Parameter]:
        """Build Parameters, attaching host capabilities by name."""
        refresh_handles = refresh_handles or {}
        input_controls = input_controls or {}
        return [
            record.to_parameter(
                refresh_handle=refresh_handles.get(record.name),
                input_control=input_controls.get(record.name),
            )
            for record in self.parameters
        ]
