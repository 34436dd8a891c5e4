"""Benchmark problem configuration models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ParameterType(str, Enum):
    """Types of problem parameters."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    SELECT = "select"


class ParameterDef(BaseModel):
    """Definition of a problem parameter."""

    name: str
    display_name: str
    param_type: ParameterType
    default: Any
    min_value: float | None = None
    max_value: float | None = None
    options: list[str] | None = None
    description: str = ""


class ProblemConfig(BaseModel):
    """A problem template id plus user-specified parameters."""

    template_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
