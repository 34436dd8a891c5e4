"""Notification payloads sent to algorithm listeners."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class AlgorithmPhase(str, Enum):
    START = "start"
    INIT = "init"
    STOP = "stop"


class AlgorithmEvent(BaseModel):
    """Lifecycle notification: start, init or stop of a run."""

    phase: AlgorithmPhase
    elapsed_ms: float = Field(ge=0.0)
    timestamp: float


class GenerationEvent(BaseModel):
    """Sent once at the end of every generation."""

    generation: int = Field(ge=0)
    elapsed_ms: float = Field(ge=0.0)
    timestamp: float
