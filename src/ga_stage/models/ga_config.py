"""Genetic Algorithm configuration."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ElitismStrategy(str, Enum):
    """Where the preserved elite individuals land in the next generation."""

    WORST = "worst"
    RANDOM = "random"


class ResizeStrategy(str, Enum):
    """How a sequence prepares the output buffer of each stage it runs."""

    NONE = "none"
    AUTO = "auto"
    EMPTY = "empty"


class ReplacementStrategy(str, Enum):
    """Which individuals a steady-state step overwrites with offspring."""

    WORST = "worst"
    RANDOM = "random"


class SortingMode(str, Enum):
    """How individuals are ordered from best to worst."""

    PARTIAL = "partial"
    HIERARCHICAL = "hierarchical"
    DOMINANCE = "dominance"
    CROWDING = "crowding"


class SelectionMethod(str, Enum):
    TOURNAMENT = "tournament"
    ROULETTE = "roulette"


class CrossoverMethod(str, Enum):
    SINGLE_POINT = "single_point"
    TWO_POINTS = "two_points"


class GAConfig(BaseModel):
    """Configuration for the Genetic Algorithm."""

    generation_limit: int = Field(default=100, ge=1)
    crossover_probability: float = Field(default=0.8, ge=0.0, le=1.0)
    mutation_probability: float = Field(default=0.02, ge=0.0, le=1.0)
    elitism: int = Field(default=1, ge=0)
    elitism_strategy: ElitismStrategy = ElitismStrategy.RANDOM
    selection_method: SelectionMethod = SelectionMethod.TOURNAMENT
    tournament_attempts: int = Field(default=2, ge=1)
    crossover_method: CrossoverMethod = CrossoverMethod.SINGLE_POINT
    max_illegal_rate: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Share of illegal picks tolerated before selecting legals only"
    )
    random_seed: int | None = None
    threads: int = Field(default=0, ge=0, description="Evaluation worker threads; 0 evaluates sequentially")
    full_evaluation_forced: bool = False
