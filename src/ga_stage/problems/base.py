"""Base classes for the benchmark problem template system."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ga_stage.ga.fitness import Fitness
from ga_stage.ga.individual import Individual
from ga_stage.ga.population import Population
from ga_stage.models.problem import ParameterDef


class ProblemTemplate(ABC):
    """Abstract base class for problem templates.

    Each template defines:
    - A unique ID and display name
    - Configurable parameters with defaults
    - A build() method that produces a fitness and a sample individual
    """

    @property
    @abstractmethod
    def template_id(self) -> str:
        """Unique identifier for this problem."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name."""

    @property
    @abstractmethod
    def category(self) -> str:
        """Category: single or multi (objective)."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What the problem optimises."""

    @property
    @abstractmethod
    def parameters(self) -> list[ParameterDef]:
        """Parameter definitions."""

    @abstractmethod
    def build(self, params: dict[str, Any]) -> tuple[Fitness, Individual]:
        """Create the fitness and a sample individual for the given parameters."""


@dataclass
class CompiledProblem:
    """A problem template built with specific parameters."""

    template_id: str
    name: str
    fitness: Fitness
    sample: Individual
    parameters: dict[str, Any]

    def population(self, size: int) -> Population:
        return Population(self.sample, size)
