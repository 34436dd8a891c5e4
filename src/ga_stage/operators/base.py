"""Operator: a leaf stage that keeps execution statistics."""

from __future__ import annotations

from dataclasses import dataclass

from ga_stage.stage.base import AbstractStage


@dataclass
class OperatorStatistics:
    """Cumulative counters of one operator."""

    executions: int = 0
    execution_time_ms: float = 0.0
    applications: int = 0

    def add_execution(self, elapsed_ms: float) -> None:
        self.executions += 1
        self.execution_time_ms += elapsed_ms


class Operator(AbstractStage):
    """Selection, crossover, mutation and crowding stages derive from this.

    ``statistics.applications`` counts selections, crossovers or mutations
    depending on the operator.
    """

    def __init__(self) -> None:
        super().__init__()
        self.statistics = OperatorStatistics()

    def reset_statistics(self) -> None:
        self.statistics = OperatorStatistics()
