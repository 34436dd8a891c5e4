"""Pipeline stage that scores the population mid-generation."""

from __future__ import annotations

from ga_stage.ga.population import Population
from ga_stage.stage.base import AbstractStage


class EvaluationStage(AbstractStage):
    """Evaluates its input with the algorithm's fitness and hands it on.

    Only individuals without valid scores are evaluated unless ``force`` is
    set. The input is handed over to the output by swapping storage.
    """

    def __init__(self, force: bool = False) -> None:
        super().__init__()
        self.force = force

    def process(self, in_pop: Population, out_pop: Population) -> None:
        self._require_ga().evaluate_population(in_pop, forced=self.force)
        out_pop.swap(in_pop)

    def __repr__(self) -> str:
        return f"{self.name}(force={self.force})"
