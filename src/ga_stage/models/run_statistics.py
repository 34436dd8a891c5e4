"""Per-run execution statistics."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RunStatistics(BaseModel):
    """Timing and counters collected by a GeneticAlgorithm run.

    Timestamps are wall-clock seconds (``time.time()``); durations are
    milliseconds.
    """

    generation_limit: int = 0
    generations: int = 0
    fitness_evaluations: int = 0
    start_time: float | None = None
    init_time: float | None = None
    stop_time: float | None = None
    execution_time_ms: float = 0.0
    fitness_eval_time_ms: float = 0.0
    generation_end_times: list[float] = Field(default_factory=list)
    exception_terminated: bool = False
    random_seed: int | None = None

    def elapsed_ms(self, now: float) -> float:
        if self.start_time is None:
            return 0.0
        return max(0.0, (now - self.start_time) * 1000.0)

    @property
    def mean_generation_time_ms(self) -> float:
        if len(self.generation_end_times) < 2:
            return 0.0
        span = self.generation_end_times[-1] - self.generation_end_times[0]
        return span * 1000.0 / (len(self.generation_end_times) - 1)
