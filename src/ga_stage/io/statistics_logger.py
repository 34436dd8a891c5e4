"""Bridges population statistics to a record logger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ga_stage.ga.population import PopulationStatistics
from ga_stage.io.loggers import AbstractLogger
from ga_stage.models.events import GenerationEvent

if TYPE_CHECKING:
    from ga_stage.ga.algorithm import GeneticAlgorithm


class StatisticsLogger:
    """Writes the schema fields found in a statistics snapshot.

    Fields of the snapshot outside the logger schema are ignored; schema
    fields the snapshot lacks can be supplied through ``extras``.
    """

    def __init__(self, logger: AbstractLogger) -> None:
        self.logger = logger

    def record(self, stats: PopulationStatistics, extras: dict[str, Any] | None = None) -> None:
        values = stats.as_record()
        if extras:
            values.update(extras)
        for key in self.logger.schema:
            if key in values:
                self.logger.put(key, values[key])
        self.logger.log()

    def close(self) -> None:
        self.logger.close()


class GenerationStatisticsListener:
    """Generation listener that records the current population every generation."""

    def __init__(self, stats_logger: StatisticsLogger, save_every: int = 0) -> None:
        self.stats_logger = stats_logger
        self.save_every = save_every

    def on_generation(self, ga: GeneticAlgorithm, event: GenerationEvent) -> None:
        self.stats_logger.record(
            ga.current_statistics(),
            {"Generation": event.generation, "ElapsedMs": event.elapsed_ms},
        )
        if self.save_every > 0 and event.generation % self.save_every == 0:
            self.stats_logger.logger.save()
