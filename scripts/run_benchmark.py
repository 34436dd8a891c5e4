#!/usr/bin/env python3
"""
Run a built-in benchmark problem and optionally log per-generation statistics.

Usage:
    python scripts/run_benchmark.py --problem one_max --param length=100
    python scripts/run_benchmark.py --problem tsp --param cities=30 --generations 500 --csv tsp.csv
    python scripts/run_benchmark.py --problem schaffer --algorithm nsga2 --threads 4 --xlsx pareto.xlsx
"""

from __future__ import annotations

import argparse
import logging
import sys

from ga_stage.exceptions import GAException
from ga_stage.ga.algorithm import GeneticAlgorithm
from ga_stage.ga.algorithms import NSGA2, SimpleGA
from ga_stage.io.loggers import AbstractLogger, CSVLogger, XLSXLogger
from ga_stage.io.statistics_logger import GenerationStatisticsListener, StatisticsLogger
from ga_stage.log import setup_logging
from ga_stage.models.ga_config import GAConfig
from ga_stage.models.problem import ProblemConfig
from ga_stage.problems.registry import get_registry

_LOG = logging.getLogger("ga_stage.scripts.run_benchmark")

_BASE_SCHEMA = ["Generation", "ElapsedMs", "Individuals", "Legals", "Illegals"]


def _parse_params(items: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected key=value, got '{item}'")
        params[key.strip()] = value.strip()
    return params


def _schema(num_objectives: int) -> list[str]:
    schema = list(_BASE_SCHEMA)
    for obj in range(num_objectives):
        suffix = "" if obj == 0 else f"[{obj}]"
        schema += [
            f"LegalHighestScore{suffix}",
            f"LegalLowestScore{suffix}",
            f"LegalScoreAvg{suffix}",
            f"LegalScoreDev{suffix}",
        ]
    return schema


def _list_problems() -> None:
    for template in get_registry().list_all():
        print(f"{template.template_id:10s} [{template.category}] {template.description}")
        for pdef in template.parameters:
            print(f"    {pdef.name}={pdef.default}  {pdef.display_name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a ga-stage benchmark problem")
    parser.add_argument("--problem", default="one_max", help="problem template id")
    parser.add_argument("--param", action="append", default=[], metavar="KEY=VALUE", help="problem parameter")
    parser.add_argument("--list", action="store_true", help="list problems and exit")
    parser.add_argument("--algorithm", choices=["simple", "nsga2"], default=None)
    parser.add_argument("--population", type=int, default=100)
    parser.add_argument("--generations", type=int, default=100)
    parser.add_argument("--crossover", type=float, default=0.8, help="crossover probability")
    parser.add_argument("--mutation", type=float, default=0.02, help="mutation probability")
    parser.add_argument("--elitism", type=int, default=1)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--threads", type=int, default=0, help="evaluation threads, 0 for sequential")
    parser.add_argument("--csv", default=None, help="write generation statistics to a CSV file")
    parser.add_argument("--xlsx", default=None, help="write generation statistics to an Excel file")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.list:
        _list_problems()
        return 0

    try:
        problem = get_registry().compile_config(
            ProblemConfig(template_id=args.problem, parameters=_parse_params(args.param))
        )
        config = GAConfig(
            generation_limit=args.generations,
            crossover_probability=args.crossover,
            mutation_probability=args.mutation,
            elitism=args.elitism,
            random_seed=args.seed,
            threads=args.threads,
        )
    except (KeyError, ValueError, argparse.ArgumentTypeError) as exc:
        _LOG.error(f"Invalid configuration: {exc}")
        return 2

    num_objectives = problem.fitness.num_objectives
    algorithm = args.algorithm or ("nsga2" if num_objectives > 1 else "simple")
    population = problem.population(args.population)
    ga: GeneticAlgorithm
    if algorithm == "nsga2":
        ga = NSGA2.from_config(problem.fitness, population, config)
    else:
        ga = SimpleGA(problem.fitness, population, config)

    sinks: list[AbstractLogger] = []
    if args.csv:
        sinks.append(CSVLogger(_schema(num_objectives), args.csv))
    if args.xlsx:
        sinks.append(XLSXLogger(_schema(num_objectives), args.xlsx))
    for sink in sinks:
        ga.add_generation_listener(GenerationStatisticsListener(StatisticsLogger(sink), save_every=50))

    _LOG.info(f"Running {algorithm} on {problem.name} with {problem.parameters}")
    try:
        ga.evolve()
    except GAException as exc:
        _LOG.error(f"Run aborted: {exc}")
        return 1
    finally:
        for sink in sinks:
            sink.close()

    stats = ga.statistics
    _LOG.info(
        f"Finished {stats.generations} generations in {stats.execution_time_ms:.1f} ms "
        f"({stats.fitness_evaluations} evaluations)"
    )
    if num_objectives > 1:
        front = ga.current_population.pareto(problem.fitness.bigger_is_better).first
        print(f"Pareto front: {len(front)} individuals")
        for ind in sorted(front, key=lambda i: i.scores[0])[:10]:
            print(f"  {ind.scores}")
    else:
        best = ga.best()
        if best is not None:
            print(f"Best score: {best.score}")
            print(f"Best genes: {best.chromosome.to_list()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
