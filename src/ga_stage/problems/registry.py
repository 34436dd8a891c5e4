"""Problem registry - manages all available benchmark problems."""

from __future__ import annotations

from typing import Any

from ga_stage.exceptions import ConfigurationError
from ga_stage.models.problem import ParameterType, ProblemConfig
from ga_stage.problems.base import CompiledProblem, ProblemTemplate


class ProblemRegistry:
    """Registry of all available problem templates."""

    def __init__(self) -> None:
        self._templates: dict[str, ProblemTemplate] = {}

    def register(self, template: ProblemTemplate) -> None:
        self._templates[template.template_id] = template

    def get(self, template_id: str) -> ProblemTemplate:
        if template_id not in self._templates:
            available = ", ".join(sorted(self._templates.keys()))
            raise KeyError(
                f"Unknown problem template: {template_id}. Available: {available}"
            )
        return self._templates[template_id]

    def list_all(self) -> list[ProblemTemplate]:
        return list(self._templates.values())

    def list_by_category(self, category: str) -> list[ProblemTemplate]:
        return [t for t in self._templates.values() if t.category == category]

    def compile_config(self, config: ProblemConfig) -> CompiledProblem:
        """Build a problem from its config, filling in parameter defaults."""
        template = self.get(config.template_id)
        known = {pdef.name for pdef in template.parameters}
        unknown = set(config.parameters) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown parameters for {config.template_id}: {', '.join(sorted(unknown))}"
            )
        merged: dict[str, Any] = {}
        for pdef in template.parameters:
            value = config.parameters.get(pdef.name, pdef.default)
            if pdef.param_type == ParameterType.INT:
                value = int(value)
            elif pdef.param_type == ParameterType.FLOAT:
                value = float(value)
            elif pdef.param_type == ParameterType.BOOL and isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            if pdef.min_value is not None and value < pdef.min_value:
                raise ConfigurationError(f"{pdef.name} must be >= {pdef.min_value}", {"value": value})
            if pdef.max_value is not None and value > pdef.max_value:
                raise ConfigurationError(f"{pdef.name} must be <= {pdef.max_value}", {"value": value})
            merged[pdef.name] = value
        fitness, sample = template.build(merged)
        return CompiledProblem(
            template_id=config.template_id,
            name=template.name,
            fitness=fitness,
            sample=sample,
            parameters=merged,
        )


# Global registry instance
_global_registry: ProblemRegistry | None = None


def get_registry() -> ProblemRegistry:
    """Get the global problem registry, initializing if needed."""
    global _global_registry
    if _global_registry is None:
        _global_registry = _create_default_registry()
    return _global_registry


def _create_default_registry() -> ProblemRegistry:
    from ga_stage.problems.benchmarks import OneMax, Schaffer, Sphere, TravellingSalesman

    registry = ProblemRegistry()
    for template_cls in [OneMax, Sphere, TravellingSalesman, Schaffer]:
        registry.register(template_cls())
    return registry
