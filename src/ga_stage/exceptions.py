"""Exception hierarchy for the GA library."""

from __future__ import annotations


class GAException(Exception):
    """Base class for all errors raised by the library."""

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(GAException, ValueError):
    """Raised on invalid arguments: bad rates, out-of-range values, shape mismatches."""


class AlgorithmStateError(GAException, RuntimeError):
    """Raised when a component is used before its required dependencies are set."""


class StageException(GAException):
    """Wraps any fault raised while a stage processes a population."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message, {"stage": stage} if stage else None)
        self.stage = stage


class EvaluationError(GAException):
    """A fitness evaluation failed, possibly on a worker thread."""

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message, {"index": index} if index is not None else None)
        self.index = index


class LoggerError(GAException):
    """Raised by statistics sinks on unknown fields or use after close."""
