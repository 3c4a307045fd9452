"""
Exception types shared by the model, amplitude and matching layers.

Argument validation elsewhere raises plain `ValueError`; the classes below
mark the failure kinds that callers are expected to tell apart.
"""

from __future__ import annotations


class ModelError(ValueError):
    """Invalid model definition, or mutation of a finalized model."""


class ProcessError(ValueError):
    """External legs inconsistent with the model (raised before any amplitude work)."""


class OperatorNotFoundError(LookupError):
    """No entry of a Wilson set matches the requested operator template."""

    def __init__(self, operator, available=()):
        self.operator = operator
        self.available = tuple(available)
        names = ", ".join(str(op) for op in self.available) or "none"
        super().__init__(f"Operator {operator} not found in Wilson set (available: {names})")


class LoopIntegralReductionError(ArithmeticError):
    """A loop integral could not be reduced or evaluated in closed form."""


__all__ = [
    "ModelError",
    "ProcessError",
    "OperatorNotFoundError",
    "LoopIntegralReductionError",
]
