"""
Dirac and Lorentz algebra used by the amplitude and matching layers.

This package lives inside `src/`, which is added to `sys.path` by `main.py`
and tests, so it is importable as a top-level module:

    from dirac import DiracExpr, Momentum, normal_order, trace
"""

from __future__ import annotations

from .lorentz import Metric, Momentum, Vector, factor_key, momentum_dot
from .algebra import (
    DIM,
    DiracExpr,
    Gamma,
    Gamma5,
    Slash,
    SpinorEnd,
    contract_indices,
    dirac_bar,
    move_gamma5_right,
    normal_order,
)
from .trace import trace

__all__ = [
    # lorentz
    "Momentum",
    "Metric",
    "Vector",
    "factor_key",
    "momentum_dot",
    # chains
    "DIM",
    "DiracExpr",
    "Gamma",
    "Gamma5",
    "Slash",
    "SpinorEnd",
    "contract_indices",
    "dirac_bar",
    "move_gamma5_right",
    "normal_order",
    "trace",
]
