"""
Symbols and limits shared by the one-loop reduction.

Dimensional regularisation uses d = 4 - 2*eps in the MS-bar scheme; the UV
pole 1/eps is kept as the symbol `Delta_UV` so that it can be set to zero
(MS-bar subtraction) or inspected.
"""

from __future__ import annotations

import sympy as sp

EPS = sp.Symbol("eps")

# Renormalisation scale and the UV pole 1/eps.
MU_R = sp.Symbol("mu_R", positive=True)
DELTA_UV = sp.Symbol("Delta_UV", real=True)

# Placeholder for log(Delta/mu_R^2) until the Delta of a diagram is registered.
LOG_DELTA = sp.Symbol("L_Delta", real=True)

# Largest loop the reducer accepts (number of propagators) and the largest
# number of loop-momentum slashes in a single numerator chain.
MAX_PROPAGATORS = 4
MAX_NUMERATOR_RANK = 6

# Name of the loop momentum before and after the Feynman-parameter shift.
LOOP_MOMENTUM = "k"
SHIFTED_LOOP_MOMENTUM = "l"


def feynman_parameters(n: int):
    """Feynman parameters x0..x{n-1}; x0 is eliminated through the delta function."""
    return tuple(sp.Symbol(f"x{i}", positive=True) for i in range(n))


__all__ = [
    "EPS",
    "MU_R",
    "DELTA_UV",
    "LOG_DELTA",
    "MAX_PROPAGATORS",
    "MAX_NUMERATOR_RANK",
    "LOOP_MOMENTUM",
    "SHIFTED_LOOP_MOMENTUM",
    "feynman_parameters",
]
