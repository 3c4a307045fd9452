"""
Wilson-coefficient matching.

This package lives inside `src/`, which is added to `sys.path` by `main.py`
and tests, so it is importable as a top-level module:

    from wilson import compute_wilson_coefficients, magnetic_operator, match_operator
"""

from __future__ import annotations

from .operators import (
    DiracCoupling,
    Operator,
    fermion_vector_basis,
    operator_basis,
    two_fermion_basis,
    two_vector_basis,
)
from .matching import (
    WilsonCoefficient,
    WilsonSet,
    compute_wilson_coefficients,
    get_wilson_coefficient,
    get_wilson_coefficients,
    magnetic_operator,
    match_operator,
    merge_integrals,
    reconstruct,
    round_trip_holds,
    vanishes,
)

__all__ = [
    # operators
    "DiracCoupling",
    "Operator",
    "operator_basis",
    "two_fermion_basis",
    "fermion_vector_basis",
    "two_vector_basis",
    # matching
    "WilsonCoefficient",
    "WilsonSet",
    "compute_wilson_coefficients",
    "get_wilson_coefficients",
    "get_wilson_coefficient",
    "match_operator",
    "magnetic_operator",
    "merge_integrals",
    "reconstruct",
    "round_trip_holds",
    "vanishes",
]
