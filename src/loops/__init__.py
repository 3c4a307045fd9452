"""
One-loop integral reduction and the abbreviation context.

    from loops import AbbreviationTable, reduce_one_loop, expand_abbreviations
"""

from __future__ import annotations

from .defaults import (
    DELTA_UV,
    EPS,
    LOG_DELTA,
    MAX_NUMERATOR_RANK,
    MAX_PROPAGATORS,
    MU_R,
    feynman_parameters,
)
from .abbreviations import Abbreviation, AbbreviationTable, abbreviations_in, expand_abbreviations
from .integrals import (
    delta_symmetries,
    evaluate_integrals,
    integrand_vanishes,
    integrate_polynomial,
    simplex_limits,
    symmetrize,
)
from .reduction import Denominator, ReducedLoop, master_integral, reduce_one_loop, symmetric_integration

__all__ = [
    # defaults
    "DELTA_UV",
    "EPS",
    "LOG_DELTA",
    "MAX_NUMERATOR_RANK",
    "MAX_PROPAGATORS",
    "MU_R",
    "feynman_parameters",
    # abbreviations
    "Abbreviation",
    "AbbreviationTable",
    "abbreviations_in",
    "expand_abbreviations",
    # Feynman-parameter integrals
    "delta_symmetries",
    "evaluate_integrals",
    "integrand_vanishes",
    "integrate_polynomial",
    "simplex_limits",
    "symmetrize",
    # reduction
    "Denominator",
    "ReducedLoop",
    "master_integral",
    "reduce_one_loop",
    "symmetric_integration",
]
