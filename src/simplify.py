"""
Opt-in simplification of Wilson coefficients and amplitudes.

Nothing in the matching pipeline calls these; they are applied by scripts
before display or code generation.

    canonicalize(expr) = deep_factor(integrate_polynomials(deep_expand(expr)))

Expansion and factoring recurse into function arguments (logs, integrands).
`numerically_equal` checks that a rewrite did not change the value by
evaluating both sides at random points with mpmath.
"""

from __future__ import annotations

import logging

import mpmath
import numpy as np
import sympy as sp

logger = logging.getLogger(__name__)


def _map(expr, func):
    if hasattr(expr, "map_coefficients"):
        return expr.map_coefficients(func)
    return func(sp.sympify(expr))


def deep_expand(expr):
    return _map(expr, lambda e: sp.expand(e, deep=True))


def deep_factor(expr):
    return _map(expr, lambda e: sp.factor(e, deep=True))


def _integrate_polynomials(expr):
    values = {}
    for integral in expr.atoms(sp.Integral):
        variables = [limit[0] for limit in integral.limits]
        if integral.function.is_polynomial(*variables):
            values[integral] = integral.doit()
    return expr.xreplace(values)


def integrate_polynomials(expr):
    """Carry out the integrals whose integrand is polynomial in the integration variables."""
    return _map(expr, _integrate_polynomials)


def canonicalize(expr):
    """Expand everything, integrate polynomial integrands, then factor everything."""
    return deep_factor(integrate_polynomials(deep_expand(expr)))


def numerically_equal(a, b, *, samples: int = 5, rng=None, rtol: float = 1e-12, dps: int = 30) -> bool:
    """
    Compare two expressions at `samples` random points.

    Every free symbol is drawn uniformly from [0.5, 2) (positive, away from
    poles at zero).  Expressions must not contain unevaluated integrals.
    """
    a, b = sp.sympify(a), sp.sympify(b)
    symbols = sorted(a.free_symbols | b.free_symbols, key=lambda s: s.name)
    if any(e.has(sp.Integral) for e in (a, b)):
        raise ValueError("numerically_equal needs expressions without unevaluated integrals")
    rng = np.random.default_rng() if rng is None else rng

    f_a = sp.lambdify(symbols, a, modules="mpmath")
    f_b = sp.lambdify(symbols, b, modules="mpmath")
    with mpmath.workdps(dps):
        for _ in range(samples):
            point = [mpmath.mpf(float(v)) for v in rng.uniform(0.5, 2.0, size=len(symbols))]
            va, vb = f_a(*point), f_b(*point)
            scale = max(mpmath.mpf(1), abs(va), abs(vb))
            if abs(va - vb) > rtol * scale:
                logger.debug("Expressions differ at %s: %s vs %s", point, va, vb)
                return False
    return True


__all__ = ["deep_expand", "deep_factor", "integrate_polynomials", "canonicalize", "numerically_equal"]
