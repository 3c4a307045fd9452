"""
Feynman-parameter integrals over the simplex.

Integrals are written over the independent parameters x1..x{n-1} with
x0 = 1 - x1 - ... - x{n-1}; limits are listed innermost first, as sympy's
`Integral` expects.
"""

from __future__ import annotations

import itertools
import logging

import sympy as sp

from errors import LoopIntegralReductionError

logger = logging.getLogger(__name__)


def simplex_limits(variables):
    """Limits ((x_{n-1}, 0, 1 - x1 - ...), ..., (x1, 0, 1)), innermost first."""
    limits = []
    for k, var in enumerate(variables):
        limits.append((var, 0, 1 - sum(variables[:k])))
    return tuple(reversed(limits))


def integrate_polynomial(poly, variables):
    """Exact simplex integral of an expression polynomial in `variables`."""
    result = sp.expand(poly)
    for var, lo, hi in simplex_limits(variables):
        result = sp.expand(sp.integrate(result, (var, lo, hi)))
    return result


def delta_symmetries(delta, variables):
    """Permutations of (x0, x1, ...) that leave `delta` unchanged, as substitution maps."""
    variables = tuple(variables)
    full = (1 - sum(variables),) + variables
    delta = sp.expand(delta)
    maps = []
    for perm in itertools.permutations(range(len(full))):
        mapping = {variables[i - 1]: full[perm[i]] for i in range(1, len(full))}
        if sp.expand(delta.xreplace(mapping)) == delta:
            maps.append(mapping)
    return maps


def symmetrize(integrand, variables, delta):
    """Average `integrand` over the Feynman-parameter permutations preserving `delta`."""
    if not variables:
        return integrand
    maps = delta_symmetries(delta, variables)
    total = sum((integrand.xreplace(m) for m in maps), sp.Integer(0))
    return sp.cancel(total / len(maps))


def integrand_vanishes(integrand) -> bool:
    return sp.cancel(sp.together(integrand)) == 0


def _closed_form(integral: sp.Integral):
    result = integral.function
    for var, lo, hi in integral.limits:
        result = sp.cancel(result)
        if result.is_rational_function(var):
            result = sp.apart(result, var)
        result = sp.integrate(result, (var, lo, hi))
        if result.has(sp.Integral):
            raise LoopIntegralReductionError(f"No closed form for the {var} integration of {integral}")
        result = sp.simplify(result)
    if result.has(sp.oo, -sp.oo, sp.zoo, sp.nan):
        raise LoopIntegralReductionError(f"Divergent Feynman-parameter integral {integral}")
    return result


def evaluate_integrals(expr):
    """
    Replace every Feynman-parameter `Integral` of `expr` by its closed form.

    Raises LoopIntegralReductionError when an integral has no closed form or
    diverges (IR-divergent endpoint behaviour).
    """
    if hasattr(expr, "map_coefficients"):
        return expr.map_coefficients(evaluate_integrals)
    expr = sp.sympify(expr)
    integrals = sorted(expr.atoms(sp.Integral), key=sp.default_sort_key)
    if not integrals:
        return expr
    values = {}
    for integral in integrals:
        logger.debug("Evaluating %s", integral)
        values[integral] = _closed_form(integral)
    return sp.simplify(expr.xreplace(values))


__all__ = [
    "simplex_limits",
    "integrate_polynomial",
    "delta_symmetries",
    "symmetrize",
    "integrand_vanishes",
    "evaluate_integrals",
]
