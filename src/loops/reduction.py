"""
One-loop reduction by Feynman parametrisation.

For a numerator N(k) over propagators D_i = (k + r_i)^2 - m_i^2:

    1/(D_0 ... D_{n-1}) = Gamma(n) int dx delta(1 - sum x) (l^2 - Delta)^-n,
    k = l - s,  s = sum x_i r_i,  Delta = s^2 - sum x_i (r_i^2 - m_i^2).

Odd powers of l vanish; even ones are replaced by the symmetric tensor
l^{a1}...l^{a2j} -> (l^2)^j sym(g...g) / (d (d+2) ... (d+2j-2)), and the master
integrals are taken in MS-bar,

    int d^dl/(2 pi)^d (l^2)^a/(l^2 - Delta)^n
        = i (-1)^(n+a)/(16 pi^2) e^{gamma eps} Gamma(a+2-eps) Gamma(n-a-2+eps)
          / (Gamma(2-eps) Gamma(n)) (Delta/mu_R^2)^-eps Delta^(a+2-n),

expanded to O(eps^0) with 1/eps -> Delta_UV and log(Delta/mu_R^2) -> L_Delta.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import sympy as sp

from dirac import (
    DIM,
    DiracExpr,
    Gamma,
    Momentum,
    Slash,
    Vector,
    contract_indices,
    momentum_dot,
    normal_order,
    trace,
)
from errors import LoopIntegralReductionError

from .defaults import (
    DELTA_UV,
    LOG_DELTA,
    LOOP_MOMENTUM,
    MAX_NUMERATOR_RANK,
    MAX_PROPAGATORS,
    SHIFTED_LOOP_MOMENTUM,
    feynman_parameters,
)
from .integrals import integrate_polynomial, symmetrize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Denominator:
    """(k + shift)^2 - mass^2 with k the loop momentum."""

    shift: Momentum
    mass: sp.Expr


@dataclass(frozen=True)
class ReducedLoop:
    """
    Result of reducing one loop integrand.

    `closed` holds the parts already integrated over the Feynman parameters;
    `remainder` holds symmetrised integrands (in `variables`, with the
    placeholder L_Delta = log(Delta/mu_R^2)) still to be integrated.
    """

    closed: DiracExpr
    remainder: DiracExpr
    delta: sp.Expr
    variables: tuple


def _pairings(positions):
    if not positions:
        yield ()
        return
    first, rest = positions[0], positions[1:]
    for j, partner in enumerate(rest):
        for tail in _pairings(rest[:j] + rest[j + 1:]):
            yield ((first, partner),) + tail


def symmetric_integration(expr: DiracExpr, loop: str = SHIFTED_LOOP_MOMENTUM):
    """
    Replace products of loop-momentum slashes by metric pairings.

    Returns {a: DiracExpr} where `a` is the power of l^2 that multiplies the
    expression under the integral.
    """
    grouped = {}
    for (chain, tensors), coeff in expr.items():
        if any(isinstance(t, Vector) and t.momentum == loop for t in tensors):
            raise LoopIntegralReductionError("Loop momentum outside Dirac chains is not supported")
        positions = tuple(i for i, s in enumerate(chain) if s == Slash(loop))
        rank = len(positions)
        if rank % 2:
            continue
        if rank > MAX_NUMERATOR_RANK:
            raise LoopIntegralReductionError(f"Numerator rank {rank} exceeds {MAX_NUMERATOR_RANK}")
        a = rank // 2
        norm = sp.Integer(1)
        for j in range(a):
            norm *= DIM + 2 * j
        pieces = grouped.setdefault(a, [])
        for pairing in _pairings(positions):
            new_chain = list(chain)
            for n, (i, j) in enumerate(pairing):
                new_chain[i] = Gamma(f"_l{n}")
                new_chain[j] = Gamma(f"_l{n}")
            pieces.append(((tuple(new_chain), tensors), coeff / norm))
    return {a: DiracExpr(pieces) for a, pieces in sorted(grouped.items())}


def master_integral(coeff, n: int, a: int, delta):
    """
    Coefficient times Gamma(n) times the MS-bar master integral, at O(eps^0).

    `coeff` may depend on the dimension d; its O(eps) part multiplies the pole.
    """
    c0 = coeff.subs(DIM, 4)
    b = n - a - 2
    prefactor = sp.I * (-1) ** (n + a) / (16 * sp.pi**2) * sp.factorial(a + 1)
    if b >= 1:
        return prefactor * c0 * sp.factorial(b - 1) * delta ** (a + 2 - n)
    j = -b
    c1 = -2 * sp.diff(coeff, DIM).subs(DIM, 4)
    pole = (-1) ** j / sp.factorial(j)
    finite = sp.harmonic(j) - sp.harmonic(a + 1) + 1 - LOG_DELTA
    return prefactor * pole * (c0 * DELTA_UV + c0 * finite + c1) * delta**j


def _split(integrand, variables):
    """Split into a part polynomial in the Feynman parameters and the rest."""
    poly, rest = sp.Integer(0), sp.Integer(0)
    for term in sp.Add.make_args(sp.expand(integrand)):
        _, den = sp.fraction(sp.together(term))
        if term.has(LOG_DELTA) or den.has(*variables):
            rest += term
        else:
            poly += term
    return poly, rest


def reduce_one_loop(
    numerator: DiracExpr,
    denominators,
    dot,
    *,
    left=None,
    right=None,
    closed_loop: bool = False,
) -> ReducedLoop:
    """
    Reduce int d^dk/(2 pi)^d numerator / prod(denominators).

    `dot(a, b)` gives scalar products of external basis momenta; `left` and
    `right` are the on-shell spinor ends of an open fermion line and
    `closed_loop` traces the chain instead.
    """
    n = len(denominators)
    if n == 0:
        raise LoopIntegralReductionError("A loop integral needs at least one propagator")
    if n > MAX_PROPAGATORS:
        raise LoopIntegralReductionError(f"{n}-point loop integrals are not supported (max {MAX_PROPAGATORS})")

    xs = feynman_parameters(n)
    variables = xs[1:]
    weights = (1 - sum(variables),) + variables

    s = Momentum.zero()
    for x, den in zip(weights, denominators):
        s = s + den.shift * x
    delta = momentum_dot(s, s, dot)
    for x, den in zip(weights, denominators):
        delta -= x * (momentum_dot(den.shift, den.shift, dot) - den.mass**2)
    delta = sp.expand(delta)
    logger.debug("%d-point loop, Delta = %s", n, delta)

    shifted = Momentum.named(SHIFTED_LOOP_MOMENTUM) - s
    expr = contract_indices(numerator, dot).substitute_momentum(LOOP_MOMENTUM, shifted)

    per_key = {}
    for a, piece in symmetric_integration(expr).items():
        piece = contract_indices(piece, dot)
        if closed_loop:
            piece = trace(piece, dot)
        piece = normal_order(piece, dot, left=left, right=right)
        for key, coeff in piece.items():
            per_key[key] = per_key.get(key, 0) + master_integral(coeff, n, a, delta)

    closed, remainder = [], []
    for key, integrand in per_key.items():
        poly, rest = _split(integrand, variables)
        if rest != 0:
            rest = symmetrize(rest, variables, delta)
            if not rest.has(LOG_DELTA) and not sp.fraction(rest)[1].has(*variables):
                poly, rest = poly + rest, sp.Integer(0)
        if poly != 0:
            closed.append((key, integrate_polynomial(poly, variables)))
        if rest != 0:
            remainder.append((key, rest))
    return ReducedLoop(DiracExpr(closed), DiracExpr(remainder), delta, variables)


__all__ = [
    "Denominator",
    "ReducedLoop",
    "symmetric_integration",
    "master_integral",
    "reduce_one_loop",
]
