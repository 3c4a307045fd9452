"""Traces of Dirac chains (Tr 1 = 4)."""

from __future__ import annotations

import sympy as sp

from .algebra import DIM, DiracExpr, Gamma5, contract_indices, move_gamma5_right, pair_contraction


def _trace_chain(chain, dot):
    """Trace of a gamma5-free chain as a list of (coefficient, tensors)."""
    if not chain:
        return [(sp.Integer(4), ())]
    if len(chain) % 2:
        return []
    first, rest = chain[0], chain[1:]
    out = []
    for j, slot in enumerate(rest):
        c, tensors = pair_contraction(first, slot, dot)
        sign = 1 if j % 2 == 0 else -1
        for c_sub, t_sub in _trace_chain(rest[:j] + rest[j + 1:], dot):
            out.append((sign * c * c_sub, tensors + t_sub))
    return out


def trace(expr: DiracExpr, dot, dim=DIM) -> DiracExpr:
    """
    Trace every chain of `expr`, leaving only tensor factors.

    Traces with gamma5 vanish below four gamma matrices; longer ones need the
    Levi-Civita tensor and are rejected.
    """
    pairs = []
    for (chain, tensors), coeff in expr.items():
        sign, chain = move_gamma5_right(chain)
        if chain and isinstance(chain[-1], Gamma5):
            if len(chain) - 1 < 4:
                continue
            raise NotImplementedError("Traces with gamma5 and four or more gamma matrices are not supported")
        for c, extra in _trace_chain(chain, dot):
            pairs.append((((), tensors + extra), sign * coeff * c))
    return contract_indices(DiracExpr(pairs), dot, dim)


__all__ = ["trace"]
