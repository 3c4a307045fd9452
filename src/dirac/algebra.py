"""
Dirac-chain algebra in d dimensions.

A `DiracExpr` is an immutable sum of terms ``coefficient * tensors * chain``
where the chain is an ordered product of gamma matrices, slashed basis
momenta and gamma5, and the tensors are metric / vector factors.  The
routines below contract repeated Lorentz indices, move gamma5 to the right
(anticommuting gamma5), bring chains to a fixed normal order and apply the
Dirac equation at on-shell spinor ends.
"""

from __future__ import annotations

from collections import Counter, namedtuple
from dataclasses import astuple, dataclass

import sympy as sp

from .lorentz import Metric, Momentum, Vector, factor_key

# Space-time dimension of the loop integrals, d = 4 - 2*eps.
DIM = sp.Symbol("d")


@dataclass(frozen=True, order=True)
class Gamma:
    index: str

    def __str__(self):
        return f"gamma^{{{self.index}}}"


@dataclass(frozen=True, order=True)
class Slash:
    momentum: str

    def __str__(self):
        return f"{self.momentum}slash"


@dataclass(frozen=True)
class Gamma5:
    def __str__(self):
        return "gamma5"


def slot_key(slot):
    return (type(slot).__name__, astuple(slot))


def term_key(key):
    chain, tensors = key
    return (len(chain), tuple(slot_key(s) for s in chain), tuple(factor_key(t) for t in tensors))


def _vanishes(coeff) -> bool:
    return coeff == 0 or sp.expand(coeff) == 0


class DiracExpr:
    """Immutable sum of coefficient * tensor factors * Dirac chain."""

    __slots__ = ("_terms",)

    def __init__(self, terms=None):
        items = terms.items() if isinstance(terms, dict) else (terms or ())
        acc = {}
        for (chain, tensors), coeff in items:
            key = (tuple(chain), tuple(sorted(tensors, key=factor_key)))
            acc[key] = acc.get(key, 0) + sp.sympify(coeff)
        self._terms = {key: coeff for key, coeff in acc.items() if not _vanishes(coeff)}

    # -- constructors -------------------------------------------------

    @classmethod
    def scalar(cls, value) -> "DiracExpr":
        return cls([(((), ()), value)])

    @classmethod
    def chain(cls, *slots) -> "DiracExpr":
        return cls([((tuple(slots), ()), 1)])

    @classmethod
    def tensor(cls, *factors) -> "DiracExpr":
        return cls([(((), tuple(factors)), 1)])

    @classmethod
    def gamma(cls, index: str) -> "DiracExpr":
        return cls.chain(Gamma(index))

    @classmethod
    def gamma5(cls) -> "DiracExpr":
        return cls.chain(Gamma5())

    @classmethod
    def slash(cls, momentum: Momentum) -> "DiracExpr":
        return cls([(((Slash(name),), ()), coeff) for name, coeff in momentum.terms])

    @classmethod
    def metric(cls, a: str, b: str) -> "DiracExpr":
        return cls.tensor(Metric(a, b))

    @classmethod
    def vector(cls, momentum: Momentum, index: str) -> "DiracExpr":
        return cls([(((), (Vector(name, index),)), coeff) for name, coeff in momentum.terms])

    @classmethod
    def sum(cls, exprs) -> "DiracExpr":
        pairs = []
        for expr in exprs:
            pairs.extend(expr._terms.items())
        return cls(pairs)

    # -- access -------------------------------------------------------

    def items(self):
        return sorted(self._terms.items(), key=lambda kv: term_key(kv[0]))

    def keys(self):
        return [key for key, _ in self.items()]

    def coefficient(self, chain=(), tensors=()):
        key = (tuple(chain), tuple(sorted(tensors, key=factor_key)))
        return self._terms.get(key, sp.Integer(0))

    def is_zero(self) -> bool:
        return not self._terms

    def __len__(self):
        return len(self._terms)

    @property
    def free_symbols(self):
        out = set()
        for coeff in self._terms.values():
            out |= coeff.free_symbols
        return out

    # -- arithmetic ---------------------------------------------------

    def __add__(self, other):
        other = _as_dirac(other)
        return DiracExpr(list(self._terms.items()) + list(other._terms.items()))

    __radd__ = __add__

    def __neg__(self):
        return self * -1

    def __sub__(self, other):
        return self + (-_as_dirac(other))

    def __rsub__(self, other):
        return _as_dirac(other) + (-self)

    def __mul__(self, other):
        if isinstance(other, DiracExpr):
            pairs = []
            for (ch1, t1), c1 in self._terms.items():
                for (ch2, t2), c2 in other._terms.items():
                    pairs.append(((ch1 + ch2, t1 + t2), c1 * c2))
            return DiracExpr(pairs)
        other = sp.sympify(other)
        return DiracExpr([(key, coeff * other) for key, coeff in self._terms.items()])

    def __rmul__(self, other):
        other = sp.sympify(other)
        return DiracExpr([(key, other * coeff) for key, coeff in self._terms.items()])

    def map_coefficients(self, func) -> "DiracExpr":
        return DiracExpr([(key, func(coeff)) for key, coeff in self._terms.items()])

    def subs(self, *args, **kwargs) -> "DiracExpr":
        return self.map_coefficients(lambda c: c.subs(*args, **kwargs))

    def xreplace(self, mapping) -> "DiracExpr":
        return self.map_coefficients(lambda c: c.xreplace(mapping))

    def substitute_momentum(self, name: str, replacement: Momentum) -> "DiracExpr":
        """Replace basis momentum `name` by a linear combination, in chains and tensors."""
        pieces = []
        for (chain, tensors), coeff in self._terms.items():
            term = DiracExpr.scalar(coeff)
            for slot in chain:
                if isinstance(slot, Slash) and slot.momentum == name:
                    term = term * DiracExpr.slash(replacement)
                else:
                    term = term * DiracExpr.chain(slot)
            for factor in tensors:
                if isinstance(factor, Vector) and factor.momentum == name:
                    term = term * DiracExpr.vector(replacement, factor.index)
                else:
                    term = term * DiracExpr.tensor(factor)
            pieces.append(term)
        return DiracExpr.sum(pieces)

    def __eq__(self, other):
        if not isinstance(other, DiracExpr):
            return NotImplemented
        if set(self._terms) != set(other._terms):
            return False
        return all(_vanishes(self._terms[k] - other._terms[k]) for k in self._terms)

    __hash__ = None

    def __repr__(self):
        return f"DiracExpr({str(self)})"

    def __str__(self):
        if not self._terms:
            return "0"
        parts = []
        for (chain, tensors), coeff in self.items():
            factors = [str(t) for t in tensors] + [str(s) for s in chain]
            body = " ".join(factors)
            parts.append(f"({coeff})" + (f" {body}" if body else ""))
        return " + ".join(parts)


def _as_dirac(value) -> DiracExpr:
    if isinstance(value, DiracExpr):
        return value
    return DiracExpr.scalar(value)


# -- gamma5 and index contraction --------------------------------------


def move_gamma5_right(chain):
    """Anticommute every gamma5 to the right end; returns (sign, chain)."""
    body = [s for s in chain if not isinstance(s, Gamma5)]
    sign = 1
    passed = 0
    n5 = 0
    for slot in reversed(chain):
        if isinstance(slot, Gamma5):
            n5 += 1
            if passed % 2:
                sign = -sign
        else:
            passed += 1
    if n5 % 2:
        body.append(Gamma5())
    return sign, tuple(body)


def _sandwich(segment, dim):
    """gamma^a S gamma_a for a gamma5-free product S, as (coefficient, chain) pairs."""
    if not segment:
        return [(dim, ())]
    *head, last = segment
    out = [(sp.Integer(2), (last,) + tuple(head))]
    out.extend((-c, ch + (last,)) for c, ch in _sandwich(tuple(head), dim))
    return out


def _contract_once(coeff, chain, tensors, dot, dim):
    counts = Counter()
    for factor in tensors:
        counts.update(factor.indices)
    counts.update(s.index for s in chain if isinstance(s, Gamma))
    repeated = sorted(i for i, n in counts.items() if n >= 2)
    if not repeated:
        return None
    index = repeated[0]
    if counts[index] > 2:
        raise ValueError(f"Lorentz index {index!r} appears {counts[index]} times")

    t_hits = [k for k, f in enumerate(tensors) if index in f.indices]
    c_hits = [k for k, s in enumerate(chain) if isinstance(s, Gamma) and s.index == index]
    rest = [f for k, f in enumerate(tensors) if k not in t_hits]

    if len(t_hits) == 1 and not c_hits:
        # g^{a a}
        return [(coeff * dim, chain, rest)]

    if len(t_hits) == 2:
        f1, f2 = tensors[t_hits[0]], tensors[t_hits[1]]
        if isinstance(f1, Vector) and isinstance(f2, Vector):
            return [(coeff * dot(f1.momentum, f2.momentum), chain, rest)]
        if isinstance(f1, Vector):
            f1, f2 = f2, f1
        if isinstance(f2, Vector):
            return [(coeff, chain, rest + [Vector(f2.momentum, f1.other(index))])]
        return [(coeff, chain, rest + [Metric(f1.other(index), f2.other(index))])]

    if len(t_hits) == 1 and len(c_hits) == 1:
        factor, pos = tensors[t_hits[0]], c_hits[0]
        if isinstance(factor, Vector):
            slot = Slash(factor.momentum)
        else:
            slot = Gamma(factor.other(index))
        return [(coeff, chain[:pos] + (slot,) + chain[pos + 1:], rest)]

    i, j = c_hits
    out = []
    for c, middle in _sandwich(chain[i + 1:j], dim):
        out.append((coeff * c, chain[:i] + middle + chain[j + 1:], list(tensors)))
    return out


def contract_indices(expr: DiracExpr, dot, dim=DIM) -> DiracExpr:
    """
    Contract every repeated Lorentz index.

    `dot(a, b)` returns the scalar product of two basis momenta.  Contractions
    inside a chain use gamma^a S gamma_a in `dim` dimensions.
    """
    pairs = []
    for (chain, tensors), coeff in expr.items():
        sign, chain = move_gamma5_right(chain)
        work = [(coeff * sign, chain, list(tensors))]
        while work:
            c, ch, ts = work.pop()
            step = _contract_once(c, ch, ts, dot, dim)
            if step is None:
                pairs.append(((ch, tuple(ts)), c))
            else:
                work.extend(step)
    return DiracExpr(pairs)


def pair_contraction(a, b, dot):
    """Half the anticommutator {a, b}: returns (coefficient, tensor factors)."""
    if isinstance(a, Slash) and isinstance(b, Slash):
        return dot(a.momentum, b.momentum), ()
    if isinstance(a, Gamma) and isinstance(b, Gamma):
        return sp.Integer(1), (Metric(a.index, b.index),)
    if isinstance(a, Slash):
        a, b = b, a
    return sp.Integer(1), (Vector(b.momentum, a.index),)


# -- normal ordering ----------------------------------------------------

# On-shell spinor at one end of a fermion line: ``pslash u(p) = mass u(p)``
# on the right, ``ubar(p) pslash = mass ubar(p)`` on the left.  For v spinors
# the mass carries a minus sign.
SpinorEnd = namedtuple("SpinorEnd", ["momentum", "mass"])


def _slot_rank(slot, left, right):
    if isinstance(slot, Slash):
        if left is not None and slot.momentum == left.momentum:
            return (0, "")
        if right is not None and slot.momentum == right.momentum:
            return (3, "")
        return (2, slot.momentum)
    return (1, slot.index)


def _order_once(coeff, body, has5, tensors, dot, left, right):
    for i in range(len(body) - 1):
        a, b = body[i], body[i + 1]
        if a == b:
            if not isinstance(a, Slash):
                raise ValueError(f"Uncontracted repeated index in chain: {a}")
            return [(coeff * dot(a.momentum, a.momentum), body[:i] + body[i + 2:], has5, tensors)]
        if _slot_rank(a, left, right) > _slot_rank(b, left, right):
            c, extra = pair_contraction(a, b, dot)
            return [
                (2 * coeff * c, body[:i] + body[i + 2:], has5, tensors + extra),
                (-coeff, body[:i] + (b, a) + body[i + 2:], has5, tensors),
            ]
    if left is not None and body and body[0] == Slash(left.momentum):
        return [(coeff * left.mass, body[1:], has5, tensors)]
    if right is not None and body and body[-1] == Slash(right.momentum):
        mass = -right.mass if has5 else right.mass
        return [(coeff * mass, body[:-1], has5, tensors)]
    return None


def normal_order(expr: DiracExpr, dot, left: SpinorEnd | None = None, right: SpinorEnd | None = None) -> DiracExpr:
    """
    Bring every chain to normal order.

    gamma5 goes to the right end, the left spinor momentum to the left, free
    gamma matrices next (sorted by index), other momenta after them and the
    right spinor momentum last.  Equal neighbouring slashes square to p^2 and
    on-shell ends are removed with the Dirac equation.
    """
    expr = contract_indices(expr, dot)
    pairs = []
    for (chain, tensors), coeff in expr.items():
        has5 = bool(chain) and isinstance(chain[-1], Gamma5)
        body = chain[:-1] if has5 else chain
        work = [(coeff, body, has5, tensors)]
        while work:
            c, b, h5, ts = work.pop()
            step = _order_once(c, b, h5, ts, dot, left, right)
            if step is None:
                pairs.append(((b + ((Gamma5(),) if h5 else ()), ts), c))
            else:
                work.extend(step)
    return DiracExpr(pairs)


def dirac_bar(expr: DiracExpr) -> DiracExpr:
    """gamma0 M^dagger gamma0: reversed chains, gamma5 -> -gamma5, conjugated coefficients."""
    pairs = []
    for (chain, tensors), coeff in expr.items():
        sign = (-1) ** sum(isinstance(s, Gamma5) for s in chain)
        pairs.append(((tuple(reversed(chain)), tensors), sign * sp.conjugate(coeff)))
    return DiracExpr(pairs)


__all__ = [
    "DIM",
    "Gamma",
    "Slash",
    "Gamma5",
    "DiracExpr",
    "SpinorEnd",
    "contract_indices",
    "normal_order",
    "move_gamma5_right",
    "pair_contraction",
    "dirac_bar",
    "slot_key",
    "term_key",
]
