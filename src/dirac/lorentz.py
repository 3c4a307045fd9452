"""
Momenta and Lorentz tensor factors.

Momenta are kept as linear combinations of named basis momenta with sympy
coefficients (Feynman parameters, signs), so that loop shifts and momentum
conservation stay exact.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass

import sympy as sp


class Momentum:
    """Immutable linear combination of named momenta, e.g. ``k - x1*p1``."""

    __slots__ = ("_terms",)

    def __init__(self, terms=None):
        clean = {}
        for name, coeff in dict(terms or {}).items():
            coeff = sp.expand(sp.sympify(coeff))
            if coeff != 0:
                clean[name] = coeff
        self._terms = tuple(sorted(clean.items()))

    @classmethod
    def named(cls, name: str) -> "Momentum":
        return cls({name: 1})

    @classmethod
    def zero(cls) -> "Momentum":
        return cls()

    @property
    def terms(self):
        return self._terms

    @property
    def names(self):
        return tuple(name for name, _ in self._terms)

    def coefficient(self, name: str):
        return dict(self._terms).get(name, sp.Integer(0))

    def is_zero(self) -> bool:
        return not self._terms

    def __add__(self, other: "Momentum") -> "Momentum":
        merged = dict(self._terms)
        for name, coeff in other.terms:
            merged[name] = merged.get(name, 0) + coeff
        return Momentum(merged)

    def __neg__(self) -> "Momentum":
        return Momentum({name: -coeff for name, coeff in self._terms})

    def __sub__(self, other: "Momentum") -> "Momentum":
        return self + (-other)

    def __mul__(self, scalar) -> "Momentum":
        return Momentum({name: coeff * scalar for name, coeff in self._terms})

    __rmul__ = __mul__

    def subs(self, name: str, replacement: "Momentum") -> "Momentum":
        """Replace the basis momentum `name` by `replacement`."""
        coeff = self.coefficient(name)
        rest = Momentum({n: c for n, c in self._terms if n != name})
        return rest + replacement * coeff

    def __eq__(self, other):
        return isinstance(other, Momentum) and self._terms == other._terms

    def __hash__(self):
        return hash(self._terms)

    def __repr__(self):
        return f"Momentum({dict(self._terms)!r})"

    def __str__(self):
        if not self._terms:
            return "0"
        parts = []
        for name, coeff in self._terms:
            if coeff == 1:
                parts.append(f"+ {name}")
            elif coeff == -1:
                parts.append(f"- {name}")
            else:
                parts.append(f"+ ({coeff})*{name}")
        text = " ".join(parts)
        return text[2:] if text.startswith("+ ") else "-" + text[2:]


@dataclass(frozen=True, order=True)
class Metric:
    """Metric tensor g^{first second}; indices are stored sorted."""

    first: str
    second: str

    def __post_init__(self):
        if self.second < self.first:
            a, b = self.second, self.first
            object.__setattr__(self, "first", a)
            object.__setattr__(self, "second", b)

    @property
    def indices(self):
        return (self.first, self.second)

    def other(self, index: str) -> str:
        return self.second if index == self.first else self.first

    def __str__(self):
        return f"g^{{{self.first} {self.second}}}"


@dataclass(frozen=True, order=True)
class Vector:
    """Basis momentum carrying a free Lorentz index, p^index."""

    momentum: str
    index: str

    @property
    def indices(self):
        return (self.index,)

    def __str__(self):
        return f"{self.momentum}^{{{self.index}}}"


def factor_key(factor):
    """Total order over mixed tensor factors."""
    return (type(factor).__name__, astuple(factor))


def momentum_dot(a: Momentum, b: Momentum, dot):
    """Scalar product of two linear combinations, from basis products `dot(name, name)`."""
    total = sp.Integer(0)
    for name_a, coeff_a in a.terms:
        for name_b, coeff_b in b.terms:
            total += coeff_a * coeff_b * dot(name_a, name_b)
    return sp.expand(total)


__all__ = ["Momentum", "Metric", "Vector", "factor_key", "momentum_dot"]
