"""
Effective operator bases, one per external-leg signature.

Operators are Dirac structures written in the labels of a process (basis
momenta p1, p2, ..., external indices mu, nu).  For a fermion line and one
photon the Gordon-equivalent (p_in + p_out)^mu structure is not a member of
the basis; the magnetic form i sigma^{mu nu} q_nu stands for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import sympy as sp

from dirac import DiracExpr, momentum_dot
from errors import ProcessError


class DiracCoupling(Enum):
    S = "S"
    P = "P"


@dataclass(frozen=True, eq=False)
class Operator:
    name: str
    coupling: DiracCoupling
    structure: DiracExpr

    def same_as(self, other: "Operator") -> bool:
        return self.name == other.name and self.coupling == other.coupling and self.structure == other.structure

    def __str__(self):
        return f"{self.name}[{self.coupling.value}]"


def _i_sigma_q(index: str, q) -> DiracExpr:
    """i sigma^{index nu} q_nu = -(gamma^index qslash - qslash gamma^index)/2."""
    gamma, qslash = DiracExpr.gamma(index), DiracExpr.slash(q)
    return -(gamma * qslash - qslash * gamma) * sp.Rational(1, 2)


def two_fermion_basis(kin):
    _, entry_leg = kin.fermion_ends()
    p = kin.momentum(entry_leg)
    g5 = DiracExpr.gamma5()
    pslash = DiracExpr.slash(p)
    return [
        Operator("mass", DiracCoupling.S, DiracExpr.scalar(1)),
        Operator("kinetic", DiracCoupling.S, pslash),
        Operator("mass", DiracCoupling.P, g5),
        Operator("kinetic", DiracCoupling.P, pslash * g5),
    ]


def fermion_vector_basis(kin, index: str):
    q = kin.outgoing_boson_momentum()
    g5 = DiracExpr.gamma5()
    gamma = DiracExpr.gamma(index)
    magnetic = _i_sigma_q(index, q)
    longitudinal = DiracExpr.vector(q, index)
    return [
        Operator("vector", DiracCoupling.S, gamma),
        Operator("vector", DiracCoupling.P, gamma * g5),
        Operator("magnetic", DiracCoupling.S, magnetic),
        Operator("magnetic", DiracCoupling.P, magnetic * g5),
        Operator("longitudinal", DiracCoupling.S, longitudinal),
        Operator("longitudinal", DiracCoupling.P, longitudinal * g5),
    ]


def two_vector_basis(kin, first: str, second: str):
    q = kin.inflow(0)
    field_strength = (
        DiracExpr.metric(first, second) * momentum_dot(q, q, kin.dot)
        - DiracExpr.vector(q, first) * DiracExpr.vector(q, second)
    )
    return [
        Operator("field_strength", DiracCoupling.S, field_strength),
        Operator("vector_mass", DiracCoupling.S, DiracExpr.metric(first, second)),
    ]


def operator_basis(kin, indices):
    """
    Operator basis for the external legs of `kin`, in derivation order.

    `indices` maps vector-leg positions to their Lorentz index.  Raises
    ProcessError when no basis is defined for the leg content.
    """
    fermions = [p for p in kin.particles if p.is_fermion]
    vectors = [indices[i] for i in sorted(indices)]
    if len(fermions) == 2 and not vectors:
        return two_fermion_basis(kin)
    if len(fermions) == 2 and len(vectors) == 1:
        return fermion_vector_basis(kin, vectors[0])
    if not fermions and len(vectors) == 2:
        return two_vector_basis(kin, *vectors)
    names = ", ".join(p.name for p in kin.particles)
    raise ProcessError(f"No operator basis for external legs ({names})")


__all__ = [
    "DiracCoupling",
    "Operator",
    "operator_basis",
    "two_fermion_basis",
    "fermion_vector_basis",
    "two_vector_basis",
]
