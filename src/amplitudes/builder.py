"""
Amplitude assembly: Feynman rules along each diagram, then loop reduction.

Each diagram is turned into a numerator (Dirac chain written against the
fermion flow, photon propagators as metric factors) over its propagator
denominators and reduced independently, optionally in parallel with joblib.
Workers return plain reduction results; only the calling process writes to
the abbreviation table, in diagram order, so symbol names do not depend on
the number of workers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import sympy as sp
from joblib import Parallel, delayed

from dirac import DiracExpr, Momentum
from errors import ProcessError
from loops import (
    LOG_DELTA,
    MU_R,
    AbbreviationTable,
    Denominator,
    reduce_one_loop,
    simplex_limits,
)
from loops.defaults import LOOP_MOMENTUM
from model import FLOW_OUT, fermion_propagator, vector_propagator

from .defaults import EXTERNAL_INDICES, N_JOBS
from .diagrams import Diagram, generate_diagrams
from .kinematics import Kinematics
from .process import Order, leg_flow, validate_process

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Amplitude:
    """
    i*M for a process, as a DiracExpr with free external indices.

    Coefficients may contain abbreviations of `context` (Feynman-parameter
    integrals I_k and their building blocks).
    """

    expr: DiracExpr
    legs: tuple
    order: Order
    diagrams: tuple
    kinematics: Kinematics
    context: AbbreviationTable = field(repr=False)

    @property
    def ends(self):
        """On-shell spinor ends (left, right) of the external fermion line."""
        exit_leg, entry_leg = self.kinematics.fermion_ends()
        return self.kinematics.spinor_end(exit_leg), self.kinematics.spinor_end(entry_leg)

    @property
    def has_fermion_line(self) -> bool:
        return any(p.is_fermion for p in self.kinematics.particles)

    @property
    def indices(self):
        return external_indices(self.kinematics)

    def __str__(self):
        legs = ", ".join(map(str, self.legs))
        return f"Amplitude[{self.order.name.lower()}]({legs}) =\n  {self.expr}"


def external_indices(kinematics: Kinematics) -> dict:
    """Lorentz index carried by each external vector leg, by leg position."""
    out = {}
    for i, particle in enumerate(kinematics.particles):
        if not particle.is_fermion:
            out[i] = EXTERNAL_INDICES[len(out)]
    return out


# -- per-diagram numerators ----------------------------------------------


def _ring_shifts(diagram: Diagram, kin: Kinematics):
    """Edge e carries k + shifts[e] from V_e to V_{e+1}."""
    shifts = [Momentum.zero()]
    for leg in diagram.ordering[1:]:
        shifts.append(shifts[-1] + kin.inflow(leg))
    return shifts


def _vertex_index(diagram: Diagram, kin: Kinematics, i: int) -> str:
    n = diagram.size
    leg = diagram.ordering[i]
    ext = external_indices(kin)
    if leg in ext:
        return ext[leg]
    if not diagram.edges:
        return next(iter(ext.values()))
    if diagram.edges[i - 1].flow == 0:
        return f"a{(i - 1) % n}t"
    return f"a{i}s"


def _vertex(diagram: Diagram, kin: Kinematics, i: int) -> DiracExpr:
    index = _vertex_index(diagram, kin, i)
    return sp.I * diagram.couplings[i] * DiracExpr.gamma(index)


def _fermion_walk(diagram: Diagram, kin: Kinematics, start: int):
    """Vertices and edges met walking against the fermion arrows from `start`."""
    n = diagram.size
    vertex = start
    steps = []
    while True:
        if diagram.edges[vertex - 1].flow == 1:
            edge, nxt = (vertex - 1) % n, (vertex - 1) % n
        elif diagram.edges[vertex].flow == -1:
            edge, nxt = vertex, (vertex + 1) % n
        else:
            steps.append((vertex, None))
            return steps
        steps.append((vertex, edge))
        vertex = nxt
        if vertex == start:
            return steps


def loop_integrand(diagram: Diagram, kin: Kinematics, masses):
    """(numerator, denominators) of a ring diagram, loop momentum k; `masses` maps particle names to masses."""
    shifts = _ring_shifts(diagram, kin)
    loop = Momentum.named(LOOP_MOMENTUM)
    denominators = []
    for e, edge in enumerate(diagram.edges):
        mass = masses.get(edge.particle, sp.Integer(0))
        denominators.append(Denominator(shifts[e], mass))

    if diagram.closed_fermion_loop:
        start = 0
    else:
        start = next(
            i for i, leg in enumerate(diagram.ordering)
            if leg_flow(kin.legs[leg], kin.particles[leg]) == FLOW_OUT
        )

    chain = DiracExpr.scalar(diagram.sign * diagram.symmetry)
    for vertex, edge in _fermion_walk(diagram, kin, start):
        chain = chain * _vertex(diagram, kin, vertex)
        if edge is not None:
            e = diagram.edges[edge]
            momentum = (loop + shifts[edge]) * e.flow
            chain = chain * fermion_propagator(momentum, denominators[edge].mass)

    for e, edge in enumerate(diagram.edges):
        if edge.flow == 0:
            chain = chain * vector_propagator(f"a{e}s", f"a{e}t")
    return chain, tuple(denominators)


def _reduce_diagram(diagram: Diagram, kin: Kinematics, masses, left, right):
    numerator, denominators = loop_integrand(diagram, kin, masses)
    return reduce_one_loop(
        numerator,
        denominators,
        kin.dot,
        left=left,
        right=right,
        closed_loop=diagram.closed_fermion_loop,
    )


# -- public entry point ---------------------------------------------------


def _register(reduced, context: AbbreviationTable) -> DiracExpr:
    """Closed part plus one I_k abbreviation per Dirac structure of the remainder."""
    if reduced.remainder.is_zero():
        return reduced.closed
    replacements = {}
    if any(coeff.has(LOG_DELTA) for _, coeff in reduced.remainder.items()):
        delta = context.register("Delta", reduced.delta)
        replacements[LOG_DELTA] = context.register("L", sp.log(delta / MU_R**2))
    limits = simplex_limits(reduced.variables)
    pieces = []
    for key, integrand in reduced.remainder.items():
        integral = sp.Integral(integrand.xreplace(replacements), *limits)
        pieces.append((key, context.register("I", integral)))
    return reduced.closed + DiracExpr(pieces)


def compute_amplitude(model, order, legs, *, context: AbbreviationTable | None = None, n_jobs: int = N_JOBS):
    """
    Compute i*M for `legs` at `order` (tree or one loop).

    Raises ProcessError for malformed processes or when the model produces no
    diagram for them.  The model is finalized on first use.
    """
    model.finalize()
    legs = tuple(legs)
    order = Order(order)
    validate_process(model, legs)
    context = AbbreviationTable() if context is None else context
    kin = Kinematics(model, legs)

    diagrams = tuple(generate_diagrams(model, legs, order))
    if not diagrams:
        raise ProcessError(f"No {order.name.lower()} diagrams for process {', '.join(map(str, legs))}")

    exit_leg, entry_leg = kin.fermion_ends()
    left, right = kin.spinor_end(exit_leg), kin.spinor_end(entry_leg)

    masses = {p.name: p.mass for p in model.particles}
    if order == Order.TREE:
        expr = DiracExpr.sum(_vertex(d, kin, 0) for d in diagrams)
    else:
        reduced = Parallel(n_jobs=n_jobs)(delayed(_reduce_diagram)(d, kin, masses, left, right) for d in diagrams)
        expr = DiracExpr.sum(_register(r, context) for r in reduced)

    logger.info("Amplitude with %d diagram(s), %d Dirac structure(s)", len(diagrams), len(expr))
    return Amplitude(expr, legs, order, diagrams, kin, context)


__all__ = ["Amplitude", "compute_amplitude", "external_indices", "loop_integrand"]
