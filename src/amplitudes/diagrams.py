"""
Diagram generation at tree level and one loop.

A one-loop diagram is a ring of vertices V_0 ... V_{n-1}, one per external
leg, joined by internal edges; edge i runs from V_i to V_{i+1 mod n}.  The
leg on V_0 is always leg 0, and a ring and its mirror image are the same
diagram, so every diagram is kept once in a canonical orientation.

Fermion edges carry a flow: +1 when the fermion arrow runs along the ring
direction, -1 against it.  Boson edges have flow 0.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

import sympy as sp

from model import FLOW_IN, FLOW_OUT

from .process import Order, leg_flow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Edge:
    particle: str
    flow: int = 0

    def flipped(self) -> "Edge":
        return Edge(self.particle, -self.flow)

    def end_flow(self, at_start: bool) -> str:
        """Arrow direction seen from the start (V_i) or end (V_{i+1}) vertex."""
        if self.flow == 0:
            return ""
        leaving = (self.flow > 0) == at_start
        return FLOW_OUT if leaving else FLOW_IN

    def __str__(self):
        arrow = {1: "->", -1: "<-", 0: "~~"}[self.flow]
        return f"{arrow}{self.particle}{arrow}"


@dataclass(frozen=True)
class Diagram:
    """
    One tree-level contact vertex or one-loop ring.

    `ordering[i]` is the external leg attached to vertex i; `couplings[i]` the
    vertex coupling; `sign` is -1 for a closed fermion loop and `symmetry`
    the symmetry factor.
    """

    order: Order
    ordering: tuple
    edges: tuple = ()
    couplings: tuple = ()
    sign: int = 1
    symmetry: sp.Expr = sp.Integer(1)

    @property
    def size(self) -> int:
        return len(self.ordering)

    @property
    def closed_fermion_loop(self) -> bool:
        return self.sign == -1

    def vertex_fields(self, legs, particles, i):
        """Fields meeting at vertex i as (particle, arrow) pairs."""
        if self.order == Order.TREE:
            # contact vertex: every external leg meets at it
            return tuple(sorted((legs[j].particle, leg_flow(legs[j], particles[j]) or "") for j in self.ordering))
        leg = self.ordering[i]
        fields = [(legs[leg].particle, leg_flow(legs[leg], particles[leg]) or "")]
        if self.edges:
            before, after = self.edges[i - 1], self.edges[i]
            fields.append((before.particle, before.end_flow(at_start=False)))
            fields.append((after.particle, after.end_flow(at_start=True)))
        return tuple(sorted(fields))

    def __str__(self):
        if self.order == Order.TREE:
            return f"tree vertex ({', '.join(str(i) for i in self.ordering)})"
        ring = " ".join(f"[{leg}] {edge}" for leg, edge in zip(self.ordering, self.edges))
        extras = []
        if self.sign < 0:
            extras.append("fermion loop")
        if self.symmetry != 1:
            extras.append(f"symmetry {self.symmetry}")
        suffix = f" ({', '.join(extras)})" if extras else ""
        return f"loop {ring} [{self.ordering[0]}]{suffix}"


def _reflect(ordering, edges):
    n = len(ordering)
    mirrored = (ordering[0],) + tuple(reversed(ordering[1:]))
    flipped = tuple(edges[(-j - 1) % n].flipped() for j in range(n))
    return mirrored, flipped


def _edge_candidates(particles):
    out = []
    for p in particles:
        if p.is_fermion:
            out.extend([Edge(p.name, 1), Edge(p.name, -1)])
        else:
            out.append(Edge(p.name, 0))
    return out


def _rules_by_signature(model):
    return {rule.signature(): rule for rule in model.feynman_rules()}


def _tree_diagrams(model, legs, particles):
    rules = _rules_by_signature(model)
    diagram = Diagram(Order.TREE, tuple(range(len(legs))))
    rule = rules.get(diagram.vertex_fields(legs, particles, 0))
    if rule is None:
        return []
    return [Diagram(Order.TREE, diagram.ordering, couplings=(rule.coupling,))]


def _loop_diagrams(model, legs, particles):
    rules = _rules_by_signature(model)
    n = len(legs)
    candidates = _edge_candidates(model.particles)
    seen = set()
    diagrams = []
    for rest in itertools.permutations(range(1, n)):
        ordering = (0,) + rest
        for edges in itertools.product(candidates, repeat=n):
            probe = Diagram(Order.ONE_LOOP, ordering, edges)
            if any(rules.get(probe.vertex_fields(legs, particles, i)) is None for i in range(n)):
                continue
            key = min((ordering, edges), _reflect(ordering, edges))
            if key in seen:
                continue
            seen.add(key)

            canonical = Diagram(Order.ONE_LOOP, *key)
            couplings = tuple(rules[canonical.vertex_fields(legs, particles, i)].coupling for i in range(n))
            closed = all(e.flow != 0 for e in edges) and not any(p.is_fermion for p in particles)
            symmetric = n == 2 and edges[0] == edges[1] and edges[0].flow == 0
            diagrams.append(
                Diagram(
                    Order.ONE_LOOP,
                    *key,
                    couplings=couplings,
                    sign=-1 if closed else 1,
                    symmetry=sp.Rational(1, 2) if symmetric else sp.Integer(1),
                )
            )
    diagrams.sort(key=lambda d: (d.ordering, d.edges))
    return diagrams


def generate_diagrams(model, legs, order=Order.ONE_LOOP):
    """All diagrams of `order` for the external `legs` (possibly none)."""
    legs = tuple(legs)
    particles = tuple(model.particle(leg.particle) for leg in legs)
    order = Order(order)
    if order == Order.TREE:
        diagrams = _tree_diagrams(model, legs, particles)
    else:
        diagrams = _loop_diagrams(model, legs, particles)
    logger.info("%d %s diagram(s) for %s", len(diagrams), order.name.lower(), ", ".join(map(str, legs)))
    return diagrams


__all__ = ["Edge", "Diagram", "generate_diagrams"]
