"""External legs of a process and their validation against a model."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import IntEnum

from errors import ProcessError
from model import FLOW_IN, FLOW_OUT

from .defaults import MAX_LEGS


class Order(IntEnum):
    TREE = 0
    ONE_LOOP = 1


@dataclass(frozen=True)
class Leg:
    particle: str
    incoming: bool = True
    on_shell: bool = True
    antiparticle: bool = False

    def __str__(self):
        name = f"{self.particle}bar" if self.antiparticle else self.particle
        direction = "in" if self.incoming else "out"
        shell = "" if self.on_shell else ", off-shell"
        return f"{name} ({direction}{shell})"


def incoming(particle: str, *, on_shell: bool = True, antiparticle: bool = False) -> Leg:
    return Leg(particle, True, on_shell, antiparticle)


def outgoing(particle: str, *, on_shell: bool = True, antiparticle: bool = False) -> Leg:
    return Leg(particle, False, on_shell, antiparticle)


def leg_flow(leg: Leg, particle) -> str | None:
    """Fermion arrow of the external line at its vertex (None for bosons)."""
    if not particle.is_fermion:
        return None
    into_vertex = leg.incoming != leg.antiparticle
    return FLOW_IN if into_vertex else FLOW_OUT


def leg_sign(leg: Leg) -> int:
    """+1 for incoming legs, -1 for outgoing (momentum flowing into the diagram)."""
    return 1 if leg.incoming else -1


def validate_process(model, legs) -> None:
    """Reject processes that no diagram of `model` can describe."""
    legs = tuple(legs)
    if len(legs) < 2:
        raise ProcessError("A process needs at least two external legs")
    if len(legs) > MAX_LEGS:
        raise ProcessError(f"At most {MAX_LEGS} external legs are supported, got {len(legs)}")

    in_vertices = {f.particle for rule in model.feynman_rules() for f in rule.fields}
    charge = Counter()
    fermion_number = 0
    fermions = 0
    for leg in legs:
        if not model.has_particle(leg.particle):
            raise ProcessError(f"Unknown particle {leg.particle!r} in process")
        particle = model.particle(leg.particle)
        if leg.particle not in in_vertices:
            raise ProcessError(f"Particle {leg.particle!r} appears in no vertex of the model")
        if leg.antiparticle and particle.self_conjugate:
            raise ProcessError(f"{leg.particle!r} is self-conjugate and has no antiparticle")

        # Quantum numbers flowing into the diagram.
        sign = leg_sign(leg) * (-1 if leg.antiparticle else 1)
        for group, q in particle.charges:
            charge[group] += sign * q
        if particle.is_fermion:
            fermion_number += sign
            fermions += 1

    violated = sorted(g for g, q in charge.items() if q != 0)
    if violated:
        raise ProcessError(f"Process violates charge conservation under {violated}")
    if fermion_number:
        raise ProcessError("Process violates fermion-number conservation")
    if fermions > 2:
        raise ProcessError("Processes with more than one external fermion line are not supported")


__all__ = [
    "Order",
    "Leg",
    "incoming",
    "outgoing",
    "leg_flow",
    "leg_sign",
    "validate_process",
]
