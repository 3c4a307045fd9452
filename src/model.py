"""
Model registry: U(1) gauge groups, particles and the Feynman rules they imply.

Conventions: metric (+,-,-,-), covariant derivative D_mu = d_mu - i g Q A_mu,
so every charged Dirac fermion couples through the vertex i g Q gamma^mu.
Propagators are i (pslash + m)/(p^2 - m^2) for fermions and, in Feynman
gauge, -i g_{mu nu}/(k^2 - M^2) for gauge bosons.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import sympy as sp

from dirac import DiracExpr, Momentum
from errors import ModelError

logger = logging.getLogger(__name__)

DIRAC = "dirac"
VECTOR = "vector"
SPIN_KINDS = (DIRAC, VECTOR)

# Direction of a fermion arrow at a vertex.
FLOW_IN = "in"
FLOW_OUT = "out"


def _as_mass(mass):
    if mass is None or mass == 0:
        return sp.Integer(0)
    if isinstance(mass, str):
        return sp.Symbol(mass, positive=True)
    return sp.sympify(mass)


@dataclass(frozen=True)
class GaugeGroup:
    name: str
    coupling: sp.Expr
    kind: str = "U1"
    boson: str = ""

    def __post_init__(self):
        if not self.boson:
            object.__setattr__(self, "boson", f"A_{self.name}")


@dataclass(frozen=True)
class Particle:
    """Field content of the model; immutable once registered."""

    name: str
    spin: str
    mass: sp.Expr = sp.Integer(0)
    charges: tuple = ()
    latex: str = ""

    def charge(self, group: str):
        return dict(self.charges).get(group, sp.Integer(0))

    @property
    def is_fermion(self) -> bool:
        return self.spin == DIRAC

    @property
    def self_conjugate(self) -> bool:
        return not self.is_fermion and all(q == 0 for _, q in self.charges)

    def __str__(self):
        charges = ", ".join(f"Q_{g}={q}" for g, q in self.charges) or "neutral"
        return f"{self.name} ({self.spin}, m={self.mass}, {charges})"


@dataclass(frozen=True)
class VertexField:
    particle: str
    flow: str | None = None


@dataclass(frozen=True)
class FeynmanRule:
    """Vertex ``i * coupling * gamma^mu`` between a fermion line and a gauge boson."""

    fields: tuple
    coupling: sp.Expr
    group: str = ""

    @property
    def fermion(self) -> str:
        return next(f.particle for f in self.fields if f.flow is not None)

    @property
    def boson(self) -> str:
        return next(f.particle for f in self.fields if f.flow is None)

    def signature(self):
        return tuple(sorted((f.particle, f.flow or "") for f in self.fields))

    def factor(self, index: str) -> DiracExpr:
        return sp.I * self.coupling * DiracExpr.gamma(index)

    def __str__(self):
        return f"{self.fermion}bar {self.fermion} {self.boson}: i*({self.coupling})*gamma^mu"


def fermion_propagator(momentum: Momentum, mass) -> DiracExpr:
    """Numerator i (pslash + m); the denominator p^2 - m^2 is kept by the loop layer."""
    return sp.I * (DiracExpr.slash(momentum) + DiracExpr.scalar(mass))


def vector_propagator(a: str, b: str) -> DiracExpr:
    """Numerator -i g_{ab} in Feynman gauge."""
    return -sp.I * DiracExpr.metric(a, b)


def derive_feynman_rules(groups, particles):
    rules = []
    for group in groups:
        for particle in particles:
            q = particle.charge(group.name)
            if not particle.is_fermion or q == 0:
                continue
            rules.append(
                FeynmanRule(
                    fields=(
                        VertexField(particle.name, FLOW_OUT),
                        VertexField(particle.name, FLOW_IN),
                        VertexField(group.boson),
                    ),
                    coupling=group.coupling * q,
                    group=group.name,
                )
            )
    return tuple(rules)


class Model:
    """Mutable while being defined; `finalize()` freezes it for the pipeline."""

    def __init__(self, name: str = "model"):
        self.name = name
        self._groups = {}
        self._particles = {}
        self._rules = None
        self._finalized = False

    # -- definition ---------------------------------------------------

    def _check_mutable(self):
        if self._finalized:
            raise ModelError(f"Model {self.name!r} is finalized and can no longer be modified")
        self._rules = None

    def add_gauged_group(self, name: str, coupling, kind: str = "U1") -> GaugeGroup:
        self._check_mutable()
        if kind != "U1":
            raise ModelError(f"Only U(1) gauge groups are supported, got {kind!r}")
        if name in self._groups:
            raise ModelError(f"Gauge group {name!r} already defined")
        if isinstance(coupling, str):
            coupling = sp.Symbol(coupling, positive=True)
        group = GaugeGroup(name, sp.sympify(coupling), kind)
        self._groups[name] = group
        return group

    def init(self):
        """Create the gauge boson of every group that does not have one yet."""
        self._check_mutable()
        for group in self._groups.values():
            if group.boson not in self._particles:
                self._particles[group.boson] = Particle(group.boson, VECTOR, latex="A")
        return self

    def add_particle(self, name: str, spin: str = DIRAC, *, mass=None, charges=None, latex: str = "") -> Particle:
        self._check_mutable()
        if spin not in SPIN_KINDS:
            raise ModelError(f"Unknown spin kind {spin!r}; expected one of {SPIN_KINDS}")
        if name in self._particles:
            raise ModelError(f"Particle {name!r} already defined")
        charges = dict(charges or {})
        for group in charges:
            if group not in self._groups:
                raise ModelError(f"Particle {name!r} charged under unknown group {group!r}")
        particle = Particle(
            name,
            spin,
            _as_mass(mass),
            tuple(sorted((g, sp.Rational(q)) for g, q in charges.items())),
            latex or name,
        )
        self._particles[name] = particle
        return particle

    def rename_particle(self, old: str, new: str):
        self._check_mutable()
        if old not in self._particles:
            raise ModelError(f"No particle named {old!r}")
        if new in self._particles:
            raise ModelError(f"Particle {new!r} already defined")
        p = self._particles.pop(old)
        self._particles[new] = Particle(new, p.spin, p.mass, p.charges, p.latex)
        for name, group in self._groups.items():
            if group.boson == old:
                self._groups[name] = replace(group, boson=new)

    # -- queries ------------------------------------------------------

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def gauge_groups(self):
        return tuple(self._groups.values())

    @property
    def particles(self):
        return tuple(self._particles.values())

    def particle(self, name: str) -> Particle:
        try:
            return self._particles[name]
        except KeyError:
            raise KeyError(f"No particle named {name!r} in model {self.name!r}") from None

    def has_particle(self, name: str) -> bool:
        return name in self._particles

    def gauge_boson(self, group: str) -> Particle:
        return self.particle(self._groups[group].boson)

    def refresh(self):
        """Re-derive the Feynman rules from the current field content."""
        missing = [g.boson for g in self._groups.values() if g.boson not in self._particles]
        if missing:
            raise ModelError(f"Gauge bosons {missing} not created; call init() first")
        self._rules = derive_feynman_rules(self._groups.values(), self._particles.values())
        logger.debug("Derived %d Feynman rules for model %r", len(self._rules), self.name)
        return self._rules

    def finalize(self):
        if not self._finalized:
            self.refresh()
            self._finalized = True
            logger.info("Model %r finalized: %s", self.name, ", ".join(self._particles))
        return self

    def feynman_rules(self):
        if self._rules is None:
            self.refresh()
        return self._rules

    # -- pipeline shortcuts -------------------------------------------

    def compute_amplitude(self, order, legs, **kwargs):
        from amplitudes import compute_amplitude

        return compute_amplitude(self, order, legs, **kwargs)

    def compute_squared_amplitude(self, amplitude):
        from amplitudes import compute_squared_amplitude

        return compute_squared_amplitude(amplitude)

    def compute_wilson_coefficients(self, order, legs, **kwargs):
        from wilson import compute_wilson_coefficients

        return compute_wilson_coefficients(self, order, legs, **kwargs)

    def get_wilson_coefficients(self, amplitude):
        from wilson import get_wilson_coefficients

        return get_wilson_coefficients(amplitude)

    def __str__(self):
        lines = [f"Model {self.name}"]
        lines += [f"  gauge group {g.name} ({g.kind}), coupling {g.coupling}" for g in self._groups.values()]
        lines += [f"  {p}" for p in self._particles.values()]
        return "\n".join(lines)


__all__ = [
    "DIRAC",
    "VECTOR",
    "FLOW_IN",
    "FLOW_OUT",
    "GaugeGroup",
    "Particle",
    "VertexField",
    "FeynmanRule",
    "Model",
    "derive_feynman_rules",
    "fermion_propagator",
    "vector_propagator",
]
