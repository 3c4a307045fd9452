"""
External kinematics: momentum conservation and scalar products.

One external momentum is eliminated through conservation (the last vector
leg if there is one, so that fermion momenta stay in the basis and the
Dirac equation applies; otherwise the last leg).  Scalar products of the
remaining basis momenta follow from the invariants: p_i^2 = m_i^2 on shell,
a symbol p{i}_sq off shell, and Mandelstam symbols s_ij for four legs.
"""

from __future__ import annotations

import sympy as sp

from dirac import Momentum, SpinorEnd, momentum_dot

from .defaults import momentum_name
from .process import leg_flow, leg_sign


class Kinematics:
    def __init__(self, model, legs):
        self.legs = tuple(legs)
        self.particles = tuple(model.particle(leg.particle) for leg in self.legs)
        n = len(self.legs)

        bosons = [i for i, p in enumerate(self.particles) if not p.is_fermion]
        self.eliminated = bosons[-1] if bosons else n - 1
        self.basis = tuple(momentum_name(i) for i in range(n) if i != self.eliminated)

        sign_e = leg_sign(self.legs[self.eliminated])
        self._momenta = {}
        eliminated = Momentum.zero()
        for i in range(n):
            if i == self.eliminated:
                continue
            p = Momentum.named(momentum_name(i))
            self._momenta[i] = p
            eliminated = eliminated + p * (-sign_e * leg_sign(self.legs[i]))
        self._momenta[self.eliminated] = eliminated

        self._products = {}
        for i in range(n):
            if i != self.eliminated:
                name = momentum_name(i)
                self._products[(name, name)] = self.square(i)
        self._solve_cross_products()

    def square(self, i: int):
        """Invariant p_i^2 of leg i."""
        if self.legs[i].on_shell:
            return self.particles[i].mass ** 2
        return sp.Symbol(f"{momentum_name(i)}_sq", real=True)

    def _solve_cross_products(self):
        basis_legs = [i for i in range(len(self.legs)) if i != self.eliminated]
        pairs = [(a, b) for k, a in enumerate(basis_legs) for b in basis_legs[k + 1:]]
        if not pairs:
            return
        # All pairs but the last come from Mandelstam invariants (P_a + P_b)^2.
        for a, b in pairs[:-1]:
            s_ab = sp.Symbol(f"s_{a + 1}{b + 1}", real=True)
            sign = leg_sign(self.legs[a]) * leg_sign(self.legs[b])
            value = sign * (s_ab - self.square(a) - self.square(b)) / 2
            self._set(momentum_name(a), momentum_name(b), value)

        # The last one from the invariant of the eliminated leg.
        a, b = pairs[-1]
        x = sp.Symbol("_unknown")
        self._set(momentum_name(a), momentum_name(b), x)
        p_e = self._momenta[self.eliminated]
        equation = momentum_dot(p_e, p_e, self.dot) - self.square(self.eliminated)
        value = sp.solve(equation, x)[0]
        self._set(momentum_name(a), momentum_name(b), sp.expand(value))

    def _set(self, a, b, value):
        self._products[(a, b)] = value
        self._products[(b, a)] = value

    def dot(self, a: str, b: str):
        """Scalar product of two basis momenta."""
        try:
            return self._products[(a, b)]
        except KeyError:
            raise KeyError(f"No scalar product for momenta {a!r}, {b!r}") from None

    def momentum(self, i: int) -> Momentum:
        """Physical momentum of leg i in the basis."""
        return self._momenta[i]

    def inflow(self, i: int) -> Momentum:
        """Momentum of leg i flowing into the diagram."""
        return self._momenta[i] * leg_sign(self.legs[i])

    def fermion_ends(self):
        """(exit leg, entry leg) of the external fermion line, or (None, None)."""
        exit_leg = entry_leg = None
        for i, (leg, particle) in enumerate(zip(self.legs, self.particles)):
            flow = leg_flow(leg, particle)
            if flow == "out":
                exit_leg = i
            elif flow == "in":
                entry_leg = i
        return exit_leg, entry_leg

    def spinor_end(self, i: int | None) -> SpinorEnd | None:
        """Dirac-equation data for the on-shell spinor of leg i (None if not applicable)."""
        if i is None or not self.legs[i].on_shell:
            return None
        terms = self._momenta[i].terms
        if len(terms) != 1:
            return None
        name, coeff = terms[0]
        mass = self.particles[i].mass * (-1 if self.legs[i].antiparticle else 1)
        return SpinorEnd(name, mass / coeff)

    def outgoing_boson_momentum(self) -> Momentum | None:
        """Momentum carried out of the diagram by the (single) vector leg."""
        bosons = [i for i, p in enumerate(self.particles) if not p.is_fermion]
        if len(bosons) != 1:
            return None
        return -self.inflow(bosons[0])

    def __str__(self):
        lines = [f"basis {', '.join(self.basis)}"]
        for i in range(len(self.legs)):
            lines.append(f"  {momentum_name(i)} = {self._momenta[i]}")
        for (a, b), value in sorted(self._products.items()):
            if a <= b:
                lines.append(f"  {a}.{b} = {value}")
        return "\n".join(lines)


__all__ = ["Kinematics"]
