"""
Kinematics, diagram generation and amplitude assembly for QED processes.

The one-loop muon self-energy and vertex are shared session fixtures
(see conftest.py); everything else here is cheap.
"""

import sympy as sp

from amplitudes import (
    Kinematics,
    Order,
    compute_amplitude,
    compute_squared_amplitude,
    generate_diagrams,
    incoming,
    loop_integrand,
    outgoing,
)
from dirac import DiracExpr, Momentum, momentum_dot

e = sp.Symbol("e", positive=True)
m = sp.Symbol("m_mu", positive=True)

VERTEX_LEGS = [incoming("mu"), outgoing("mu"), outgoing("A")]
SELF_ENERGY_LEGS = [incoming("mu", on_shell=False), outgoing("mu", on_shell=False)]
VACUUM_LEGS = [incoming("A", on_shell=False), outgoing("A", on_shell=False)]


# -- kinematics ---------------------------------------------------------


def test_vertex_kinematics(qed):
    """The photon momentum is eliminated: p3 = p1 - p2 and p1.p2 = m^2."""
    kin = Kinematics(qed, VERTEX_LEGS)
    assert kin.eliminated == 2
    assert kin.basis == ("p1", "p2")
    assert kin.momentum(2) == Momentum.named("p1") - Momentum.named("p2")
    assert kin.dot("p1", "p2") == m**2
    assert kin.outgoing_boson_momentum() == kin.momentum(2)


def test_off_shell_square_is_symbolic(qed):
    kin = Kinematics(qed, SELF_ENERGY_LEGS)
    assert kin.eliminated == 1
    assert kin.dot("p1", "p1") == sp.Symbol("p1_sq", real=True)
    assert kin.spinor_end(0) is None


def test_four_leg_kinematics_conserve_momentum(qed):
    """gamma gamma -> mu+ mu-: the eliminated photon stays light-like."""
    legs = [incoming("A"), incoming("A"), outgoing("mu"), outgoing("mu", antiparticle=True)]
    kin = Kinematics(qed, legs)
    assert kin.eliminated == 1
    p2 = kin.momentum(1)
    assert p2 == Momentum.named("p3") + Momentum.named("p4") - Momentum.named("p1")
    assert sp.simplify(momentum_dot(p2, p2, kin.dot)) == 0


def test_spinor_ends(qed):
    kin = Kinematics(qed, VERTEX_LEGS)
    exit_leg, entry_leg = kin.fermion_ends()
    assert (exit_leg, entry_leg) == (1, 0)
    assert kin.spinor_end(entry_leg) == ("p1", m)
    assert kin.spinor_end(exit_leg) == ("p2", m)


# -- diagrams -----------------------------------------------------------


def test_diagram_counts(qed):
    assert len(generate_diagrams(qed, SELF_ENERGY_LEGS, Order.ONE_LOOP)) == 1
    assert len(generate_diagrams(qed, VERTEX_LEGS, Order.ONE_LOOP)) == 1
    assert len(generate_diagrams(qed, VERTEX_LEGS, Order.TREE)) == 1
    assert generate_diagrams(qed, SELF_ENERGY_LEGS, Order.TREE) == []


def test_vacuum_polarisation_is_a_fermion_loop(qed):
    (diagram,) = generate_diagrams(qed, VACUUM_LEGS, Order.ONE_LOOP)
    assert diagram.closed_fermion_loop
    assert all(edge.particle == "mu" for edge in diagram.edges)


def test_three_photon_orientations(qed):
    """Both fermion-loop orientations of the triangle are kept."""
    legs = [incoming("A", on_shell=False), outgoing("A"), outgoing("A")]
    diagrams = generate_diagrams(qed, legs, Order.ONE_LOOP)
    assert len(diagrams) == 2
    assert all(d.closed_fermion_loop for d in diagrams)


def test_self_energy_denominators(qed):
    kin = Kinematics(qed, SELF_ENERGY_LEGS)
    (diagram,) = generate_diagrams(qed, SELF_ENERGY_LEGS, Order.ONE_LOOP)
    masses = {p.name: p.mass for p in qed.particles}
    _, denominators = loop_integrand(diagram, kin, masses)
    assert [d.shift for d in denominators] == [Momentum.zero(), -Momentum.named("p1")]
    assert [d.mass for d in denominators] == [0, m]


# -- amplitudes ---------------------------------------------------------


def test_tree_vertex(qed):
    """i M = i (-e) gamma^mu."""
    amplitude = compute_amplitude(qed, Order.TREE, VERTEX_LEGS)
    assert amplitude.expr == -sp.I * e * DiracExpr.gamma("mu")
    assert amplitude.indices == {2: "mu"}


def test_tree_squared_amplitude(qed):
    """Tr[(p2slash + m) gamma^mu (p1slash + m) gamma_mu] e^2 times -1 for the photon."""
    amplitude = compute_amplitude(qed, Order.TREE, VERTEX_LEGS)
    squared = compute_squared_amplitude(amplitude)
    assert sp.simplify(squared + 8 * e**2 * m**2) == 0


def test_self_energy_structures(self_energy):
    """Off-shell self-energy: only the unit matrix and p1slash appear."""
    keys = {chain for chain, _ in self_energy.expr.keys()}
    assert {len(chain) for chain in keys} <= {0, 1}
    assert self_energy.context.symbols("I")


def test_worker_count_does_not_change_result(qed):
    serial = compute_amplitude(qed, Order.ONE_LOOP, SELF_ENERGY_LEGS, n_jobs=1)
    parallel = compute_amplitude(qed, Order.ONE_LOOP, SELF_ENERGY_LEGS, n_jobs=2)
    assert str(serial.expr) == str(parallel.expr)
    assert [str(v) for _, v in serial.context.items()] == [str(v) for _, v in parallel.context.items()]


def test_squared_self_energy_is_scalar(self_energy):
    squared = compute_squared_amplitude(self_energy)
    assert isinstance(squared, sp.Expr)
    assert squared != 0
