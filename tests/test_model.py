"""Model definition, Feynman rules and process validation."""

import pytest
import sympy as sp

from amplitudes import Order, compute_amplitude, incoming, outgoing, validate_process
from errors import ModelError, ProcessError
from model import DIRAC, FLOW_IN, FLOW_OUT, VECTOR, Model


def test_qed_feynman_rule(qed):
    """One vertex mubar mu A with coupling e*Q = -e."""
    (rule,) = qed.feynman_rules()
    e = sp.Symbol("e", positive=True)
    assert rule.coupling == -e
    assert rule.fermion == "mu"
    assert rule.boson == "A"
    assert rule.signature() == (("A", ""), ("mu", FLOW_IN), ("mu", FLOW_OUT))


def test_rename_moves_gauge_boson(qed):
    assert qed.gauge_boson("em").name == "A"
    assert qed.particle("A").spin == VECTOR
    assert not qed.has_particle("A_em")


def test_only_u1_groups():
    model = Model("SU2")
    with pytest.raises(ModelError):
        model.add_gauged_group("weak", "g", kind="SU2")


def test_duplicate_particle_rejected():
    model = Model("dup")
    model.add_gauged_group("em", "e")
    model.add_particle("mu", DIRAC, charges={"em": -1})
    with pytest.raises(ModelError):
        model.add_particle("mu", DIRAC)


def test_unknown_group_charge_rejected():
    model = Model("bad")
    with pytest.raises(ModelError):
        model.add_particle("mu", DIRAC, charges={"em": -1})


def test_refresh_needs_gauge_bosons():
    model = Model("no-init")
    model.add_gauged_group("em", "e")
    with pytest.raises(ModelError):
        model.refresh()


def test_finalized_model_is_immutable(qed):
    model = qed.finalize()
    assert model.finalized
    with pytest.raises(ModelError):
        model.add_particle("tau", DIRAC, mass="m_tau", charges={"em": -1})
    with pytest.raises(ModelError):
        model.rename_particle("mu", "muon")


def test_unknown_particle_lookup(qed):
    with pytest.raises(KeyError):
        qed.particle("tau")


def test_neutral_fermion_has_no_rule(qed):
    qed.add_particle("nu", DIRAC)
    qed.refresh()
    assert len(qed.feynman_rules()) == 1


# -- process validation -------------------------------------------------


@pytest.mark.parametrize(
    "legs",
    [
        [incoming("mu")],
        [incoming("mu"), incoming("mu")],
        [incoming("tau"), outgoing("tau")],
        [incoming("A", antiparticle=True), outgoing("A")],
        [incoming("mu"), outgoing("mu"), outgoing("A"), outgoing("A"), outgoing("A")],
        [incoming("mu"), outgoing("mu"), incoming("mu"), outgoing("mu")],
    ],
    ids=["one-leg", "charge", "unknown", "photon-bar", "too-many", "two-lines"],
)
def test_invalid_processes(qed, legs):
    with pytest.raises(ProcessError):
        validate_process(qed, legs)


def test_particle_outside_vertices_rejected(qed):
    qed.add_particle("nu", DIRAC)
    qed.refresh()
    with pytest.raises(ProcessError):
        validate_process(qed, [incoming("nu"), outgoing("nu")])


def test_antiparticle_pair_is_valid(qed):
    """mu+ mu- annihilation conserves charge and fermion number."""
    validate_process(qed, [incoming("mu"), incoming("mu", antiparticle=True), outgoing("A")])


def test_no_tree_diagram(qed):
    """mu -> mu has no tree-level vertex."""
    with pytest.raises(ProcessError):
        compute_amplitude(qed, Order.TREE, [incoming("mu"), outgoing("mu")])


def test_amplitude_freezes_model(qed):
    """Rules used for an amplitude cannot change underneath it."""
    compute_amplitude(qed, Order.TREE, [incoming("mu"), outgoing("mu"), outgoing("A")])
    assert qed.finalized
    with pytest.raises(ModelError):
        qed.add_particle("tau", DIRAC, mass="m_tau", charges={"em": -1})
