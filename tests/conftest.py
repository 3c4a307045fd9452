"""
Pytest configuration.

This codebase treats `src/` as a top-level module directory (it is added to
`sys.path` by `main.py` when running scripts). For `pytest`, we add it here so
tests can import `model`, `amplitudes`, `wilson`, etc. without each test
needing to manage sys.path.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_DIR))

from model import DIRAC, Model  # noqa: E402


def qed_model(name="QED", mass="m_mu"):
    model = Model(name)
    model.add_gauged_group("em", "e")
    model.init()
    model.rename_particle("A_em", "A")
    model.add_particle("mu", DIRAC, mass=mass, charges={"em": -1}, latex="\\mu")
    model.refresh()
    return model


@pytest.fixture
def qed():
    return qed_model()


# One-loop results are expensive to derive; share them across test modules.


@pytest.fixture(scope="session")
def qed_session():
    return qed_model().finalize()


@pytest.fixture(scope="session")
def self_energy(qed_session):
    from amplitudes import Order, compute_amplitude, incoming, outgoing

    return compute_amplitude(
        qed_session,
        Order.ONE_LOOP,
        [incoming("mu", on_shell=False), outgoing("mu", on_shell=False)],
    )


@pytest.fixture(scope="session")
def self_energy_wilsons(self_energy):
    from wilson import get_wilson_coefficients

    return get_wilson_coefficients(self_energy)


@pytest.fixture(scope="session")
def vertex(qed_session):
    from amplitudes import Order, compute_amplitude, incoming, outgoing

    return compute_amplitude(
        qed_session,
        Order.ONE_LOOP,
        [incoming("mu"), outgoing("mu"), outgoing("A")],
    )


@pytest.fixture(scope="session")
def vertex_wilsons(vertex):
    from wilson import get_wilson_coefficients

    return get_wilson_coefficients(vertex)
