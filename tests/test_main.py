"""The demo script end to end: self-energy, g-2 and the generated library."""

import importlib.util
import inspect
from pathlib import Path

import numpy as np

from codegen import Library

MAIN = Path(__file__).resolve().parent.parent / "main.py"


def _load_main():
    spec = importlib.util.spec_from_file_location("demo_main", MAIN)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_demo_builds_library(tmp_path, capsys):
    demo = _load_main()
    assert demo.main(["--no-pause", "--output", str(tmp_path)]) == 0
    assert "Library written to" in capsys.readouterr().out

    demolib = Library("demolib", tmp_path).load()
    assert set(demolib.__all__) == {
        "mu_self_e_mterm",
        "mu_self_e_pterm",
        "mu_self_e_squared",
        "mu_magnetic_vertex",
        "mu_magnetic_vertex_eval",
        "mu_magnetic_vertex_simpli",
    }
    e, m = 0.3, 0.5
    expected = 1j * e**3 / (16 * np.pi**2 * m)
    assert np.isclose(demolib.mu_magnetic_vertex_simpli(e=e, m_mu=m), expected)
    values = {"e": e, "m_mu": m, "mu_R": 1.0, "Delta_UV": 0.0}
    params = inspect.signature(demolib.mu_magnetic_vertex).parameters
    assert np.isclose(demolib.mu_magnetic_vertex(**{p: values[p] for p in params}), expected, rtol=1e-4)
