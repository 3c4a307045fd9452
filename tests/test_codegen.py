"""
Generated numerical libraries and their integration backends.

A complex polynomial integrand over the 2-simplex has the closed form

    3 * int (a x1 + i x2) = a/2 + i/2,

which every backend must reproduce (QMC and Vegas to sampling accuracy).
"""

import numpy as np
import pytest
import sympy as sp

from codegen import Library, integrate_simplex, log_minus_i0, print_expression
from loops import DELTA_UV, Abbreviation, evaluate_integrals, expand_abbreviations, feynman_parameters, simplex_limits
from wilson import DiracCoupling, get_wilson_coefficient, magnetic_operator

_, x1, x2 = feynman_parameters(3)
a = sp.Symbol("a")
POLY = 3 * sp.Integral(a * x1 + sp.I * x2, *simplex_limits((x1, x2)))


def _build(tmp_path, name, functions, **kwargs):
    lib = Library(name, tmp_path, **kwargs)
    for fname, expr in functions.items():
        lib.add_function(fname, expr)
    lib.build()
    return lib.load()


@pytest.mark.parametrize(
    "method, rtol",
    [("nquad", 1e-8), ("qmc", 1e-3), ("vegas", 1e-2)],
)
def test_polynomial_integral(tmp_path, method, rtol):
    module = _build(tmp_path, f"poly_{method}", {"poly": POLY}, method=method)
    value = module.poly(a=2.0)
    assert np.isclose(value, 1.0 + 0.5j, rtol=rtol)


def test_jit_integrand(tmp_path):
    module = _build(tmp_path, "poly_jit", {"poly": POLY}, jit=True)
    assert np.isclose(module.poly(a=2.0), 1.0 + 0.5j, rtol=1e-8)


def test_log_branch():
    """log(x - i0) = log|x| - i pi below the real axis."""
    assert log_minus_i0(2.0) == pytest.approx(np.log(2.0))
    assert log_minus_i0(-2.0) == pytest.approx(complex(np.log(2.0), -np.pi))


def test_generated_log_uses_prescription(tmp_path):
    z = sp.Symbol("z")
    module = _build(tmp_path, "logs", {"logf": sp.log(z)})
    assert module.logf(z=-2.0) == pytest.approx(complex(np.log(2.0), -np.pi))


def test_uv_pole_defaults_to_msbar(tmp_path):
    module = _build(tmp_path, "uv", {"uv": DELTA_UV + a})
    assert module.uv(a=1.0) == pytest.approx(1.0)
    assert module.uv(a=1.0, Delta_UV=2.0) == pytest.approx(3.0)


def test_clean_refuses_foreign_directory(tmp_path):
    (tmp_path / "mine").mkdir()
    lib = Library("mine", tmp_path)
    with pytest.raises(ValueError):
        lib.clean_existing_sources()
    assert (tmp_path / "mine").exists()


def test_clean_removes_generated_library(tmp_path):
    lib = Library("gen", tmp_path)
    lib.add_function("one", sp.Integer(1))
    lib.build()
    lib.clean_existing_sources()
    assert not (tmp_path / "gen").exists()


def test_rejects_leftover_abbreviations(tmp_path):
    lib = Library("left", tmp_path)
    with pytest.raises(ValueError):
        lib.add_function("f", Abbreviation("I_1") + 1)


def test_rejects_duplicates_and_bad_names(tmp_path):
    lib = Library("dups", tmp_path)
    lib.add_function("f", a)
    with pytest.raises(ValueError):
        lib.add_function("f", a)
    with pytest.raises(ValueError):
        lib.add_function("not-an-identifier", a)
    with pytest.raises(ValueError):
        Library("lib", tmp_path, method="trapezoid")


def test_unknown_backend():
    with pytest.raises(ValueError):
        integrate_simplex(lambda x: x, [lambda: (0, 1)], method="simpson")


def test_unsupported_function():
    f = sp.Function("f")
    with pytest.raises(ValueError):
        print_expression(f(a))


def test_magnetic_moment_numerically(tmp_path, qed_session, vertex_wilsons):
    """The generated library agrees with the closed-form magnetic coefficient."""
    context = vertex_wilsons.context
    operator = magnetic_operator(qed_session, vertex_wilsons, DiracCoupling.S)
    coefficient = get_wilson_coefficient(vertex_wilsons, operator)

    lib = Library("g2lib", tmp_path)
    lib.add_function("magnetic", coefficient, context)
    lib.build()
    module = lib.load()

    values = {"e": 0.3, "m_mu": 0.5, "mu_R": 1.0, "Delta_UV": 0.0}
    expanded = expand_abbreviations(coefficient, context)
    kwargs = {s.name: values[s.name] for s in expanded.free_symbols}
    numeric = module.magnetic(**kwargs)

    closed = evaluate_integrals(expanded)
    exact = complex(closed.subs({s: values[s.name] for s in closed.free_symbols}))
    assert np.isclose(numeric, exact, rtol=1e-4)


def test_squared_self_energy_library(tmp_path, self_energy):
    """|M|^2 carries conjugated integrals; the library value is real and matches sympy."""
    from amplitudes import compute_squared_amplitude

    squared = compute_squared_amplitude(self_energy)
    lib = Library("squared", tmp_path)
    lib.add_function("squared", squared, self_energy.context)
    lib.build()
    module = lib.load()

    # p1^2 below m^2 keeps the Feynman-parameter Delta positive
    values = {"e": 0.3, "m_mu": 0.5, "p1_sq": 0.1, "mu_R": 1.0, "Delta_UV": 0.0}
    expanded = expand_abbreviations(squared, self_energy.context)
    kwargs = {s.name: values[s.name] for s in expanded.free_symbols}
    numeric = module.squared(**kwargs)

    exact = complex(sp.N(expanded.subs({s: values[s.name] for s in expanded.free_symbols})))
    assert np.isclose(numeric, exact, rtol=1e-6)
    assert abs(numeric.imag) <= 1e-8 * abs(numeric)


def test_vegas_backend():
    value = integrate_simplex(lambda x: x, [lambda: (0.0, 1.0)], method="vegas")
    assert np.isclose(value, 0.5, rtol=1e-2)


def test_failed_build_leaves_nothing(tmp_path):
    lib = Library("broken", tmp_path)
    lib.add_function("f", sp.Function("f")(a))
    with pytest.raises(ValueError):
        lib.build()
    assert not (tmp_path / "broken").exists()
