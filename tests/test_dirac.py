"""
Dirac-algebra identities.

Scalar products are kept symbolic: dot(a, b) returns the symbol "a.b" with
the names sorted, so every result can be compared exactly.
"""

import pytest
import sympy as sp

from dirac import (
    DIM,
    DiracExpr,
    Gamma,
    Gamma5,
    Momentum,
    SpinorEnd,
    contract_indices,
    dirac_bar,
    move_gamma5_right,
    normal_order,
    trace,
)

m = sp.Symbol("m", positive=True)
p = Momentum.named("p")
q = Momentum.named("q")


def dot(a, b):
    return sp.Symbol(".".join(sorted((a, b))))


def test_momentum_arithmetic():
    """Linear combinations cancel exactly and substitute by name."""
    assert (p + q - p) == q
    assert (p - p).is_zero()
    x = sp.Symbol("x")
    shifted = (p * x + q).subs("p", q)
    assert shifted == q * (x + 1)


def test_gamma_trace_contraction():
    """gamma^a gamma_a = d."""
    expr = DiracExpr.gamma("a") * DiracExpr.gamma("a")
    assert contract_indices(expr, dot) == DiracExpr.scalar(DIM)


def test_sandwich_slash():
    """gamma^a pslash gamma_a = (2 - d) pslash."""
    expr = DiracExpr.gamma("a") * DiracExpr.slash(p) * DiracExpr.gamma("a")
    assert contract_indices(expr, dot) == (2 - DIM) * DiracExpr.slash(p)


def test_gamma5_anticommutes():
    sign, chain = move_gamma5_right((Gamma5(), Gamma("mu")))
    assert sign == -1
    assert chain == (Gamma("mu"), Gamma5())
    # gamma5 gamma5 = 1
    sign, chain = move_gamma5_right((Gamma5(), Gamma("mu"), Gamma5()))
    assert sign == -1
    assert chain == (Gamma("mu"),)


def test_sums_drop_zero_terms():
    g = DiracExpr.gamma("mu")
    assert g + g == 2 * g
    assert (g - g).is_zero()


def test_normal_order_anticommutes():
    """pslash gamma^mu = 2 p^mu - gamma^mu pslash."""
    expr = DiracExpr.slash(p) * DiracExpr.gamma("mu")
    expected = 2 * DiracExpr.vector(p, "mu") - DiracExpr.gamma("mu") * DiracExpr.slash(p)
    assert normal_order(expr, dot) == expected


def test_normal_order_squares_slashes():
    expr = DiracExpr.slash(p) * DiracExpr.slash(p)
    assert normal_order(expr, dot) == DiracExpr.scalar(dot("p", "p"))


def test_dirac_equation_at_both_ends():
    """pslash u(p) = m u(p) and ubar(p) pslash = m ubar(p)."""
    end = SpinorEnd("p", m)
    assert normal_order(DiracExpr.slash(p), dot, right=end) == DiracExpr.scalar(m)
    assert normal_order(DiracExpr.slash(p), dot, left=end) == DiracExpr.scalar(m)
    # Through gamma5 the mass flips sign on the right.
    expr = DiracExpr.slash(p) * DiracExpr.gamma5()
    assert normal_order(expr, dot, right=end) == -m * DiracExpr.gamma5()


def test_trace_two_gammas():
    """Tr(gamma^mu gamma^nu) = 4 g^{mu nu}."""
    expr = DiracExpr.gamma("mu") * DiracExpr.gamma("nu")
    assert trace(expr, dot) == 4 * DiracExpr.metric("mu", "nu")


def test_trace_slashes():
    expr = DiracExpr.slash(p) * DiracExpr.slash(q)
    assert trace(expr, dot) == DiracExpr.scalar(4 * dot("p", "q"))


def test_trace_contracted_four_dimensions():
    """Tr(gamma^mu gamma^nu gamma_mu gamma_nu) = -32 in four dimensions."""
    expr = DiracExpr.chain(Gamma("mu"), Gamma("nu"), Gamma("mu"), Gamma("nu"))
    assert trace(expr, dot, dim=4) == DiracExpr.scalar(-32)


def test_trace_gamma5():
    """Tr(gamma5 gamma^mu gamma^nu) = 0; longer gamma5 traces are rejected."""
    short = DiracExpr.chain(Gamma5(), Gamma("mu"), Gamma("nu"))
    assert trace(short, dot).is_zero()
    long = DiracExpr.chain(Gamma("a"), Gamma("b"), Gamma("c"), Gamma("e"), Gamma5())
    with pytest.raises(NotImplementedError):
        trace(long, dot)


def test_dirac_bar():
    """Reversed chain, conjugated coefficient and a sign per gamma5."""
    expr = sp.I * DiracExpr.gamma("mu") * DiracExpr.gamma5()
    expected = sp.I * DiracExpr.chain(Gamma5(), Gamma("mu"))
    assert dirac_bar(expr) == expected


def test_repeated_index_three_times_rejected():
    expr = DiracExpr.chain(Gamma("a"), Gamma("a"), Gamma("a"))
    with pytest.raises(ValueError):
        contract_indices(expr, dot)
