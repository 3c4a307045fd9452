"""Console rendering."""

import sympy as sp

from amplitudes import Order, compute_amplitude, incoming, outgoing
from display import display, render_abbreviations, render_expression, render_feynman_rules, render_wilson_set
from wilson import get_wilson_coefficients


def test_render_rules(qed):
    text = render_feynman_rules(qed)
    assert text.splitlines()[0] == "Feynman rules of QED (1):"
    assert "mubar mu A" in text


def test_render_wilson_set_and_abbreviations(self_energy, self_energy_wilsons):
    text = render_wilson_set(self_energy_wilsons)
    assert text.startswith("Wilson coefficients (2):")
    assert "C[mass[S]]" in text
    table = render_abbreviations(self_energy.context, "I")
    assert "I_1 :=" in table


def test_render_expression_latex():
    x = sp.Symbol("x")
    assert render_expression(x**2, latex=True) == "x^{2}"
    assert render_expression(x**2) == "x**2"


def test_display_dispatches(qed, capsys):
    amplitude = compute_amplitude(qed, Order.TREE, [incoming("mu"), outgoing("mu"), outgoing("A")])
    display(amplitude)
    display(get_wilson_coefficients(amplitude))
    out = capsys.readouterr().out
    assert "1 diagram(s):" in out
    assert "C[vector[S]]" in out
