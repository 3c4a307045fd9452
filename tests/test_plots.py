"""Diagram drawings render without a display."""

import matplotlib

matplotlib.use("Agg")

from amplitudes import Order, compute_amplitude, incoming, outgoing  # noqa: E402
from plots.diagrams import plot_diagrams, plot_feynman_rules  # noqa: E402


def test_plot_tree_and_rules(qed, tmp_path):
    amplitude = compute_amplitude(qed, Order.TREE, [incoming("mu"), outgoing("mu"), outgoing("A")])
    fig = plot_diagrams(amplitude, save_path=tmp_path / "tree.png")
    assert (tmp_path / "tree.png").exists()
    assert len(fig.axes) == 1
    plot_feynman_rules(qed, save_path=tmp_path / "rules.png")
    assert (tmp_path / "rules.png").exists()


def test_plot_loop_diagram(self_energy, tmp_path):
    plot_diagrams(self_energy, save_path=tmp_path / "loop.png")
    assert (tmp_path / "loop.png").exists()
