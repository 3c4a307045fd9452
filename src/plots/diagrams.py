import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path


def _draw_line(ax, start, end, kind, label=None):
    """Straight fermion line with an arrow, or a wavy photon line."""
    start, end = np.asarray(start, float), np.asarray(end, float)
    if kind == "vector":
        t = np.linspace(0, 1, 200)
        direction = end - start
        normal = np.array([-direction[1], direction[0]]) / (np.linalg.norm(direction) + 1e-12)
        points = start + np.outer(t, direction) + 0.04 * np.outer(np.sin(t * 10 * np.pi), normal)
        ax.plot(points[:, 0], points[:, 1], color="tab:blue", lw=1.5)
    else:
        ax.plot([start[0], end[0]], [start[1], end[1]], color="black", lw=1.5)
        if kind in ("forward", "backward"):
            a, b = (start, end) if kind == "forward" else (end, start)
            mid = 0.5 * (a + b)
            ax.annotate("", xy=mid + 0.05 * (b - a), xytext=mid - 0.05 * (b - a),
                        arrowprops=dict(arrowstyle="-|>", color="black"))
    if label:
        mid = 0.5 * (start + end)
        ax.text(mid[0], mid[1] + 0.08, label, ha="center", fontsize=10)


def _leg_kind(leg, particle):
    if not particle.is_fermion:
        return "vector"
    # Arrow into the diagram for incoming particles and outgoing antiparticles.
    return "forward" if leg.incoming != leg.antiparticle else "backward"


def draw_diagram(diagram, legs, particles, ax=None, title=None):
    """
    Draw a tree vertex or one-loop ring.

    External leg i sits outside vertex i of the ring; internal edges are
    drawn between consecutive vertices with their fermion flow.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(4, 4))
    n = diagram.size
    angles = 2 * np.pi * np.arange(n) / n + np.pi
    radius = 0.5 if diagram.edges else 0.0
    vertices = radius * np.stack([np.cos(angles), np.sin(angles)], axis=1)

    for i, leg_index in enumerate(diagram.ordering):
        outer = vertices[i] + 1.2 * np.array([np.cos(angles[i]), np.sin(angles[i])])
        leg, particle = legs[leg_index], particles[leg_index]
        kind = _leg_kind(leg, particle)
        _draw_line(ax, outer, vertices[i], kind, label=f"{particle.latex or particle.name} ({leg_index + 1})")

    for e, edge in enumerate(diagram.edges):
        start, end = vertices[e], vertices[(e + 1) % n]
        kind = {1: "forward", -1: "backward", 0: "vector"}[edge.flow]
        if n == 2:
            # two edges between the same vertices: bend them apart
            bend = np.array([0.0, 0.25 if e == 0 else -0.25])
            _draw_line(ax, start, 0.5 * (start + end) + bend, kind)
            _draw_line(ax, 0.5 * (start + end) + bend, end, kind)
        else:
            _draw_line(ax, start, end, kind)

    ax.scatter(vertices[:, 0], vertices[:, 1], color="black", s=20, zorder=3)
    ax.set_aspect("equal")
    ax.set_axis_off()
    if title:
        ax.set_title(title, fontsize=12)
    return ax


def plot_diagrams(amplitude, save_path=None, ncols=3):
    """Draw every diagram of an amplitude on one figure."""
    diagrams = amplitude.diagrams
    nrows = int(np.ceil(len(diagrams) / ncols))
    fig, axes = plt.subplots(nrows, min(ncols, len(diagrams)), figsize=(4 * min(ncols, len(diagrams)), 4 * nrows),
                             squeeze=False)
    particles = amplitude.kinematics.particles
    for ax in axes.flat:
        ax.set_axis_off()
    for k, (diagram, ax) in enumerate(zip(diagrams, axes.flat)):
        draw_diagram(diagram, amplitude.legs, particles, ax=ax, title=f"Diagram {k + 1}")
    plt.tight_layout()
    if save_path is not None:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150)
    return fig


def plot_feynman_rules(model, save_path=None):
    """One panel per vertex of the model, labelled with its coupling."""
    from amplitudes import Diagram, Order, incoming, outgoing
    from model import FLOW_IN

    rules = model.feynman_rules()
    fig, axes = plt.subplots(1, max(len(rules), 1), figsize=(4 * max(len(rules), 1), 4), squeeze=False)
    for rule, ax in zip(rules, axes.flat):
        legs = [incoming(f.particle) if f.flow == FLOW_IN else outgoing(f.particle) for f in rule.fields]
        particles = [model.particle(f.particle) for f in rule.fields]
        diagram = Diagram(Order.TREE, tuple(range(len(legs))))
        draw_diagram(diagram, legs, particles, ax=ax, title=f"$i({rule.coupling})\\gamma^\\mu$")
    plt.tight_layout()
    if save_path is not None:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150)
    return fig
