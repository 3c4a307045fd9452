"""
Console rendering of models, amplitudes and Wilson coefficients.

Every `render_*` function returns a string; `display` prints whatever it is
given through the matching renderer.
"""

from __future__ import annotations

import sympy as sp

from amplitudes import Amplitude
from loops import AbbreviationTable
from model import Model
from wilson import WilsonSet


def render_model(model: Model) -> str:
    return str(model)


def render_feynman_rules(model: Model) -> str:
    rules = model.feynman_rules()
    lines = [f"Feynman rules of {model.name} ({len(rules)}):"]
    lines += [f"  {rule}" for rule in rules]
    return "\n".join(lines)


def render_amplitude(amplitude: Amplitude) -> str:
    lines = [f"{len(amplitude.diagrams)} diagram(s):"]
    lines += [f"  {d}" for d in amplitude.diagrams]
    lines.append(str(amplitude))
    return "\n".join(lines)


def render_wilson_set(wilson_set: WilsonSet) -> str:
    return str(wilson_set)


def render_abbreviations(context: AbbreviationTable, prefix: str | None = None) -> str:
    symbols = context.symbols(prefix)
    lines = [f"Abbreviations ({len(symbols)}):"]
    lines += [f"  {s} := {context.definition(s)}" for s in symbols]
    return "\n".join(lines)


def render_expression(expr, latex: bool = False) -> str:
    if hasattr(expr, "map_coefficients"):
        return str(expr)
    return sp.latex(expr) if latex else sp.sstr(expr)


_RENDERERS = (
    (Model, render_model),
    (Amplitude, render_amplitude),
    (WilsonSet, render_wilson_set),
    (AbbreviationTable, render_abbreviations),
)


def display(obj, latex: bool = False):
    for kind, renderer in _RENDERERS:
        if isinstance(obj, kind):
            print(renderer(obj))
            return
    print(render_expression(obj, latex=latex))


__all__ = [
    "display",
    "render_abbreviations",
    "render_amplitude",
    "render_expression",
    "render_feynman_rules",
    "render_model",
    "render_wilson_set",
]
