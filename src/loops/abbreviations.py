"""
Abbreviation table: named stand-ins for previously derived subexpressions.

The table is an explicit context object passed through the pipeline.  It is
append-only and content-addressed, so registering the same definition twice
returns the same symbol and repeated runs produce identical names.
"""

from __future__ import annotations

import logging
from collections import Counter

import sympy as sp

logger = logging.getLogger(__name__)


class Abbreviation(sp.Symbol):
    """Symbol standing for an entry of an `AbbreviationTable`."""


class AbbreviationTable:
    """Append-only mapping from abbreviation symbols to their definitions."""

    def __init__(self):
        self._definitions = {}
        self._by_content = {}
        self._counters = Counter()

    def register(self, prefix: str, definition) -> Abbreviation:
        """Return the symbol for `definition`, creating `{prefix}_{n}` if it is new."""
        definition = sp.sympify(definition)
        key = (prefix, definition)
        if key in self._by_content:
            return self._by_content[key]

        unknown = [
            s for s in definition.free_symbols
            if isinstance(s, Abbreviation) and s not in self._definitions
        ]
        if unknown:
            raise ValueError(f"Definition refers to unregistered abbreviations: {sorted(map(str, unknown))}")

        self._counters[prefix] += 1
        symbol = Abbreviation(f"{prefix}_{self._counters[prefix]}")
        self._definitions[symbol] = definition
        self._by_content[key] = symbol
        logger.debug("Registered %s := %s", symbol, definition)
        return symbol

    def definition(self, symbol):
        try:
            return self._definitions[symbol]
        except KeyError:
            raise KeyError(f"Unknown abbreviation {symbol}") from None

    def symbols(self, prefix: str | None = None):
        if prefix is None:
            return list(self._definitions)
        return [s for s in self._definitions if s.name.rsplit("_", 1)[0] == prefix]

    def items(self):
        return list(self._definitions.items())

    def __contains__(self, symbol):
        return symbol in self._definitions

    def __len__(self):
        return len(self._definitions)

    def __repr__(self):
        return f"AbbreviationTable({len(self)} entries)"


def abbreviations_in(expr, table: AbbreviationTable):
    return {s for s in expr.free_symbols if isinstance(s, Abbreviation) and s in table}


def expand_abbreviations(expr, table: AbbreviationTable):
    """
    Substitute abbreviations by their definitions, recursively, until none remain.

    Accepts a sympy expression or anything with `map_coefficients` (DiracExpr).
    Applying it twice is the same as applying it once.
    """
    if hasattr(expr, "map_coefficients"):
        return expr.map_coefficients(lambda c: expand_abbreviations(c, table))

    expr = sp.sympify(expr)
    # Definitions only refer to earlier entries, so len(table) rounds suffice.
    for _ in range(len(table) + 1):
        present = abbreviations_in(expr, table)
        if not present:
            return expr
        expr = expr.xreplace({s: table.definition(s) for s in present})
    unknown = sorted(str(s) for s in expr.free_symbols if isinstance(s, Abbreviation))
    raise ValueError(f"Abbreviations left after expansion: {unknown}")


__all__ = [
    "Abbreviation",
    "AbbreviationTable",
    "abbreviations_in",
    "expand_abbreviations",
]
