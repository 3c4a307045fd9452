"""
Numerical library generation.

This package lives inside `src/`, which is added to `sys.path` by `main.py`
and tests, so it is importable as a top-level module:

    from codegen import Library
"""

from __future__ import annotations

from .backends import integrate_simplex, log_minus_i0
from .library import Library
from .printer import LibraryPrinter, print_expression

__all__ = ["Library", "LibraryPrinter", "integrate_simplex", "log_minus_i0", "print_expression"]
