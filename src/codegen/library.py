"""
Generation of numerical Python libraries from symbolic expressions.

    lib = Library("demolib", "libs")
    lib.clean_existing_sources()
    lib.add_function("mu_magnetic_vertex", coefficient, context)
    lib.build()
    demolib = lib.load()
    demolib.mu_magnetic_vertex(e=0.3, m_mu=0.105, mu_R=1.0)

Each function takes its free symbols as keyword-only arguments (`Delta_UV`
defaults to 0, i.e. MS-bar).  Feynman-parameter integrals become module-level
integrand functions evaluated by `codegen.backends`.
"""

from __future__ import annotations

import importlib.util
import keyword
import logging
import py_compile
import shutil
from pathlib import Path

import sympy as sp

from loops import DELTA_UV, Abbreviation, expand_abbreviations

from .printer import print_expression

logger = logging.getLogger(__name__)

MARKER = ".generated"
METHODS = ("nquad", "qmc", "vegas")

_HEADER = '''"""Generated numerical library `{name}`; regenerate instead of editing."""

import numpy

from codegen import backends as _backends

METHOD = {method!r}
_log_minus_i0 = _backends.{log}
'''


def _check_identifier(name: str, what: str):
    if not name.isidentifier() or keyword.iskeyword(name):
        raise ValueError(f"{what} {name!r} is not a valid Python identifier")


class Library:
    def __init__(self, name: str, path=".", *, method: str = "nquad", jit: bool = False):
        _check_identifier(name, "Library name")
        if method not in METHODS:
            raise ValueError(f"Unknown integration method {method!r}; expected one of {METHODS}")
        self.name = name
        self.directory = Path(path) / name
        self.method = method
        self.jit = jit
        self._functions = {}

    @property
    def source_file(self) -> Path:
        return self.directory / "__init__.py"

    def clean_existing_sources(self):
        """Remove a previously generated library; never touches other directories."""
        if not self.directory.exists():
            return
        if not (self.directory / MARKER).exists():
            raise ValueError(f"Refusing to delete {self.directory}: it was not generated by Library")
        shutil.rmtree(self.directory)
        logger.info("Removed previous sources of %s", self.directory)

    def add_function(self, name: str, expr, context=None):
        _check_identifier(name, "Function name")
        if name in self._functions:
            raise ValueError(f"Function {name!r} already added to library {self.name!r}")
        expr = sp.sympify(expr) if context is None else expand_abbreviations(expr, context)
        left = sorted(str(s) for s in expr.free_symbols if isinstance(s, Abbreviation))
        if left:
            raise ValueError(f"Expression for {name!r} still contains abbreviations {left}")
        self._functions[name] = expr

    @property
    def functions(self):
        return tuple(self._functions)

    # -- source generation ------------------------------------------------

    def _function_source(self, name, expr, counter):
        integrals = sorted(expr.atoms(sp.Integral), key=sp.default_sort_key)
        params = sorted(expr.free_symbols, key=lambda s: s.name)
        names = [s.name for s in params]
        for n in names:
            _check_identifier(n, "Symbol name")

        packed = "(" + ", ".join(names) + ("," if names else "") + ")"
        blocks, body = [], []
        placeholders = {}
        for integral in integrals:
            counter[0] += 1
            k = counter[0]
            variables = [lim[0] for lim in integral.limits]
            args = ", ".join([v.name for v in variables] + names)
            integrand = print_expression(integral.function)
            block = [f"def _integrand_{k}({args}):", f"    return {integrand}", ""]
            if self.jit:
                block += [f"_integrand_{k} = _backends.jit(_integrand_{k})", ""]
            bounds = []
            for j, (_, lo, hi) in enumerate(integral.limits):
                outer = ", ".join([v.name for v in variables[j + 1:]] + names)
                bounds.append(f"    lambda {outer}: ({print_expression(lo)}, {print_expression(hi)}),")
            block += [f"_BOUNDS_{k} = ("] + bounds + [")", ""]
            blocks.append("\n".join(block))

            placeholder = sp.Symbol(f"_i{k}")
            placeholders[integral] = placeholder
            body.append(
                f"    {placeholder} = _backends.integrate_simplex("
                f"_integrand_{k}, _BOUNDS_{k}, {packed}, method=METHOD)"
            )

        signature = ", ".join(f"{n}=0.0" if n == DELTA_UV.name else n for n in names)
        head = f"def {name}(*, {signature}):" if names else f"def {name}():"
        value = print_expression(expr.xreplace(placeholders))
        lines = [head, f'    """Generated from a symbolic expression in {", ".join(names) or "no symbols"}."""']
        lines += body + [f"    return {value}", ""]
        return "\n\n".join(blocks + ["\n".join(lines)])

    def source(self) -> str:
        log = "log_minus_i0_jit" if self.jit else "log_minus_i0"
        parts = [_HEADER.format(name=self.name, method=self.method, log=log)]
        counter = [0]
        for name, expr in self._functions.items():
            parts.append(self._function_source(name, expr, counter))
        parts.append(f"__all__ = {list(self._functions)!r}\n")
        return "\n\n".join(parts)

    def build(self) -> Path:
        """Write and byte-compile the library package."""
        # Nothing touches the disk until the whole source has been generated
        source = self.source()
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / MARKER).write_text("generated\n")
        self.source_file.write_text(source)
        py_compile.compile(str(self.source_file), doraise=True)
        logger.info("Built library %s with %d function(s)", self.directory, len(self._functions))
        return self.directory

    def load(self):
        """Import the built library as a module."""
        if not self.source_file.exists():
            raise ValueError(f"Library {self.name!r} has not been built")
        spec = importlib.util.spec_from_file_location(
            self.name, self.source_file, submodule_search_locations=[str(self.directory)]
        )
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module


__all__ = ["Library", "MARKER", "METHODS"]
