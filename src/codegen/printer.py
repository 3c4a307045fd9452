"""NumPy printer for generated libraries."""

from __future__ import annotations

from sympy.printing.numpy import NumPyPrinter


class LibraryPrinter(NumPyPrinter):
    """
    NumPyPrinter with the Feynman prescription on logarithms.

    log(x) is printed as `_log_minus_i0(x)`, i.e. log(x - i0), so that a
    negative Delta picks the physical branch.  Anything NumPy cannot evaluate
    is an error rather than a comment in the generated source.
    """

    def _print_log(self, expr):
        return f"_log_minus_i0({self._print(expr.args[0])})"

    def _print_conjugate(self, expr):
        return f"{self._module_format('numpy.conjugate')}({self._print(expr.args[0])})"

    def _print_not_supported(self, expr):
        raise ValueError(f"Cannot generate code for {expr}")


def print_expression(expr) -> str:
    """Python source for `expr`; raises ValueError for unsupported functions."""
    printer = LibraryPrinter({"fully_qualified_modules": True})
    try:
        return printer.doprint(expr)
    except NotImplementedError as exc:
        raise ValueError(f"Cannot generate code for {expr}: {exc}") from exc


__all__ = ["LibraryPrinter", "print_expression"]
