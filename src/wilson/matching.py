"""
Matching of amplitudes onto an operator basis.

Amplitude and operator structures are brought to the same normal form
(on-shell Dirac equation, anticommutation ordering, d-dimensional
contractions) and the linear system T c = a is solved exactly.  Each
coefficient is then cleaned up: its Feynman-parameter integrals over the
same simplex are merged into one abbreviation and coefficients that vanish
identically are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import sympy as sp

from dirac import DiracExpr, normal_order
from errors import OperatorNotFoundError, ProcessError
from loops import AbbreviationTable, integrand_vanishes

from .operators import DiracCoupling, Operator, fermion_vector_basis, operator_basis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WilsonCoefficient:
    operator: Operator
    coefficient: sp.Expr

    def __str__(self):
        return f"C[{self.operator}] = {self.coefficient}"


@dataclass(frozen=True)
class WilsonSet:
    """
    Non-zero Wilson coefficients of an amplitude, in operator-basis order.

    Indexing and iteration go over the coefficients; `basis` keeps the full
    operator basis the amplitude was matched onto.
    """

    coefficients: tuple
    legs: tuple
    order: int
    kinematics: object = field(repr=False)
    context: AbbreviationTable = field(repr=False)
    basis: tuple = ()
    ends: tuple = (None, None)

    def __iter__(self):
        return iter(self.coefficients)

    def __len__(self):
        return len(self.coefficients)

    def __getitem__(self, i):
        return self.coefficients[i]

    @property
    def operators(self):
        return tuple(w.operator for w in self.coefficients)

    def __str__(self):
        lines = [f"Wilson coefficients ({len(self)}):"]
        lines += [f"  {w}" for w in self.coefficients]
        return "\n".join(lines)


# -- integrals inside coefficients --------------------------------------


def _integral_symbols(expr, context):
    return sorted(
        (s for s in expr.free_symbols if s in context and isinstance(context.definition(s), sp.Integral)),
        key=lambda s: sp.default_sort_key(s),
    )


def _integration_variables(limits):
    return tuple(lim[0] for lim in limits)


def merge_integrals(coefficient, context: AbbreviationTable):
    """
    Combine the abbreviated integrals of `coefficient` that share limits.

    The coefficient is linear in the integrals; every group sum_k r_k I_k is
    replaced by prefactor * I_new with I_new the integral of the cancelled
    combined integrand.  Groups that cancel at integrand level disappear.
    """
    expr = sp.expand(coefficient)
    symbols = _integral_symbols(expr, context)
    rest = expr.xreplace({s: 0 for s in symbols})

    groups = {}
    for s in symbols:
        integral = context.definition(s)
        groups.setdefault(integral.limits, []).append((expr.coeff(s), integral.function))

    merged = sp.cancel(rest)
    for limits in sorted(groups, key=sp.default_sort_key):
        integrand = sp.cancel(sp.Add(*(r * f for r, f in groups[limits])))
        if integrand_vanishes(integrand):
            continue
        dependent = _integration_variables(limits) + tuple(
            s for s in integrand.free_symbols if s in context
        )
        prefactor, body = sp.factor_terms(integrand).as_independent(*dependent, as_Add=False)
        merged += prefactor * context.register("I", sp.Integral(body, *limits))
    return merged


def _vanishing_coefficient(coefficient, context) -> bool:
    if coefficient == 0:
        return True
    if _integral_symbols(coefficient, context):
        return False
    return sp.cancel(coefficient) == 0


def _independent(templates):
    """Indices of templates that are not linear combinations of earlier ones."""
    keys = sorted({k for t in templates for k in t.keys()}, key=str)
    kept, rows = [], []
    for j, template in enumerate(templates):
        if template.is_zero():
            continue
        column = [template.coefficient(*k) for k in keys]
        trial = sp.Matrix([row for row in rows] + [column])
        if trial.rank() > len(rows):
            kept.append(j)
            rows.append(column)
    return kept


def get_wilson_coefficients(amplitude) -> WilsonSet:
    """Match a computed amplitude onto the operator basis of its external legs."""
    kin = amplitude.kinematics
    left, right = amplitude.ends
    context = amplitude.context
    basis = operator_basis(kin, amplitude.indices)

    target = normal_order(amplitude.expr, kin.dot, left=left, right=right)
    templates = [normal_order(op.structure, kin.dot, left=left, right=right) for op in basis]
    kept = _independent(templates)

    keys = sorted({k for t in templates for k in t.keys()} | set(target.keys()), key=str)
    unknowns = sp.symbols(f"c0:{len(kept)}")
    matrix = sp.Matrix([[templates[j].coefficient(*k) for j in kept] for k in keys])
    rhs = sp.Matrix([target.coefficient(*k) for k in keys])
    solutions = sp.linsolve((matrix, rhs), *unknowns)
    if solutions == sp.S.EmptySet:
        raise ProcessError("Amplitude is not spanned by the operator basis of its external legs")
    (solution,) = solutions

    coefficients = []
    for j, value in zip(kept, solution):
        value = merge_integrals(value, context)
        if _vanishing_coefficient(value, context):
            logger.debug("Operator %s has a vanishing coefficient", basis[j])
            continue
        coefficients.append(WilsonCoefficient(basis[j], value))
    logger.info("Matched %d non-zero Wilson coefficient(s) out of %d operators", len(coefficients), len(basis))
    return WilsonSet(
        tuple(coefficients),
        amplitude.legs,
        amplitude.order,
        kin,
        context,
        tuple(basis),
        (left, right),
    )


def compute_wilson_coefficients(model, order, legs, context: AbbreviationTable | None = None, **kwargs) -> WilsonSet:
    """Compute the amplitude of `legs` at `order` and match it."""
    from amplitudes import compute_amplitude

    amplitude = compute_amplitude(model, order, legs, context=context, **kwargs)
    return get_wilson_coefficients(amplitude)


# -- lookup ---------------------------------------------------------------


def match_operator(wilson_set: WilsonSet, operator: Operator) -> WilsonCoefficient:
    """
    Coefficient of `operator` in `wilson_set`.

    Structures are compared after normal ordering, so equivalent spellings of
    the same operator match.  Raises OperatorNotFoundError if absent.
    """
    left, right = wilson_set.ends
    dot = wilson_set.kinematics.dot
    wanted = normal_order(operator.structure, dot, left=left, right=right)
    for entry in wilson_set.coefficients:
        if entry.operator.coupling != operator.coupling:
            continue
        if normal_order(entry.operator.structure, dot, left=left, right=right) == wanted:
            return entry
    raise OperatorNotFoundError(operator, wilson_set.operators)


def get_wilson_coefficient(wilson_set: WilsonSet, operator: Operator):
    return match_operator(wilson_set, operator).coefficient


def magnetic_operator(model, wilson_set: WilsonSet, coupling=DiracCoupling.S) -> Operator:
    """Magnetic operator i sigma^{mu nu} q_nu (gamma5 for P) in the labels of `wilson_set`."""
    kin = wilson_set.kinematics
    coupling = DiracCoupling(coupling)
    vectors = [p for p in kin.particles if not p.is_fermion]
    if len(vectors) != 1 or len(kin.particles) != 3:
        raise ProcessError("The magnetic operator needs a fermion line and one gauge boson")
    bosons = {g.boson for g in model.gauge_groups}
    if vectors[0].name not in bosons:
        raise ProcessError(f"{vectors[0].name!r} is not a gauge boson of model {model.name!r}")
    from amplitudes import external_indices

    (index,) = external_indices(kin).values()
    return next(
        op for op in fermion_vector_basis(kin, index)
        if op.name == "magnetic" and op.coupling == coupling
    )


# -- round trip -----------------------------------------------------------


def reconstruct(wilson_set: WilsonSet) -> DiracExpr:
    """sum_j C_j * O_j, normal ordered like the amplitude."""
    left, right = wilson_set.ends
    dot = wilson_set.kinematics.dot
    terms = [w.coefficient * w.operator.structure for w in wilson_set.coefficients]
    return normal_order(DiracExpr.sum(terms), dot, left=left, right=right)


def _expand_integrals(expr, context):
    symbols = _integral_symbols(expr, context)
    return sp.sympify(expr).xreplace({s: context.definition(s) for s in symbols})


def _combined_vanishes(expr, context) -> bool:
    expr = _expand_integrals(expr, context)
    integrals = sorted(expr.atoms(sp.Integral), key=sp.default_sort_key)
    dummies = {integral: sp.Dummy() for integral in integrals}
    flat = sp.expand(expr.xreplace(dummies))
    groups = {}
    for integral, dummy in dummies.items():
        groups.setdefault(integral.limits, []).append(flat.coeff(dummy) * integral.function)
    rest = flat.xreplace({d: 0 for d in dummies.values()})
    if sp.cancel(rest) != 0:
        return False
    return all(integrand_vanishes(sp.Add(*parts)) for parts in groups.values())


def vanishes(expr: DiracExpr, context: AbbreviationTable) -> bool:
    """True if every coefficient of `expr` is zero once its integrals are combined."""
    return all(_combined_vanishes(coeff, context) for _, coeff in expr.items())


def round_trip_holds(amplitude, wilson_set: WilsonSet) -> bool:
    kin = amplitude.kinematics
    left, right = amplitude.ends
    target = normal_order(amplitude.expr, kin.dot, left=left, right=right)
    return vanishes(target - reconstruct(wilson_set), amplitude.context)


__all__ = [
    "WilsonCoefficient",
    "WilsonSet",
    "merge_integrals",
    "get_wilson_coefficients",
    "compute_wilson_coefficients",
    "match_operator",
    "get_wilson_coefficient",
    "magnetic_operator",
    "reconstruct",
    "vanishes",
    "round_trip_holds",
]
