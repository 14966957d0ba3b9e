# bridgeopt/utils/function_ops.py
"""
Pure algebra on scalar functions.

Zero I/O and no model access except `normalize_and_add_constraint`, which only
calls `model.add_constraint`. Every helper returns a new function.
"""
from __future__ import annotations

import math
from collections import OrderedDict
from numbers import Real
from typing import Callable, Dict, List, Tuple, Type

from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarAffineTerm,
    ScalarCoefficientChange,
    ScalarConstantChange,
    ScalarFunction,
    ScalarQuadraticFunction,
    ScalarQuadraticTerm,
    VariableIndex,
)
from bridgeopt.schemas.sets import ScalarSet, shift_set


def to_affine(f: ScalarFunction) -> ScalarAffineFunction:
    """Convert `f` to an affine function; quadratic functions must have no quadratic terms."""
    if isinstance(f, ScalarAffineFunction):
        return f
    if isinstance(f, VariableIndex):
        return ScalarAffineFunction((ScalarAffineTerm(1.0, f),), 0.0)
    if isinstance(f, ScalarQuadraticFunction):
        if any(t.coefficient != 0 for t in f.quadratic_terms):
            raise ValueError("Cannot convert a quadratic function with quadratic terms to affine")
        return ScalarAffineFunction(f.affine_terms, f.constant)
    raise TypeError(f"Unsupported function type: {type(f).__name__}")


def to_quadratic(f: ScalarFunction) -> ScalarQuadraticFunction:
    if isinstance(f, ScalarQuadraticFunction):
        return f
    a = to_affine(f)
    return ScalarQuadraticFunction((), a.terms, a.constant)


def constant(f: ScalarFunction) -> Real:
    if isinstance(f, VariableIndex):
        return 0.0
    return f.constant


def affine_terms(f: ScalarFunction) -> Tuple[ScalarAffineTerm, ...]:
    if isinstance(f, ScalarQuadraticFunction):
        return f.affine_terms
    return to_affine(f).terms


def variables(f: ScalarFunction) -> List[VariableIndex]:
    """Variables of `f` in first-appearance order, without duplicates."""
    seen: "OrderedDict[VariableIndex, None]" = OrderedDict()
    if isinstance(f, ScalarQuadraticFunction):
        for qt in f.quadratic_terms:
            seen.setdefault(qt.variable_1, None)
            seen.setdefault(qt.variable_2, None)
    for t in affine_terms(f):
        seen.setdefault(t.variable, None)
    return list(seen)


def coefficient_of(f: ScalarFunction, variable: VariableIndex) -> Real:
    """Sum of the affine coefficients of `variable` in `f`."""
    return sum((t.coefficient for t in affine_terms(f) if t.variable == variable), 0.0)


def _merge_affine(terms) -> Tuple[ScalarAffineTerm, ...]:
    acc: Dict[VariableIndex, Real] = {}
    for t in terms:
        acc[t.variable] = acc.get(t.variable, 0) + t.coefficient
    return tuple(ScalarAffineTerm(c, v) for v, c in sorted(acc.items()) if c != 0)


def _merge_quadratic(terms) -> Tuple[ScalarQuadraticTerm, ...]:
    acc: Dict[Tuple[VariableIndex, VariableIndex], Real] = {}
    for t in terms:
        key = (t.variable_1, t.variable_2) if t.variable_1 <= t.variable_2 else (t.variable_2, t.variable_1)
        acc[key] = acc.get(key, 0) + t.coefficient
    return tuple(ScalarQuadraticTerm(c, v1, v2) for (v1, v2), c in sorted(acc.items()) if c != 0)


def canonical(f: ScalarFunction) -> ScalarFunction:
    """Merge duplicate terms, drop zero coefficients and sort by variable."""
    if isinstance(f, VariableIndex):
        return f
    if isinstance(f, ScalarAffineFunction):
        return ScalarAffineFunction(_merge_affine(f.terms), f.constant)
    return ScalarQuadraticFunction(_merge_quadratic(f.quadratic_terms), _merge_affine(f.affine_terms), f.constant)


def scale(f: ScalarFunction, alpha: Real) -> ScalarFunction:
    if isinstance(f, VariableIndex):
        f = to_affine(f)
    if isinstance(f, ScalarAffineFunction):
        return ScalarAffineFunction(
            tuple(ScalarAffineTerm(alpha * t.coefficient, t.variable) for t in f.terms),
            alpha * f.constant,
        )
    return ScalarQuadraticFunction(
        tuple(ScalarQuadraticTerm(alpha * t.coefficient, t.variable_1, t.variable_2) for t in f.quadratic_terms),
        tuple(ScalarAffineTerm(alpha * t.coefficient, t.variable) for t in f.affine_terms),
        alpha * f.constant,
    )


def negate(f: ScalarFunction) -> ScalarFunction:
    return scale(f, -1)


def add_constant(f: ScalarFunction, value: Real) -> ScalarFunction:
    if isinstance(f, VariableIndex):
        f = to_affine(f)
    if isinstance(f, ScalarAffineFunction):
        return ScalarAffineFunction(f.terms, f.constant + value)
    return ScalarQuadraticFunction(f.quadratic_terms, f.affine_terms, f.constant + value)


def subtract_variable(f: ScalarFunction, variable: VariableIndex) -> ScalarFunction:
    """Return `f - variable`, promoted to at least an affine function."""
    term = ScalarAffineTerm(-1.0, variable)
    if isinstance(f, ScalarQuadraticFunction):
        return ScalarQuadraticFunction(f.quadratic_terms, f.affine_terms + (term,), f.constant)
    a = to_affine(f)
    return ScalarAffineFunction(a.terms + (term,), a.constant)


def subtract_result_type(function_type: Type) -> Type:
    """Function type of `F - VariableIndex`."""
    if function_type is ScalarQuadraticFunction:
        return ScalarQuadraticFunction
    return ScalarAffineFunction


def remove_variable(f: ScalarFunction, variable: VariableIndex) -> ScalarFunction:
    """Drop every term involving `variable`."""
    if isinstance(f, VariableIndex):
        if f == variable:
            return ScalarAffineFunction((), 0.0)
        return f
    if isinstance(f, ScalarAffineFunction):
        return ScalarAffineFunction(tuple(t for t in f.terms if t.variable != variable), f.constant)
    return ScalarQuadraticFunction(
        tuple(t for t in f.quadratic_terms if variable not in (t.variable_1, t.variable_2)),
        tuple(t for t in f.affine_terms if t.variable != variable),
        f.constant,
    )


def convert_approx(target_type: Type, f: ScalarFunction) -> ScalarFunction:
    """Convert `f` to `target_type` when it is representable there.

    Raises ValueError otherwise.
    """
    if isinstance(f, target_type):
        return f
    if target_type is ScalarQuadraticFunction:
        return to_quadratic(f)
    if target_type is ScalarAffineFunction:
        return canonical(to_affine(f))
    if target_type is VariableIndex:
        a = canonical(to_affine(f))
        if len(a.terms) == 1 and a.terms[0].coefficient == 1 and a.constant == 0:
            return a.terms[0].variable
        raise ValueError(f"Cannot convert {f!r} to a single variable")
    raise ValueError(f"Cannot convert {type(f).__name__} to {target_type.__name__}")


def evaluate(f: ScalarFunction, value_of: Callable[[VariableIndex], Real]) -> Real:
    """Value of `f` given `value_of(variable)`, with the one-half diagonal convention."""
    if isinstance(f, VariableIndex):
        return value_of(f)
    total = f.constant
    for t in affine_terms(f):
        total += t.coefficient * value_of(t.variable)
    if isinstance(f, ScalarQuadraticFunction):
        for qt in f.quadratic_terms:
            v1 = value_of(qt.variable_1)
            if qt.variable_1 == qt.variable_2:
                total += qt.coefficient * v1 * v1 / 2
            else:
                total += qt.coefficient * v1 * value_of(qt.variable_2)
    return total


def is_approx(f: ScalarFunction, g: ScalarFunction, rtol: float = 1e-8, atol: float = 1e-10) -> bool:
    """Mathematical equivalence of two functions within tolerance."""
    fq, gq = canonical(to_quadratic(f)), canonical(to_quadratic(g))

    def close(a: Real, b: Real) -> bool:
        return math.isclose(float(a), float(b), rel_tol=rtol, abs_tol=atol)

    if not close(fq.constant, gq.constant):
        return False
    fa = {t.variable: t.coefficient for t in fq.affine_terms}
    ga = {t.variable: t.coefficient for t in gq.affine_terms}
    for v in set(fa) | set(ga):
        if not close(fa.get(v, 0.0), ga.get(v, 0.0)):
            return False
    fqd = {(t.variable_1, t.variable_2): t.coefficient for t in fq.quadratic_terms}
    gqd = {(t.variable_1, t.variable_2): t.coefficient for t in gq.quadratic_terms}
    for k in set(fqd) | set(gqd):
        if not close(fqd.get(k, 0.0), gqd.get(k, 0.0)):
            return False
    return True


def modify_function(f: ScalarFunction, change: FunctionChange) -> ScalarFunction:
    """Apply a coefficient or constant change, returning the new function."""
    if isinstance(change, ScalarConstantChange):
        return add_constant(f, change.new_constant - constant(f))
    if isinstance(change, ScalarCoefficientChange):
        kept = tuple(t for t in affine_terms(f) if t.variable != change.variable)
        if change.new_coefficient != 0:
            kept = kept + (ScalarAffineTerm(change.new_coefficient, change.variable),)
        if isinstance(f, ScalarQuadraticFunction):
            return ScalarQuadraticFunction(f.quadratic_terms, kept, f.constant)
        return ScalarAffineFunction(kept, constant(f))
    raise TypeError(f"Unsupported change: {change!r}")


def normalize_constraint(f: ScalarFunction, s: ScalarSet) -> Tuple[ScalarFunction, ScalarSet]:
    """Move the constant of `f` into `s`."""
    c = constant(f)
    if c == 0:
        return f, s
    return add_constant(f, -c), shift_set(s, -c)


def normalize_and_add_constraint(model, f: ScalarFunction, s: ScalarSet):
    nf, ns = normalize_constraint(f, s)
    return model.add_constraint(nf, ns)


__all__ = [
    "to_affine",
    "to_quadratic",
    "constant",
    "affine_terms",
    "variables",
    "coefficient_of",
    "canonical",
    "scale",
    "negate",
    "add_constant",
    "subtract_variable",
    "subtract_result_type",
    "remove_variable",
    "convert_approx",
    "evaluate",
    "is_approx",
    "modify_function",
    "normalize_constraint",
    "normalize_and_add_constraint",
]
