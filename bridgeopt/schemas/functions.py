# bridgeopt/schemas/functions.py
"""
Function shapes understood by the bridging layer.

All shapes are immutable. Bridges never mutate a function in place; they build
a new one (see `bridgeopt.utils.function_ops`).

Quadratic convention: a diagonal term `c * x * x` contributes `c / 2 * x^2`,
an off-diagonal term `c * x * y` contributes `c * x * y`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Tuple, Union


@dataclass(frozen=True, order=True)
class VariableIndex:
    """Opaque variable identifier. Also acts as the single-variable function."""

    value: int

    def __repr__(self) -> str:
        return f"VariableIndex({self.value})"


@dataclass(frozen=True)
class ScalarAffineTerm:
    coefficient: Real
    variable: VariableIndex


@dataclass(frozen=True)
class ScalarAffineFunction:
    terms: Tuple[ScalarAffineTerm, ...] = field(default_factory=tuple)
    constant: Real = 0.0

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the function stays hashable.
        object.__setattr__(self, "terms", tuple(self.terms))


@dataclass(frozen=True)
class ScalarQuadraticTerm:
    coefficient: Real
    variable_1: VariableIndex
    variable_2: VariableIndex


@dataclass(frozen=True)
class ScalarQuadraticFunction:
    quadratic_terms: Tuple[ScalarQuadraticTerm, ...] = field(default_factory=tuple)
    affine_terms: Tuple[ScalarAffineTerm, ...] = field(default_factory=tuple)
    constant: Real = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "quadratic_terms", tuple(self.quadratic_terms))
        object.__setattr__(self, "affine_terms", tuple(self.affine_terms))


ScalarFunction = Union[VariableIndex, ScalarAffineFunction, ScalarQuadraticFunction]

SCALAR_FUNCTION_TYPES = (VariableIndex, ScalarAffineFunction, ScalarQuadraticFunction)


@dataclass(frozen=True)
class ScalarCoefficientChange:
    """Set the (affine) coefficient of `variable` to `new_coefficient`."""

    variable: VariableIndex
    new_coefficient: Real


@dataclass(frozen=True)
class ScalarConstantChange:
    new_constant: Real


FunctionChange = Union[ScalarCoefficientChange, ScalarConstantChange]


__all__ = [
    "VariableIndex",
    "ScalarAffineTerm",
    "ScalarAffineFunction",
    "ScalarQuadraticTerm",
    "ScalarQuadraticFunction",
    "ScalarFunction",
    "SCALAR_FUNCTION_TYPES",
    "ScalarCoefficientChange",
    "ScalarConstantChange",
    "FunctionChange",
]
