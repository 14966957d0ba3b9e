# bridgeopt/schemas/indices.py
"""
Constraint indices and construct types.

A `ConstructType` is the immutable key the catalog and the selector work with:
the function shape, the set shape (`None` for objectives) and the numeric type
of the coefficients.
"""
from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Iterable, Iterator, Optional, Tuple, Type

from bridgeopt.schemas.functions import (
    ScalarAffineFunction,
    ScalarFunction,
    ScalarQuadraticFunction,
    VariableIndex,
)
from bridgeopt.schemas.sets import ScalarSet, set_numbers


@dataclass(frozen=True)
class ConstraintIndex:
    function_type: type
    set_type: type
    value: int

    def __repr__(self) -> str:
        return (
            f"ConstraintIndex{{{self.function_type.__name__},{self.set_type.__name__}}}"
            f"({self.value})"
        )


@dataclass(frozen=True)
class ConstructType:
    function_type: type
    set_type: Optional[type] = None
    numeric_type: type = float

    @property
    def is_objective(self) -> bool:
        return self.set_type is None

    @property
    def shape(self) -> Tuple[type, Optional[type]]:
        return (self.function_type, self.set_type)

    def with_shape(self, function_type: type, set_type: Optional[type] = None) -> "ConstructType":
        """Same numeric type, different shape."""
        return ConstructType(function_type, set_type, self.numeric_type)

    def __str__(self) -> str:
        num = self.numeric_type.__name__
        if self.set_type is None:
            return f"{self.function_type.__name__}{{{num}}} objective"
        return f"{self.function_type.__name__}{{{num}}}-in-{self.set_type.__name__}{{{num}}}"


@dataclass(frozen=True)
class Construct:
    """A constraint (`function` in `set`) or an objective (`set is None`)."""

    function: ScalarFunction
    set: Optional[ScalarSet] = None

    @property
    def construct_type(self) -> ConstructType:
        return ConstructType(
            type(self.function),
            None if self.set is None else type(self.set),
            numeric_type_of(self.function, self.set),
        )


def _function_numbers(f: ScalarFunction) -> Iterator[Real]:
    if isinstance(f, ScalarAffineFunction):
        for t in f.terms:
            yield t.coefficient
        yield f.constant
    elif isinstance(f, ScalarQuadraticFunction):
        for qt in f.quadratic_terms:
            yield qt.coefficient
        for t in f.affine_terms:
            yield t.coefficient
        yield f.constant


def _kind(value: Real) -> type:
    if isinstance(value, (bool, int, float)):
        return float
    return type(value)


def numeric_type_of(f: ScalarFunction, s: Optional[ScalarSet] = None) -> type:
    """Numeric type of a construct.

    Ints are promoted to float. A single non-float numeric type (e.g.
    `fractions.Fraction`) is kept. A mix of numeric types yields `object`,
    which no bridge accepts.
    """
    numbers: Iterable[Real] = list(_function_numbers(f))
    if s is not None:
        numbers = list(numbers) + list(set_numbers(s))
    # Zeros are neutral: a default 0.0 constant must not turn a Fraction function into a mix.
    kinds = {_kind(v) for v in numbers if v != 0}
    if not kinds:
        return float
    if len(kinds) == 1:
        return kinds.pop()
    return object


def constraint_type(f: ScalarFunction, s: ScalarSet) -> ConstructType:
    return Construct(f, s).construct_type


def objective_type(f: ScalarFunction) -> ConstructType:
    return Construct(f).construct_type


def type_label(function_type: Type, set_type: Optional[Type] = None) -> str:
    if set_type is None:
        return function_type.__name__
    return f"{function_type.__name__}-in-{set_type.__name__}"


__all__ = [
    "ConstraintIndex",
    "ConstructType",
    "Construct",
    "VariableIndex",
    "numeric_type_of",
    "constraint_type",
    "objective_type",
    "type_label",
]
