# bridgeopt/schemas/sets.py
"""Set shapes. A constraint is `function in set`."""
from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class LessThan:
    upper: Real


@dataclass(frozen=True)
class GreaterThan:
    lower: Real


@dataclass(frozen=True)
class EqualTo:
    value: Real


@dataclass(frozen=True)
class Interval:
    lower: Real
    upper: Real


@dataclass(frozen=True)
class Parameter:
    """Holds a variable fixed at `value` (a parameter of the problem)."""

    value: Real


@dataclass(frozen=True)
class Integer:
    pass


@dataclass(frozen=True)
class ZeroOne:
    pass


ScalarSet = Union[LessThan, GreaterThan, EqualTo, Interval, Parameter, Integer, ZeroOne]

# Sets with a single right-hand side constant.
SCALAR_LINEAR_SETS = (LessThan, GreaterThan, EqualTo, Interval)


def set_constant(s: ScalarSet) -> Optional[Real]:
    """Return the constant a normalized scalar constraint moved into `s`."""
    if isinstance(s, LessThan):
        return s.upper
    if isinstance(s, GreaterThan):
        return s.lower
    if isinstance(s, (EqualTo, Parameter)):
        return s.value
    return None


def shift_set(s: ScalarSet, delta: Real) -> ScalarSet:
    """Shift every bound of `s` by `delta` (used when moving constants)."""
    if isinstance(s, LessThan):
        return LessThan(s.upper + delta)
    if isinstance(s, GreaterThan):
        return GreaterThan(s.lower + delta)
    if isinstance(s, EqualTo):
        return EqualTo(s.value + delta)
    if isinstance(s, Interval):
        return Interval(s.lower + delta, s.upper + delta)
    if isinstance(s, Parameter):
        return Parameter(s.value + delta)
    return s


def set_numbers(s: ScalarSet) -> Tuple[Real, ...]:
    if isinstance(s, Interval):
        return (s.lower, s.upper)
    c = set_constant(s)
    return () if c is None else (c,)


__all__ = [
    "LessThan",
    "GreaterThan",
    "EqualTo",
    "Interval",
    "Parameter",
    "Integer",
    "ZeroOne",
    "ScalarSet",
    "SCALAR_LINEAR_SETS",
    "set_constant",
    "shift_set",
    "set_numbers",
]
