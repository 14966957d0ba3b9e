# bridgeopt/services/bridges/constraint/split_interval.py
"""
Split two-sided rows.

`l <= f(x) <= u` (Interval) and `f(x) == c` (EqualTo) become
`f(x) >= l` and `f(x) <= u`. An infinite bound produces no row.
"""
from __future__ import annotations

import math
from typing import Any, List, Optional, Tuple

from bridgeopt.errors import UnsupportedAttributeError
from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import FunctionChange, ScalarAffineFunction, ScalarFunction, VariableIndex
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import EqualTo, GreaterThan, Interval, LessThan, ScalarSet
from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike, Shape
from bridgeopt.utils.function_ops import modify_function, remove_variable


def _bounds(s: ScalarSet) -> Tuple[float, float]:
    if isinstance(s, EqualTo):
        return s.value, s.value
    return s.lower, s.upper


class SplitIntervalBridge(AbstractBridge):
    name = "split_interval"

    def __init__(
        self,
        function: ScalarFunction,
        set_type: type,
        lower: Optional[ConstraintIndex],
        upper: Optional[ConstraintIndex],
    ) -> None:
        # Kept for the degenerate case where both bounds are infinite.
        self.function = function
        self.set_type = set_type
        self.lower = lower
        self.upper = upper

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return ((ScalarAffineFunction, Interval), (ScalarAffineFunction, EqualTo))

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return [
            construct_type.with_shape(ScalarAffineFunction, GreaterThan),
            construct_type.with_shape(ScalarAffineFunction, LessThan),
        ]

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "SplitIntervalBridge":
        f, s = construct.function, construct.set
        lo, hi = _bounds(s)
        lower = model.add_constraint(f, GreaterThan(lo)) if lo > -math.inf else None
        upper = model.add_constraint(f, LessThan(hi)) if hi < math.inf else None
        return cls(f, type(s), lower, upper)

    def _rows(self) -> List[ConstraintIndex]:
        return [ci for ci in (self.lower, self.upper) if ci is not None]

    def owned_constraints(self) -> List[ConstraintIndex]:
        return self._rows()

    def get_attribute(self, model: ModelLike, attr: Attribute) -> Any:
        rows = self._rows()
        if attr == Attribute.CONSTRAINT_FUNCTION:
            return model.get_attribute(attr, rows[0]) if rows else self.function
        if attr == Attribute.CONSTRAINT_SET:
            lo = model.get_attribute(attr, self.lower).lower if self.lower is not None else -math.inf
            hi = model.get_attribute(attr, self.upper).upper if self.upper is not None else math.inf
            if self.set_type is EqualTo:
                return EqualTo(lo)
            return Interval(lo, hi)
        if attr in (Attribute.CONSTRAINT_PRIMAL, Attribute.CONSTRAINT_PRIMAL_START):
            # Both rows share the same function value.
            return model.get_attribute(attr, rows[0]) if rows else None
        if attr in (Attribute.CONSTRAINT_DUAL, Attribute.CONSTRAINT_DUAL_START):
            values = [model.get_attribute(attr, ci) for ci in rows]
            if any(v is None for v in values):
                return None
            return sum(values, 0.0)
        return super().get_attribute(model, attr)

    def set_attribute(self, model: ModelLike, attr: Attribute, value: Any) -> None:
        if attr == Attribute.CONSTRAINT_SET:
            if not isinstance(value, self.set_type):
                raise UnsupportedAttributeError(attr, f"bridge '{self.name}' with set {value!r}")
            lo, hi = _bounds(value)
            self.lower = self._update_row(model, self.lower, GreaterThan(lo) if lo > -math.inf else None)
            self.upper = self._update_row(model, self.upper, LessThan(hi) if hi < math.inf else None)
            return
        if attr == Attribute.CONSTRAINT_FUNCTION:
            self.function = value
            for ci in self._rows():
                model.set_attribute(attr, value, ci)
            return
        if attr == Attribute.CONSTRAINT_PRIMAL_START:
            for ci in self._rows():
                model.set_attribute(attr, value, ci)
            return
        if attr == Attribute.CONSTRAINT_DUAL_START:
            # Nonnegative part on the >= row, nonpositive part on the <= row.
            if self.lower is not None:
                model.set_attribute(attr, None if value is None else max(value, 0.0), self.lower)
            if self.upper is not None:
                model.set_attribute(attr, None if value is None else min(value, 0.0), self.upper)
            return
        super().set_attribute(model, attr, value)

    def _update_row(
        self,
        model: ModelLike,
        ci: Optional[ConstraintIndex],
        new_set: Optional[ScalarSet],
    ) -> Optional[ConstraintIndex]:
        if ci is not None and new_set is not None:
            model.set_attribute(Attribute.CONSTRAINT_SET, new_set, ci)
            return ci
        if ci is not None:
            self.function = model.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci)
            model.delete(ci)
            return None
        if new_set is not None:
            rows = self._rows()
            if rows:
                self.function = model.get_attribute(Attribute.CONSTRAINT_FUNCTION, rows[0])
            return model.add_constraint(self.function, new_set)
        return None

    def modify(self, model: ModelLike, change: FunctionChange) -> None:
        rows = self._rows()
        if not rows:
            self.function = modify_function(self.function, change)
        for ci in rows:
            model.modify(ci, change)

    def delete(self, model: ModelLike) -> None:
        for ci in self._rows():
            model.delete(ci)

    def delete_variable(self, model: ModelLike, variable: VariableIndex) -> None:
        self.function = remove_variable(self.function, variable)


__all__ = ["SplitIntervalBridge"]
