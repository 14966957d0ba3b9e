# bridgeopt/services/bridges/constraint/flip_sign.py
"""
Sign-flip bridges.

`GreaterToLessBridge` rewrites `f(x) >= l` as `-f(x) <= -l`;
`LessToGreaterBridge` rewrites `f(x) <= u` as `-f(x) >= -u`.

The two are inverses of each other, so a catalog can hold only one of them.
"""
from __future__ import annotations

from typing import Any, ClassVar, List, Tuple

from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarCoefficientChange,
)
from bridgeopt.schemas.indices import Construct, ConstructType
from bridgeopt.schemas.sets import GreaterThan, LessThan, ScalarSet
from bridgeopt.services.bridges.constraint.single_constraint import SingleConstraintBridge
from bridgeopt.services.bridges.interfaces import ModelLike, Shape
from bridgeopt.utils.function_ops import negate


def _flip_set(s: ScalarSet) -> ScalarSet:
    if isinstance(s, LessThan):
        return GreaterThan(-s.upper)
    if isinstance(s, GreaterThan):
        return LessThan(-s.lower)
    raise TypeError(f"Cannot flip set {s!r}")


class _FlipSignBridge(SingleConstraintBridge):
    source_set: ClassVar[type]
    target_set: ClassVar[type]

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return ((ScalarAffineFunction, cls.source_set),)

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return [construct_type.with_shape(ScalarAffineFunction, cls.target_set)]

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "_FlipSignBridge":
        ci = model.add_constraint(negate(construct.function), _flip_set(construct.set))
        return cls(ci)

    def _to_outer(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.CONSTRAINT_FUNCTION:
            return negate(value)
        if attr == Attribute.CONSTRAINT_SET:
            return _flip_set(value)
        return -value

    # The transformation is an involution.
    _to_inner = _to_outer

    def modify(self, model: ModelLike, change: FunctionChange) -> None:
        if isinstance(change, ScalarCoefficientChange):
            model.modify(self.constraint, ScalarCoefficientChange(change.variable, -change.new_coefficient))
            return
        super().modify(model, change)


class GreaterToLessBridge(_FlipSignBridge):
    name = "greater_to_less"
    source_set = GreaterThan
    target_set = LessThan


class LessToGreaterBridge(_FlipSignBridge):
    name = "less_to_greater"
    source_set = LessThan
    target_set = GreaterThan


__all__ = ["GreaterToLessBridge", "LessToGreaterBridge"]
