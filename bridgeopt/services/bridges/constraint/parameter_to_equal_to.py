# bridgeopt/services/bridges/constraint/parameter_to_equal_to.py
"""`x in Parameter(p)` into `x in EqualTo(p)` for solvers without parameters."""
from __future__ import annotations

from typing import Any, List, Tuple

from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import VariableIndex
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import EqualTo, Parameter
from bridgeopt.services.bridges.constraint.single_constraint import SingleConstraintBridge
from bridgeopt.services.bridges.interfaces import ModelLike, Shape


class ParameterToEqualToBridge(SingleConstraintBridge):
    name = "parameter_to_equal_to"

    def __init__(self, constraint: ConstraintIndex, variable: VariableIndex) -> None:
        super().__init__(constraint)
        self.variable = variable

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return ((VariableIndex, Parameter),)

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return [construct_type.with_shape(VariableIndex, EqualTo)]

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "ParameterToEqualToBridge":
        ci = model.add_constraint(construct.function, EqualTo(construct.set.value))
        return cls(ci, construct.function)

    def _to_outer(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.CONSTRAINT_SET:
            return Parameter(value.value)
        return value

    def _to_inner(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.CONSTRAINT_SET:
            return EqualTo(value.value)
        if attr == Attribute.CONSTRAINT_FUNCTION:
            self.variable = value
        return value


__all__ = ["ParameterToEqualToBridge"]
