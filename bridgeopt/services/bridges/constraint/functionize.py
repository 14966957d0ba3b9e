# bridgeopt/services/bridges/constraint/functionize.py
"""`x in S` into `1.0 * x + 0.0 in S` for solvers that only take affine rows."""
from __future__ import annotations

from typing import Any, List, Tuple

from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import ScalarAffineFunction, VariableIndex
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import SCALAR_LINEAR_SETS
from bridgeopt.services.bridges.constraint.single_constraint import SingleConstraintBridge
from bridgeopt.services.bridges.interfaces import ModelLike, Shape
from bridgeopt.utils.function_ops import convert_approx, to_affine


class ScalarFunctionizeBridge(SingleConstraintBridge):
    name = "scalar_functionize"

    def __init__(self, constraint: ConstraintIndex, variable: VariableIndex) -> None:
        super().__init__(constraint)
        self.variable = variable

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return tuple((VariableIndex, s) for s in SCALAR_LINEAR_SETS)

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return [construct_type.with_shape(ScalarAffineFunction, construct_type.set_type)]

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "ScalarFunctionizeBridge":
        ci = model.add_constraint(to_affine(construct.function), construct.set)
        return cls(ci, construct.function)

    def _to_outer(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.CONSTRAINT_FUNCTION:
            return convert_approx(VariableIndex, value)
        return value

    def _to_inner(self, attr: Attribute, value: Any) -> Any:
        if attr == Attribute.CONSTRAINT_FUNCTION:
            self.variable = value
            return to_affine(value)
        return value


__all__ = ["ScalarFunctionizeBridge"]
