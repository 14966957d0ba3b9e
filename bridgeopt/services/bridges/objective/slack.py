# bridgeopt/services/bridges/objective/slack.py
"""
Objective-to-variable (slack) bridge.

Rewrites a scalar objective `g(x)` as a fresh variable `s` plus the constraint
`g(x) - s <= 0` when minimizing (`>= 0` when maximizing), and sets the
objective to `s`.

Changing the optimization sense is not supported while this bridge is
attached: set the sense to FEASIBILITY first (which removes the bridge), then
set the new sense and re-add the objective.
"""
from __future__ import annotations

from typing import Any, List, Tuple

from bridgeopt.errors import StateError
from bridgeopt.schemas.attributes import Attribute, ObjectiveSense
from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarCoefficientChange,
    ScalarConstantChange,
    ScalarQuadraticFunction,
    VariableIndex,
)
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import GreaterThan, LessThan, set_constant
from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike, Shape
from bridgeopt.utils.function_ops import (
    add_constant,
    convert_approx,
    normalize_and_add_constraint,
    remove_variable,
    subtract_result_type,
    subtract_variable,
)


class SlackBridge(AbstractBridge):
    name = "slack"

    def __init__(self, slack: VariableIndex, constraint: ConstraintIndex, function_type: type) -> None:
        self.slack = slack
        self.constraint = constraint
        self.function_type = function_type

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return ((ScalarAffineFunction, None), (ScalarQuadraticFunction, None))

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        f = subtract_result_type(construct_type.function_type)
        return [construct_type.with_shape(f, GreaterThan), construct_type.with_shape(f, LessThan)]

    @classmethod
    def added_objective_type(cls, construct_type: ConstructType) -> ConstructType:
        return construct_type.with_shape(VariableIndex, None)

    @classmethod
    def added_variable_count(cls, construct_type: ConstructType) -> int:
        return 1

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "SlackBridge":
        sense = model.get_attribute(Attribute.OBJECTIVE_SENSE)
        if sense == ObjectiveSense.MIN:
            rhs = LessThan(0.0)
        elif sense == ObjectiveSense.MAX:
            rhs = GreaterThan(0.0)
        else:
            raise StateError(
                "Set the objective sense before the objective function when using the slack bridge."
            )
        func = construct.function
        slack = model.add_variable()
        f = subtract_variable(func, slack)
        constraint = normalize_and_add_constraint(model, f, rhs)
        model.set_attribute(Attribute.OBJECTIVE_FUNCTION, slack)
        return cls(slack, constraint, type(func))

    def owned_variables(self) -> List[VariableIndex]:
        return [self.slack]

    def owned_constraints(self) -> List[ConstraintIndex]:
        return [self.constraint]

    def get_attribute(self, model: ModelLike, attr: Attribute) -> Any:
        if attr == Attribute.OBJECTIVE_VALUE:
            slack = model.get_attribute(Attribute.OBJECTIVE_VALUE, VariableIndex)
            # The solver may report a gap between `g` and the slack. The constraint
            # is `g - slack`, so its primal plus the slack recovers `g`.
            obj_slack_constant = model.get_attribute(Attribute.CONSTRAINT_PRIMAL, self.constraint)
            # The constant of `g` was moved to the set.
            rhs = set_constant(model.get_attribute(Attribute.CONSTRAINT_SET, self.constraint))
            return obj_slack_constant + slack - rhs
        if attr == Attribute.OBJECTIVE_FUNCTION:
            func = model.get_attribute(Attribute.CONSTRAINT_FUNCTION, self.constraint)
            rhs = set_constant(model.get_attribute(Attribute.CONSTRAINT_SET, self.constraint))
            g = remove_variable(add_constant(func, -rhs), self.slack)
            return convert_approx(self.function_type, g)
        if attr == Attribute.OBJECTIVE_FUNCTION_TYPE:
            return self.function_type
        return super().get_attribute(model, attr)

    def modify(self, model: ModelLike, change: FunctionChange) -> None:
        if isinstance(change, ScalarCoefficientChange) and change.variable != self.slack:
            model.modify(self.constraint, change)
            return
        if isinstance(change, ScalarConstantChange):
            rhs = model.get_attribute(Attribute.CONSTRAINT_SET, self.constraint)
            model.set_attribute(Attribute.CONSTRAINT_SET, type(rhs)(-change.new_constant), self.constraint)
            return
        super().modify(model, change)

    def delete(self, model: ModelLike) -> None:
        model.delete(self.constraint)
        model.delete(self.slack)


__all__ = ["SlackBridge"]
