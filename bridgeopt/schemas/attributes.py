# bridgeopt/schemas/attributes.py

from __future__ import annotations

from enum import Enum


class Attribute(str, Enum):
    """Closed set of attributes the bridging layer routes."""

    # Constraint attributes (index: ConstraintIndex)
    CONSTRAINT_FUNCTION = "constraint_function"
    CONSTRAINT_SET = "constraint_set"
    CONSTRAINT_PRIMAL = "constraint_primal"
    CONSTRAINT_DUAL = "constraint_dual"
    CONSTRAINT_PRIMAL_START = "constraint_primal_start"
    CONSTRAINT_DUAL_START = "constraint_dual_start"

    # Variable attributes (index: VariableIndex)
    VARIABLE_PRIMAL = "variable_primal"
    VARIABLE_PRIMAL_START = "variable_primal_start"

    # Objective attributes (index: optional objective function type of a layer)
    OBJECTIVE_FUNCTION = "objective_function"
    OBJECTIVE_FUNCTION_TYPE = "objective_function_type"
    OBJECTIVE_VALUE = "objective_value"

    # Model attributes (no index)
    OBJECTIVE_SENSE = "objective_sense"
    NUMBER_OF_VARIABLES = "number_of_variables"
    LIST_OF_VARIABLE_INDICES = "list_of_variable_indices"
    TERMINATION_STATUS = "termination_status"

    @property
    def is_constraint_attribute(self) -> bool:
        return self in CONSTRAINT_ATTRIBUTES

    @property
    def is_objective_attribute(self) -> bool:
        return self in OBJECTIVE_ATTRIBUTES

    @property
    def is_result(self) -> bool:
        return self in RESULT_ATTRIBUTES


CONSTRAINT_ATTRIBUTES = frozenset(
    {
        Attribute.CONSTRAINT_FUNCTION,
        Attribute.CONSTRAINT_SET,
        Attribute.CONSTRAINT_PRIMAL,
        Attribute.CONSTRAINT_DUAL,
        Attribute.CONSTRAINT_PRIMAL_START,
        Attribute.CONSTRAINT_DUAL_START,
    }
)

OBJECTIVE_ATTRIBUTES = frozenset(
    {
        Attribute.OBJECTIVE_FUNCTION,
        Attribute.OBJECTIVE_FUNCTION_TYPE,
        Attribute.OBJECTIVE_VALUE,
    }
)

RESULT_ATTRIBUTES = frozenset(
    {
        Attribute.CONSTRAINT_PRIMAL,
        Attribute.CONSTRAINT_DUAL,
        Attribute.VARIABLE_PRIMAL,
        Attribute.OBJECTIVE_VALUE,
        Attribute.TERMINATION_STATUS,
    }
)


class ObjectiveSense(str, Enum):
    MIN = "min"
    MAX = "max"
    FEASIBILITY = "feasibility"


class TerminationStatus(str, Enum):
    OPTIMIZE_NOT_CALLED = "optimize_not_called"
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    MODEL_INVALID = "model_invalid"
    UNKNOWN = "unknown"


__all__ = [
    "Attribute",
    "CONSTRAINT_ATTRIBUTES",
    "OBJECTIVE_ATTRIBUTES",
    "RESULT_ATTRIBUTES",
    "ObjectiveSense",
    "TerminationStatus",
]
