from .functions import (
    VariableIndex,
    ScalarAffineTerm,
    ScalarAffineFunction,
    ScalarQuadraticTerm,
    ScalarQuadraticFunction,
    ScalarFunction,
    ScalarCoefficientChange,
    ScalarConstantChange,
)
from .sets import (
    LessThan,
    GreaterThan,
    EqualTo,
    Interval,
    Parameter,
    Integer,
    ZeroOne,
    ScalarSet,
)
from .indices import (
    ConstraintIndex,
    ConstructType,
    Construct,
    constraint_type,
    objective_type,
    numeric_type_of,
)
from .attributes import Attribute, ObjectiveSense, TerminationStatus
from .bridge_report import (
    SelectionStep,
    SelectionReport,
    ActiveBridge,
    ActiveBridgesReport,
)

__all__ = [
    "VariableIndex",
    "ScalarAffineTerm",
    "ScalarAffineFunction",
    "ScalarQuadraticTerm",
    "ScalarQuadraticFunction",
    "ScalarFunction",
    "ScalarCoefficientChange",
    "ScalarConstantChange",
    "LessThan",
    "GreaterThan",
    "EqualTo",
    "Interval",
    "Parameter",
    "Integer",
    "ZeroOne",
    "ScalarSet",
    "ConstraintIndex",
    "ConstructType",
    "Construct",
    "constraint_type",
    "objective_type",
    "numeric_type_of",
    "Attribute",
    "ObjectiveSense",
    "TerminationStatus",
    "SelectionStep",
    "SelectionReport",
    "ActiveBridge",
    "ActiveBridgesReport",
]
