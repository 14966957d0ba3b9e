# bridgeopt/services/solvers/in_memory_model.py
"""
In-memory model store.

Holds variables, constraints (insertion ordered), the objective and its sense.
Native support is configurable per (function type, set type) pair and per
objective function type, which makes it the usual test double under a
`BridgeOptimizer`. Result attributes (primal, dual, objective value,
termination status) are plain settable values: tests write them, then read
them back through the bridged view.
"""
from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from bridgeopt.errors import (
    InvalidIndexError,
    ScalarFunctionConstantNotZeroError,
    StateError,
    UnsupportedAttributeError,
    UnsupportedConstructError,
    UnsupportedModificationError,
)
from bridgeopt.schemas.attributes import Attribute, ObjectiveSense, TerminationStatus
from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarFunction,
    ScalarQuadraticFunction,
    VariableIndex,
)
from bridgeopt.schemas.indices import ConstraintIndex, constraint_type, objective_type
from bridgeopt.schemas.sets import (
    SCALAR_LINEAR_SETS,
    Integer,
    Parameter,
    ScalarSet,
    ZeroOne,
)
from bridgeopt.utils.function_ops import (
    convert_approx,
    evaluate,
    modify_function,
    remove_variable,
    to_affine,
    variables,
)

logger = logging.getLogger(__name__)

Shape = Tuple[type, type]

LINEAR_CONSTRAINTS: Tuple[Shape, ...] = tuple(
    [(ScalarAffineFunction, s) for s in SCALAR_LINEAR_SETS]
    + [(VariableIndex, s) for s in (*SCALAR_LINEAR_SETS, Integer, ZeroOne, Parameter)]
)
LINEAR_OBJECTIVES: Tuple[type, ...] = (VariableIndex, ScalarAffineFunction)


def _zero() -> ScalarAffineFunction:
    return ScalarAffineFunction((), 0.0)


class InMemoryModel:
    def __init__(
        self,
        supported_constraints: Optional[Iterable[Shape]] = None,
        supported_objectives: Optional[Iterable[type]] = None,
        on_optimize: Optional[Callable[["InMemoryModel"], None]] = None,
    ) -> None:
        self.supported_constraints: Set[Shape] = set(
            LINEAR_CONSTRAINTS if supported_constraints is None else supported_constraints
        )
        self.supported_objectives: Set[type] = set(
            LINEAR_OBJECTIVES if supported_objectives is None else supported_objectives
        )
        self.on_optimize = on_optimize
        self.optimize_count = 0

        self._variable_ids = itertools.count(1)
        self._constraint_ids = itertools.count(1)
        self._variables: Dict[VariableIndex, None] = {}
        self._constraints: Dict[ConstraintIndex, Tuple[ScalarFunction, ScalarSet]] = {}
        self._objective: ScalarFunction = _zero()
        self._sense = ObjectiveSense.FEASIBILITY

        self._variable_primal: Dict[VariableIndex, float] = {}
        self._variable_primal_start: Dict[VariableIndex, float] = {}
        self._constraint_primal: Dict[ConstraintIndex, float] = {}
        self._constraint_dual: Dict[ConstraintIndex, float] = {}
        self._constraint_primal_start: Dict[ConstraintIndex, float] = {}
        self._constraint_dual_start: Dict[ConstraintIndex, float] = {}
        self._objective_value: Optional[float] = None
        self._termination_status = TerminationStatus.OPTIMIZE_NOT_CALLED

    # -------------------------
    # Support
    # -------------------------

    def supports_constraint(self, function_type: type, set_type: type) -> bool:
        return (function_type, set_type) in self.supported_constraints

    def supports_objective(self, function_type: type) -> bool:
        return function_type in self.supported_objectives

    # -------------------------
    # Variables / constraints
    # -------------------------

    def add_variable(self) -> VariableIndex:
        v = VariableIndex(next(self._variable_ids))
        self._variables[v] = None
        return v

    def add_variables(self, n: int) -> List[VariableIndex]:
        return [self.add_variable() for _ in range(n)]

    def add_constraint(self, f: ScalarFunction, s: ScalarSet) -> ConstraintIndex:
        if not self.supports_constraint(type(f), type(s)):
            raise UnsupportedConstructError(constraint_type(f, s), reason="not supported by the model")
        self._check_function(f)
        ci = ConstraintIndex(type(f), type(s), next(self._constraint_ids))
        self._constraints[ci] = (f, s)
        return ci

    def _check_function(self, f: ScalarFunction) -> None:
        if isinstance(f, (ScalarAffineFunction, ScalarQuadraticFunction)) and f.constant != 0:
            raise ScalarFunctionConstantNotZeroError(f.constant)
        for v in variables(f):
            if v not in self._variables:
                raise InvalidIndexError(v, "unknown variable in function")

    def is_valid(self, index: Any) -> bool:
        if isinstance(index, VariableIndex):
            return index in self._variables
        return index in self._constraints

    def delete(self, index: Any) -> None:
        if not self.is_valid(index):
            raise InvalidIndexError(index)
        if isinstance(index, VariableIndex):
            self._delete_variable(index)
            return
        del self._constraints[index]
        for results in (
            self._constraint_primal,
            self._constraint_dual,
            self._constraint_primal_start,
            self._constraint_dual_start,
        ):
            results.pop(index, None)

    def _delete_variable(self, v: VariableIndex) -> None:
        del self._variables[v]
        self._variable_primal.pop(v, None)
        self._variable_primal_start.pop(v, None)
        for ci, (f, s) in list(self._constraints.items()):
            if isinstance(f, VariableIndex):
                if f == v:
                    self.delete(ci)
            elif v in variables(f):
                self._constraints[ci] = (remove_variable(f, v), s)
        if v in variables(self._objective):
            self._objective = remove_variable(self._objective, v)

    def modify(self, ci: ConstraintIndex, change: FunctionChange) -> None:
        if ci not in self._constraints:
            raise InvalidIndexError(ci)
        f, s = self._constraints[ci]
        if isinstance(f, VariableIndex):
            raise UnsupportedModificationError(change, "single-variable constraint")
        self._constraints[ci] = (modify_function(f, change), s)

    def modify_objective(self, change: FunctionChange) -> None:
        f = self._objective
        if isinstance(f, VariableIndex):
            f = to_affine(f)
            if not self.supports_objective(ScalarAffineFunction):
                raise UnsupportedModificationError(change, "single-variable objective")
        self._objective = modify_function(f, change)

    # -------------------------
    # Listing
    # -------------------------

    def list_of_constraint_indices(self, function_type: type, set_type: type) -> List[ConstraintIndex]:
        return [
            ci for ci in self._constraints if ci.function_type is function_type and ci.set_type is set_type
        ]

    def number_of_constraints(self, function_type: type, set_type: type) -> int:
        return len(self.list_of_constraint_indices(function_type, set_type))

    def list_of_constraint_types(self) -> List[Shape]:
        shapes: List[Shape] = []
        for ci in self._constraints:
            shape = (ci.function_type, ci.set_type)
            if shape not in shapes:
                shapes.append(shape)
        return shapes

    def constraints(self) -> List[Tuple[ConstraintIndex, ScalarFunction, ScalarSet]]:
        return [(ci, f, s) for ci, (f, s) in self._constraints.items()]

    # -------------------------
    # Attributes
    # -------------------------

    def _value_of(self, v: VariableIndex) -> float:
        if v not in self._variable_primal:
            raise StateError(f"No primal value available for {v!r}")
        return self._variable_primal[v]

    def get_attribute(self, attr: Attribute, index: Any = None) -> Any:
        if attr.is_constraint_attribute:
            if index not in self._constraints:
                raise InvalidIndexError(index)
            f, s = self._constraints[index]
            if attr == Attribute.CONSTRAINT_FUNCTION:
                return f
            if attr == Attribute.CONSTRAINT_SET:
                return s
            if attr == Attribute.CONSTRAINT_PRIMAL:
                if index in self._constraint_primal:
                    return self._constraint_primal[index]
                return evaluate(f, self._value_of)
            if attr == Attribute.CONSTRAINT_DUAL:
                if index not in self._constraint_dual:
                    raise StateError(f"No dual value available for {index!r}")
                return self._constraint_dual[index]
            if attr == Attribute.CONSTRAINT_PRIMAL_START:
                return self._constraint_primal_start.get(index)
            return self._constraint_dual_start.get(index)

        if attr in (Attribute.VARIABLE_PRIMAL, Attribute.VARIABLE_PRIMAL_START):
            if index not in self._variables:
                raise InvalidIndexError(index)
            if attr == Attribute.VARIABLE_PRIMAL:
                return self._value_of(index)
            return self._variable_primal_start.get(index)

        if attr == Attribute.OBJECTIVE_FUNCTION:
            return self._objective if index is None else convert_approx(index, self._objective)
        if attr == Attribute.OBJECTIVE_FUNCTION_TYPE:
            return type(self._objective)
        if attr == Attribute.OBJECTIVE_VALUE:
            if self._objective_value is not None:
                return self._objective_value
            return evaluate(self._objective, self._value_of)
        if attr == Attribute.OBJECTIVE_SENSE:
            return self._sense
        if attr == Attribute.NUMBER_OF_VARIABLES:
            return len(self._variables)
        if attr == Attribute.LIST_OF_VARIABLE_INDICES:
            return list(self._variables)
        if attr == Attribute.TERMINATION_STATUS:
            return self._termination_status
        raise UnsupportedAttributeError(attr, type(self).__name__)

    def set_attribute(self, attr: Attribute, value: Any, index: Any = None) -> None:
        if attr.is_constraint_attribute:
            self._set_constraint_attribute(attr, value, index)
            return
        if attr in (Attribute.VARIABLE_PRIMAL, Attribute.VARIABLE_PRIMAL_START):
            if index not in self._variables:
                raise InvalidIndexError(index)
            target = self._variable_primal if attr == Attribute.VARIABLE_PRIMAL else self._variable_primal_start
            target[index] = value
            return
        if attr == Attribute.OBJECTIVE_FUNCTION:
            if not self.supports_objective(type(value)):
                raise UnsupportedConstructError(objective_type(value), reason="not supported by the model")
            for v in variables(value):
                if v not in self._variables:
                    raise InvalidIndexError(v, "unknown variable in objective")
            self._objective = value
            return
        if attr == Attribute.OBJECTIVE_SENSE:
            self._sense = ObjectiveSense(value)
            if self._sense == ObjectiveSense.FEASIBILITY:
                self._objective = _zero()
            return
        if attr == Attribute.OBJECTIVE_VALUE:
            self._objective_value = value
            return
        if attr == Attribute.TERMINATION_STATUS:
            self._termination_status = TerminationStatus(value)
            return
        raise UnsupportedAttributeError(attr, type(self).__name__)

    def _set_constraint_attribute(self, attr: Attribute, value: Any, index: ConstraintIndex) -> None:
        if index not in self._constraints:
            raise InvalidIndexError(index)
        f, s = self._constraints[index]
        if attr == Attribute.CONSTRAINT_FUNCTION:
            if type(value) is not index.function_type:
                raise UnsupportedAttributeError(attr, f"{index!r} with a {type(value).__name__} value")
            self._check_function(value)
            self._constraints[index] = (value, s)
        elif attr == Attribute.CONSTRAINT_SET:
            if type(value) is not index.set_type:
                raise UnsupportedAttributeError(attr, f"{index!r} with a {type(value).__name__} value")
            self._constraints[index] = (f, value)
        elif attr == Attribute.CONSTRAINT_PRIMAL:
            self._constraint_primal[index] = value
        elif attr == Attribute.CONSTRAINT_DUAL:
            self._constraint_dual[index] = value
        elif attr == Attribute.CONSTRAINT_PRIMAL_START:
            self._constraint_primal_start[index] = value
        else:
            self._constraint_dual_start[index] = value

    def set_variable_primals(self, values: Dict[VariableIndex, float]) -> None:
        """Mock-solver helper: set several variable primal values at once."""
        for v, value in values.items():
            self.set_attribute(Attribute.VARIABLE_PRIMAL, value, v)

    def clear_results(self) -> None:
        self._variable_primal.clear()
        self._constraint_primal.clear()
        self._constraint_dual.clear()
        self._objective_value = None
        self._termination_status = TerminationStatus.OPTIMIZE_NOT_CALLED

    # -------------------------
    # Solve
    # -------------------------

    def optimize(self) -> None:
        self.optimize_count += 1
        logger.debug(
            "model.optimize",
            extra={"count": self.optimize_count, "solver": type(self).__name__},
        )
        if self.on_optimize is not None:
            self.on_optimize(self)


__all__ = ["InMemoryModel", "LINEAR_CONSTRAINTS", "LINEAR_OBJECTIVES"]
