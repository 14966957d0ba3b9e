# bridgeopt/services/bridges/constraint/fix_parametric_variables.py
"""
Parametric-variable substitution.

Turns a quadratic constraint `f(x) in S` into an affine constraint `g(x) in S`
by replacing, inside every quadratic term, a variable held fixed by a
`x in Parameter(p)` constraint with its value `p`. For example, with `p == 3`
the quadratic term `0.3 * p * x` becomes the linear term `0.9 * x`. A linear
term such as `0.3 * p` is left as `0.3 * p`.

Parameter values are only known once the whole problem is built (and may
change between solves), so the substitution happens in `final_touch`.
A quadratic term in which neither variable is fixed makes the final touch
fail with ReformulationError.

Substituting fixed values can make the dual of the parameter variable
incorrect, which is why this bridge is not part of the default catalog.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from bridgeopt.errors import ReformulationError
from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarCoefficientChange,
    ScalarQuadraticFunction,
    VariableIndex,
)
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import SCALAR_LINEAR_SETS, Parameter
from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike, Shape
from bridgeopt.utils.function_ops import modify_function, remove_variable, to_quadratic

logger = logging.getLogger(__name__)


def _quadratic_maps(f: ScalarQuadraticFunction) -> Tuple[Dict[VariableIndex, Optional[float]], Dict[VariableIndex, float]]:
    values: Dict[VariableIndex, Optional[float]] = {}
    new_coefs: Dict[VariableIndex, float] = {}
    for term in f.quadratic_terms:
        for v in (term.variable_1, term.variable_2):
            values[v] = None
            new_coefs[v] = 0.0
    return values, new_coefs


class FixParametricVariablesBridge(AbstractBridge):
    name = "fix_parametric_variables"

    def __init__(
        self,
        affine_constraint: ConstraintIndex,
        f: ScalarQuadraticFunction,
    ) -> None:
        self.affine_constraint = affine_constraint
        self.f = f
        # Owned by this instance only: parameter value and rebuilt coefficient per variable.
        self.values, self.new_coefs = _quadratic_maps(f)

    @classmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        return tuple((ScalarQuadraticFunction, s) for s in SCALAR_LINEAR_SETS)

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return [construct_type.with_shape(ScalarAffineFunction, construct_type.set_type)]

    @classmethod
    def create(cls, model: ModelLike, construct: Construct) -> "FixParametricVariablesBridge":
        f = construct.function
        affine = ScalarAffineFunction(f.affine_terms, f.constant)
        ci = model.add_constraint(affine, construct.set)
        return cls(ci, f)

    def owned_constraints(self) -> List[ConstraintIndex]:
        return [self.affine_constraint]

    def get_attribute(self, model: ModelLike, attr: Attribute) -> Any:
        if attr == Attribute.CONSTRAINT_FUNCTION:
            return self.f
        if attr in (
            Attribute.CONSTRAINT_SET,
            Attribute.CONSTRAINT_PRIMAL,
            Attribute.CONSTRAINT_DUAL,
            Attribute.CONSTRAINT_PRIMAL_START,
            Attribute.CONSTRAINT_DUAL_START,
        ):
            return model.get_attribute(attr, self.affine_constraint)
        return super().get_attribute(model, attr)

    def set_attribute(self, model: ModelLike, attr: Attribute, value: Any) -> None:
        if attr == Attribute.CONSTRAINT_FUNCTION:
            f = to_quadratic(value)
            model.set_attribute(attr, ScalarAffineFunction(f.affine_terms, f.constant), self.affine_constraint)
            self.f = f
            self.values, self.new_coefs = _quadratic_maps(f)
            return
        if attr in (Attribute.CONSTRAINT_SET, Attribute.CONSTRAINT_PRIMAL_START, Attribute.CONSTRAINT_DUAL_START):
            model.set_attribute(attr, value, self.affine_constraint)
            return
        super().set_attribute(model, attr, value)

    def modify(self, model: ModelLike, change: FunctionChange) -> None:
        if isinstance(change, ScalarCoefficientChange):
            model.modify(self.affine_constraint, change)
            self.f = modify_function(self.f, change)
            return
        super().modify(model, change)

    def delete(self, model: ModelLike) -> None:
        model.delete(self.affine_constraint)

    def delete_variable(self, model: ModelLike, variable: VariableIndex) -> None:
        self.f = remove_variable(self.f, variable)
        self.values, self.new_coefs = _quadratic_maps(self.f)

    def needs_final_touch(self) -> bool:
        return True

    def final_touch(self, model: ModelLike) -> None:
        fixed = _parameter_values(model)
        for x in self.values:
            self.values[x] = fixed.get(x)
            self.new_coefs[x] = 0.0
        for term in self.f.affine_terms:
            if term.variable in self.new_coefs:
                self.new_coefs[term.variable] += term.coefficient
        for term in self.f.quadratic_terms:
            v1, v2 = self.values[term.variable_1], self.values[term.variable_2]
            if v1 is not None:
                if term.variable_1 == term.variable_2:
                    # One-half convention on diagonal quadratic terms.
                    self.new_coefs[term.variable_2] += v1 * term.coefficient / 2
                else:
                    self.new_coefs[term.variable_2] += v1 * term.coefficient
            elif v2 is not None:
                self.new_coefs[term.variable_1] += v2 * term.coefficient
            else:
                logger.warning(
                    "fix_parametric.unfixed_term",
                    extra={"constraint": repr(self.affine_constraint), "term": repr(term)},
                )
                raise ReformulationError(
                    f"Unable to use bridge '{self.name}': neither {term.variable_1!r} nor "
                    f"{term.variable_2!r} in quadratic term {term.coefficient} * "
                    f"{term.variable_1!r} * {term.variable_2!r} is fixed by a Parameter constraint"
                )
        for k, v in self.new_coefs.items():
            model.modify(self.affine_constraint, ScalarCoefficientChange(k, v))


def _parameter_values(model: ModelLike) -> Dict[VariableIndex, float]:
    """Current `x in Parameter(p)` values, keyed by variable."""
    fixed: Dict[VariableIndex, float] = {}
    for ci in model.list_of_constraint_indices(VariableIndex, Parameter):
        x = model.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci)
        fixed[x] = model.get_attribute(Attribute.CONSTRAINT_SET, ci).value
    return fixed


__all__ = ["FixParametricVariablesBridge"]
