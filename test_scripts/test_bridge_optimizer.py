# Tests for BridgeOptimizer: routing, ownership bookkeeping, deletion, rollback, objectives
import math
from typing import List

import pytest

from conftest import AFFINE_ROWS, LESS_THAN_ONLY, affine
from bridgeopt.errors import (
    InvalidIndexError,
    ReformulationError,
    ScalarFunctionConstantNotZeroError,
    StateError,
    UnsupportedConstructError,
)
from bridgeopt.schemas import (
    Attribute,
    ConstructType,
    EqualTo,
    GreaterThan,
    Interval,
    LessThan,
    ObjectiveSense,
    Parameter,
    ScalarAffineFunction,
    ScalarQuadraticFunction,
    ScalarQuadraticTerm,
    VariableIndex,
)
from bridgeopt.schemas.functions import ScalarCoefficientChange, ScalarConstantChange
from bridgeopt.services.bridges import BridgeOptimizer
from bridgeopt.services.bridges.constraint import SingleConstraintBridge
from bridgeopt.services.solvers import InMemoryModel
from bridgeopt.utils.function_ops import coefficient_of, is_approx


class _ExplodingBridge(SingleConstraintBridge):
    """Creates a variable and a bridged row, then fails."""

    name = "exploding"

    @classmethod
    def supported_types(cls):
        return ((ScalarQuadraticFunction, EqualTo),)

    @classmethod
    def added_constraint_types(cls, construct_type) -> List[ConstructType]:
        return [construct_type.with_shape(ScalarAffineFunction, Interval)]

    @classmethod
    def create(cls, model, construct):
        v = model.add_variable()
        model.add_constraint(affine((1.0, v)), Interval(0.0, 1.0))
        raise ReformulationError("boom")


def _all_shapes():
    return [
        (f, s)
        for f in (VariableIndex, ScalarAffineFunction, ScalarQuadraticFunction)
        for s in (LessThan, GreaterThan, EqualTo, Interval, Parameter)
    ]


# -------------------------
# Adding / supports
# -------------------------

def test_native_constraint_passes_through(bridged, model):
    x = bridged.add_variable()
    ci = bridged.add_constraint(affine((1.0, x)), LessThan(1.0))

    assert ci.value > 0
    assert model.is_valid(ci)
    assert not bridged.is_bridged(ci)
    assert bridged.active_bridges_report().total == 0


def test_supports_native_or_reachable(less_than_bridged):
    assert less_than_bridged.supports_constraint(ScalarAffineFunction, LessThan)
    assert less_than_bridged.supports_constraint(ScalarAffineFunction, Interval)
    assert less_than_bridged.supports_constraint(VariableIndex, GreaterThan)
    assert not less_than_bridged.supports_constraint(ScalarQuadraticFunction, LessThan)
    assert less_than_bridged.supports_objective(ScalarAffineFunction)
    assert not less_than_bridged.supports_objective(ScalarQuadraticFunction)


def test_unsupported_construct_names_exact_type(bridged, model):
    x = bridged.add_variable()
    f = ScalarQuadraticFunction([ScalarQuadraticTerm(1.0, x, x)], [], 0.0)

    with pytest.raises(UnsupportedConstructError) as exc:
        bridged.add_constraint(f, LessThan(1.0))

    assert exc.value.construct_type == ConstructType(ScalarQuadraticFunction, LessThan, float)
    assert "ScalarQuadraticFunction{float}-in-LessThan{float}" in str(exc.value)
    assert model.list_of_constraint_types() == []


def test_nonzero_constant_rejected(bridged):
    x = bridged.add_variable()
    with pytest.raises(ScalarFunctionConstantNotZeroError):
        bridged.add_constraint(affine((1.0, x), constant=2.0), LessThan(1.0))


def test_chain_of_bridges_round_trip(less_than_bridged, less_than_model):
    x = less_than_bridged.add_variable()

    ci = less_than_bridged.add_constraint(x, Interval(1.0, 5.0))

    # functionize -> split_interval -> greater_to_less on the lower row
    assert less_than_bridged.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci) == x
    assert less_than_bridged.get_attribute(Attribute.CONSTRAINT_SET, ci) == Interval(1.0, 5.0)
    sets = sorted(
        less_than_model.get_attribute(Attribute.CONSTRAINT_SET, inner).upper
        for inner in less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)
    )
    assert sets == [-1.0, 5.0]

    report = less_than_bridged.explain((VariableIndex, Interval))
    assert report.bridge_names == ["scalar_functionize", "split_interval", "greater_to_less"]


# -------------------------
# Listing / counting
# -------------------------

def test_counts_match_listings_across_native_and_bridged(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x, y = opt.add_variables(2)
    opt.add_constraint(affine((1.0, x)), LessThan(3.0))
    opt.add_constraint(affine((1.0, x), (1.0, y)), GreaterThan(1.0))
    opt.add_constraint(affine((1.0, y)), Interval(0.0, 2.0))
    opt.add_constraint(y, LessThan(9.0))
    opt.add_constraint(x, Parameter(2.0))

    for f, s in _all_shapes():
        assert opt.number_of_constraints(f, s) == len(opt.list_of_constraint_indices(f, s))

    assert opt.number_of_constraints(ScalarAffineFunction, LessThan) == 1
    assert opt.number_of_constraints(ScalarAffineFunction, GreaterThan) == 1
    assert opt.number_of_constraints(ScalarAffineFunction, Interval) == 1
    assert opt.number_of_constraints(VariableIndex, LessThan) == 1
    assert opt.number_of_constraints(VariableIndex, Parameter) == 1
    assert less_than_model.number_of_constraints(ScalarAffineFunction, LessThan) == 5
    assert set(opt.list_of_constraint_types()) == {
        (ScalarAffineFunction, LessThan),
        (ScalarAffineFunction, GreaterThan),
        (ScalarAffineFunction, Interval),
        (VariableIndex, LessThan),
        (VariableIndex, Parameter),
    }


# -------------------------
# Deletion
# -------------------------

def test_delete_cascades_through_owned_resources(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    ci = opt.add_constraint(affine((1.0, x)), Interval(1.0, 5.0))
    split = opt.bridge_of(ci)
    owned = split.owned_constraints()
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)
    assert len(owned) == 2
    assert len(inner) == 2

    opt.delete(ci)

    assert less_than_model.number_of_constraints(ScalarAffineFunction, LessThan) == 0
    assert not opt.is_valid(ci)
    for index in [ci, *owned, *inner]:
        with pytest.raises(InvalidIndexError):
            opt.get_attribute(Attribute.CONSTRAINT_SET, index)
    with pytest.raises(InvalidIndexError):
        opt.delete(ci)
    assert opt.active_bridges_report().total == 0


def test_bridge_owned_index_cannot_be_deleted_by_caller(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    opt.add_constraint(affine((1.0, x)), GreaterThan(1.0))
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)[0]

    with pytest.raises(InvalidIndexError):
        opt.delete(inner)
    assert less_than_model.is_valid(inner)


def test_bridge_owned_index_cannot_be_changed_by_caller(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    ci = opt.add_constraint(affine((1.0, x)), GreaterThan(1.0))
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)[0]

    with pytest.raises(InvalidIndexError):
        opt.modify(inner, ScalarCoefficientChange(x, 5.0))
    with pytest.raises(InvalidIndexError):
        opt.set_attribute(Attribute.CONSTRAINT_SET, LessThan(7.0), inner)

    assert is_approx(opt.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci), affine((1.0, x)))
    assert opt.get_attribute(Attribute.CONSTRAINT_SET, ci) == GreaterThan(1.0)

    # Changes through the outer index still reach the owned row.
    opt.modify(ci, ScalarCoefficientChange(x, 5.0))
    assert coefficient_of(less_than_model.get_attribute(Attribute.CONSTRAINT_FUNCTION, inner), x) == pytest.approx(-5.0)


def test_outer_indices_are_never_reused(less_than_bridged):
    opt = less_than_bridged
    x = opt.add_variable()
    first = opt.add_constraint(affine((1.0, x)), GreaterThan(1.0))
    opt.delete(first)
    second = opt.add_constraint(affine((1.0, x)), GreaterThan(1.0))

    assert second != first
    assert not opt.is_valid(first)


def test_deleting_variable_removes_bridged_single_variable_constraints(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x, y = opt.add_variables(2)
    cx = opt.add_constraint(x, GreaterThan(0.0))
    cy = opt.add_constraint(y, GreaterThan(0.0))

    opt.delete(x)

    assert not opt.is_valid(cx)
    assert opt.is_valid(cy)
    assert less_than_model.number_of_constraints(ScalarAffineFunction, LessThan) == 1
    assert opt.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    with pytest.raises(InvalidIndexError):
        opt.delete(x)


# -------------------------
# Rollback
# -------------------------

def test_failed_build_rolls_back_everything(test_settings):
    model = InMemoryModel(supported_constraints=LESS_THAN_ONLY)
    opt = BridgeOptimizer(model, config=test_settings)
    opt.add_bridge(_ExplodingBridge)
    x = opt.add_variable()
    f = ScalarQuadraticFunction([ScalarQuadraticTerm(1.0, x, x)], [], 0.0)

    with pytest.raises(ReformulationError):
        opt.add_constraint(f, EqualTo(1.0))

    assert model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    assert model.list_of_constraint_types() == []
    assert opt.active_bridges_report().total == 0
    assert opt.number_of_constraints(ScalarAffineFunction, Interval) == 0


class _FailingTouchBridge(SingleConstraintBridge):
    """Adds a `<=` row during final touch, then fails."""

    name = "failing_touch"

    def __init__(self, constraint) -> None:
        super().__init__(constraint)
        self.extra = None

    @classmethod
    def supported_types(cls):
        return ((ScalarQuadraticFunction, EqualTo),)

    @classmethod
    def added_constraint_types(cls, construct_type) -> List[ConstructType]:
        return [construct_type.with_shape(ScalarAffineFunction, EqualTo)]

    @classmethod
    def create(cls, model, construct):
        f = construct.function
        return cls(model.add_constraint(ScalarAffineFunction(f.affine_terms, f.constant), construct.set))

    def owned_constraints(self):
        return [self.constraint] + ([self.extra] if self.extra is not None else [])

    def delete(self, model) -> None:
        for ci in self.owned_constraints():
            model.delete(ci)

    def needs_final_touch(self) -> bool:
        return True

    def final_touch(self, model) -> None:
        f = model.get_attribute(Attribute.CONSTRAINT_FUNCTION, self.constraint)
        self.extra = model.add_constraint(f, LessThan(5.0))
        raise ReformulationError("late failure")


def test_failed_final_touch_still_records_ownership(model, test_settings):
    opt = BridgeOptimizer(model, bridge_types=[_FailingTouchBridge], config=test_settings)
    x = opt.add_variable()
    ci = opt.add_constraint(ScalarQuadraticFunction([ScalarQuadraticTerm(1.0, x, x)], affine((1.0, x)).terms), EqualTo(1.0))
    bridge = opt.bridge_of(ci)

    with pytest.raises(ReformulationError):
        opt.optimize()

    assert opt.owner_of(bridge.extra) is bridge
    assert opt.number_of_constraints(ScalarAffineFunction, LessThan) == 0
    with pytest.raises(InvalidIndexError):
        opt.delete(bridge.extra)

    opt.delete(ci)
    assert model.list_of_constraint_types() == []
    assert opt.owner_of(bridge.extra) is None


# -------------------------
# Modification / attributes
# -------------------------

def test_modify_bridged_constraint(less_than_bridged):
    opt = less_than_bridged
    x, y = opt.add_variables(2)
    ci = opt.add_constraint(affine((1.0, x), (1.0, y)), Interval(0.0, 4.0))

    opt.modify(ci, ScalarCoefficientChange(y, 3.0))

    f = opt.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci)
    assert coefficient_of(f, y) == pytest.approx(3.0)
    assert coefficient_of(f, x) == pytest.approx(1.0)


def test_bridged_constraint_primal_and_dual(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    ci = opt.add_constraint(affine((2.0, x)), GreaterThan(1.0))
    less_than_model.set_attribute(Attribute.VARIABLE_PRIMAL, 1.5, x)

    # Constraint primal derived from variable values in the inner model, then flipped back.
    assert opt.get_attribute(Attribute.CONSTRAINT_PRIMAL, ci) == pytest.approx(3.0)
    assert opt.get_attribute(Attribute.VARIABLE_PRIMAL, x) == pytest.approx(1.5)


def test_set_function_rejects_constant(less_than_bridged):
    opt = less_than_bridged
    x = opt.add_variable()
    ci = opt.add_constraint(affine((1.0, x)), GreaterThan(1.0))
    with pytest.raises(ScalarFunctionConstantNotZeroError):
        opt.set_attribute(Attribute.CONSTRAINT_FUNCTION, affine((1.0, x), constant=1.0), ci)


def test_invalid_variable_attribute(bridged):
    with pytest.raises(InvalidIndexError):
        bridged.get_attribute(Attribute.VARIABLE_PRIMAL, VariableIndex(99))


# -------------------------
# Objective (slack bridge)
# -------------------------

def test_slack_objective_scenario(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    g = affine((3.0, x))

    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, g)

    # one extra variable, one constraint 3x - s <= 0, objective s
    assert less_than_model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 2
    assert opt.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)
    assert len(inner) == 1
    s = next(v for v in less_than_model.get_attribute(Attribute.LIST_OF_VARIABLE_INDICES) if v != x)
    assert is_approx(
        less_than_model.get_attribute(Attribute.CONSTRAINT_FUNCTION, inner[0]),
        affine((3.0, x), (-1.0, s)),
    )
    assert less_than_model.get_attribute(Attribute.CONSTRAINT_SET, inner[0]) == LessThan(0.0)
    assert less_than_model.get_attribute(Attribute.OBJECTIVE_FUNCTION) == s
    assert opt.number_of_constraints(ScalarAffineFunction, LessThan) == 0

    # solved state: s = 7, constraint primal 0
    less_than_model.set_attribute(Attribute.OBJECTIVE_VALUE, 7.0)
    less_than_model.set_attribute(Attribute.CONSTRAINT_PRIMAL, 0.0, inner[0])

    assert opt.get_attribute(Attribute.OBJECTIVE_VALUE) == pytest.approx(7.0)
    assert is_approx(opt.get_attribute(Attribute.OBJECTIVE_FUNCTION), g)
    assert opt.get_attribute(Attribute.OBJECTIVE_FUNCTION_TYPE) is ScalarAffineFunction
    assert opt.get_attribute(Attribute.OBJECTIVE_FUNCTION_TYPE, VariableIndex) is VariableIndex


def test_slack_objective_with_constant_and_gap(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    g = affine((2.0, x), constant=5.0)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, g)
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)[0]
    assert less_than_model.get_attribute(Attribute.CONSTRAINT_SET, inner) == LessThan(-5.0)

    # g(x) = 2 * 1 + 5 = 7, the solver reports s = 6.9 and a row value of 2 - 6.9
    less_than_model.set_attribute(Attribute.OBJECTIVE_VALUE, 6.9)
    less_than_model.set_attribute(Attribute.CONSTRAINT_PRIMAL, 2.0 - 6.9, inner)

    assert opt.get_attribute(Attribute.OBJECTIVE_VALUE) == pytest.approx(7.0)
    assert is_approx(opt.get_attribute(Attribute.OBJECTIVE_FUNCTION), g)


def test_slack_objective_modification(less_than_bridged):
    opt = less_than_bridged
    x = opt.add_variable()
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((3.0, x)))

    opt.modify_objective(ScalarCoefficientChange(x, 4.0))
    opt.modify_objective(ScalarConstantChange(2.0))

    assert is_approx(opt.get_attribute(Attribute.OBJECTIVE_FUNCTION), affine((4.0, x), constant=2.0))


def test_slack_requires_sense(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()

    with pytest.raises(StateError):
        opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((3.0, x)))

    assert less_than_model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    assert less_than_model.list_of_constraint_types() == []


def test_sense_change_with_objective_bridge(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x = opt.add_variable()
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((3.0, x)))

    with pytest.raises(StateError):
        opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MAX)
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)

    # Removing the objective frees the slack variable and its row.
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.FEASIBILITY)
    assert less_than_model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    assert less_than_model.list_of_constraint_types() == []
    assert opt.active_bridges_report().objective_bridges == []

    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MAX)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((3.0, x)))
    inner = less_than_model.list_of_constraint_indices(ScalarAffineFunction, LessThan)
    # 3x - s >= 0 arrives as -3x + s <= 0 through greater_to_less
    assert len(inner) == 1
    assert less_than_model.get_attribute(Attribute.CONSTRAINT_SET, inner[0]) == LessThan(0.0)
    assert opt.active_bridges_report().objective_bridges[0].bridge == "slack"


def test_replacing_objective_deletes_previous_bridge(less_than_bridged, less_than_model):
    opt = less_than_bridged
    x, y = opt.add_variables(2)
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((3.0, x)))
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((1.0, y)))

    assert less_than_model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 3
    assert less_than_model.number_of_constraints(ScalarAffineFunction, LessThan) == 1
    assert is_approx(opt.get_attribute(Attribute.OBJECTIVE_FUNCTION), affine((1.0, y)))

    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, y)
    assert less_than_model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 2
    assert less_than_model.list_of_constraint_types() == []
    assert opt.get_attribute(Attribute.OBJECTIVE_FUNCTION) == y


def test_native_objective_passes_through(bridged, model):
    x = bridged.add_variable()
    bridged.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MAX)
    bridged.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((1.0, x)))

    assert model.get_attribute(Attribute.NUMBER_OF_VARIABLES) == 1
    model.set_attribute(Attribute.OBJECTIVE_VALUE, 4.0)
    assert bridged.get_attribute(Attribute.OBJECTIVE_VALUE) == pytest.approx(4.0)
    # Native objectives do not lock the sense.
    bridged.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)


# -------------------------
# Catalog / introspection
# -------------------------

def test_add_bridge_makes_type_supported(test_settings):
    model = InMemoryModel(supported_constraints=LESS_THAN_ONLY)
    opt = BridgeOptimizer(model, bridge_types=[], config=test_settings)
    x = opt.add_variable()
    assert not opt.supports_constraint(ScalarAffineFunction, GreaterThan)

    opt.add_bridge("greater_to_less")
    ci = opt.add_constraint(affine((1.0, x)), GreaterThan(0.0))
    assert opt.bridge_of(ci).name == "greater_to_less"

    opt.remove_bridge("greater_to_less")
    assert not opt.supports_constraint(ScalarAffineFunction, GreaterThan)
    # Existing bridged constraints keep working.
    assert opt.get_attribute(Attribute.CONSTRAINT_SET, ci) == GreaterThan(0.0)


def test_active_bridges_report(less_than_bridged):
    opt = less_than_bridged
    x = opt.add_variable()
    ci = opt.add_constraint(affine((1.0, x)), Interval(-math.inf, 1.0))
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((1.0, x)))

    report = opt.active_bridges_report()

    assert report.catalog == opt.catalog.names
    assert [b.bridge for b in report.constraint_bridges] == ["split_interval"]
    assert report.constraint_bridges[0].index == repr(ci)
    assert report.constraint_bridges[0].owned_constraints == 1
    assert report.constraint_bridges[0].construct_type == "ScalarAffineFunction{float}-in-Interval{float}"
    assert report.objective_bridges[0].owned_variables == 1
    assert report.details["cost_policy"] == "uniform"


def test_bridge_of_native_index_is_invalid(bridged):
    x = bridged.add_variable()
    ci = bridged.add_constraint(affine((1.0, x)), LessThan(1.0))
    with pytest.raises(InvalidIndexError):
        bridged.bridge_of(ci)
