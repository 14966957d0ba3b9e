# Tests for the OR-Tools linear adapter behind the bridge optimizer
import pytest

pytest.importorskip("ortools")

from conftest import affine
from bridgeopt.config import OrtoolsSolverConfig
from bridgeopt.schemas import (
    Attribute,
    GreaterThan,
    Interval,
    LessThan,
    ObjectiveSense,
    Parameter,
    ScalarQuadraticFunction,
    ScalarQuadraticTerm,
    TerminationStatus,
    ZeroOne,
)
from bridgeopt.services.bridges import BridgeOptimizer
from bridgeopt.services.bridges.registry import default_bridge_names
from bridgeopt.services.solvers.ortools_linear_adapter import OrtoolsLinearModel


@pytest.fixture
def backend() -> OrtoolsLinearModel:
    return OrtoolsLinearModel(config=OrtoolsSolverConfig())


def _primal(opt, v) -> float:
    return opt.get_attribute(Attribute.VARIABLE_PRIMAL, v)


def test_lp_with_bridged_bounds(backend, test_settings):
    opt = BridgeOptimizer(backend, config=test_settings)
    x, y = opt.add_variables(2)
    opt.add_constraint(x, Interval(0.0, 1.5))
    opt.add_constraint(y, LessThan(10.0))
    row = opt.add_constraint(affine((1.0, x), (1.0, y)), GreaterThan(2.0))
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((1.0, x), (2.0, y)))

    opt.optimize()

    assert opt.get_attribute(Attribute.TERMINATION_STATUS) == TerminationStatus.OPTIMAL
    assert backend.solver_name == "GLOP"
    assert _primal(opt, x) == pytest.approx(1.5, abs=1e-6)
    assert _primal(opt, y) == pytest.approx(0.5, abs=1e-6)
    assert opt.get_attribute(Attribute.OBJECTIVE_VALUE) == pytest.approx(2.5, abs=1e-6)
    assert opt.get_attribute(Attribute.CONSTRAINT_PRIMAL, row) == pytest.approx(2.0, abs=1e-6)
    assert abs(opt.get_attribute(Attribute.CONSTRAINT_DUAL, row)) == pytest.approx(2.0, abs=1e-6)


def test_mip_with_binary_variable(backend, test_settings):
    opt = BridgeOptimizer(backend, config=test_settings)
    x, y = opt.add_variables(2)
    opt.add_constraint(x, ZeroOne())
    opt.add_constraint(y, GreaterThan(0.0))
    opt.add_constraint(y, LessThan(0.7))
    opt.add_constraint(affine((1.0, x), (1.0, y)), LessThan(1.5))
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MAX)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, affine((1.0, x), (1.0, y)))

    opt.optimize()

    assert opt.get_attribute(Attribute.TERMINATION_STATUS) == TerminationStatus.OPTIMAL
    assert backend.solver_name == "CBC"
    assert _primal(opt, x) == pytest.approx(1.0, abs=1e-6)
    assert opt.get_attribute(Attribute.OBJECTIVE_VALUE) == pytest.approx(1.5, abs=1e-6)


def test_parametric_constraint_is_fixed_before_solving(backend, test_settings):
    cfg = test_settings.model_copy(update={"BRIDGE_INCLUDE": ["fix_parametric_variables"]})
    opt = BridgeOptimizer(backend, bridge_types=default_bridge_names(cfg), config=cfg)
    x, p = opt.add_variables(2)
    pci = opt.add_constraint(p, Parameter(4.0))
    opt.add_constraint(ScalarQuadraticFunction([ScalarQuadraticTerm(1.0, p, x)]), GreaterThan(2.0))
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, x)

    opt.optimize()

    assert opt.get_attribute(Attribute.TERMINATION_STATUS) == TerminationStatus.OPTIMAL
    assert _primal(opt, x) == pytest.approx(0.5, abs=1e-6)
    assert _primal(opt, p) == pytest.approx(4.0, abs=1e-6)

    # A new parameter value takes effect on the next solve.
    opt.set_attribute(Attribute.CONSTRAINT_SET, Parameter(8.0), pci)
    opt.optimize()
    assert _primal(opt, x) == pytest.approx(0.25, abs=1e-6)


def test_infeasible_problem_reports_status(backend, test_settings):
    opt = BridgeOptimizer(backend, config=test_settings)
    x = opt.add_variable()
    opt.add_constraint(affine((1.0, x)), GreaterThan(2.0))
    opt.add_constraint(affine((1.0, x)), LessThan(1.0))
    opt.set_attribute(Attribute.OBJECTIVE_SENSE, ObjectiveSense.MIN)
    opt.set_attribute(Attribute.OBJECTIVE_FUNCTION, x)

    opt.optimize()

    assert opt.get_attribute(Attribute.TERMINATION_STATUS) == TerminationStatus.INFEASIBLE


def test_unknown_backend_marks_model_invalid(test_settings):
    backend = OrtoolsLinearModel(config=OrtoolsSolverConfig(lp_solver="NO_SUCH_SOLVER"))
    opt = BridgeOptimizer(backend, config=test_settings)
    opt.add_variable()

    opt.optimize()

    assert opt.get_attribute(Attribute.TERMINATION_STATUS) == TerminationStatus.MODEL_INVALID
