# bridgeopt/services/solvers/ortools_linear_adapter.py
"""
OR-Tools linear solver adapter.

An `InMemoryModel` restricted to the linear subset a `pywraplp` solver
consumes directly:
- affine rows in LessThan / GreaterThan / EqualTo / Interval;
- integrality markers (VariableIndex in Integer / ZeroOne);
- single-variable or affine objectives.

Anything else (bounds written as single-variable constraints, quadratic
objectives, parameters) has to arrive through bridges. `optimize()` rebuilds
the solver model from the stored problem, solves it with GLOP (or the MIP
backend when integrality is present) and records primal, dual, objective
value and termination status.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from ortools.linear_solver import pywraplp as _lp

from bridgeopt.config import OrtoolsSolverConfig, settings
from bridgeopt.schemas.attributes import Attribute, ObjectiveSense, TerminationStatus
from bridgeopt.schemas.functions import ScalarAffineFunction, VariableIndex
from bridgeopt.schemas.sets import (
    SCALAR_LINEAR_SETS,
    EqualTo,
    GreaterThan,
    Integer,
    Interval,
    LessThan,
    ZeroOne,
)
from bridgeopt.services.solvers.in_memory_model import InMemoryModel
from bridgeopt.utils.function_ops import to_affine

logger = logging.getLogger(__name__)

ORTOOLS_CONSTRAINTS = tuple(
    [(ScalarAffineFunction, s) for s in SCALAR_LINEAR_SETS] + [(VariableIndex, Integer), (VariableIndex, ZeroOne)]
)
ORTOOLS_OBJECTIVES = (VariableIndex, ScalarAffineFunction)

_STATUS = {
    _lp.Solver.OPTIMAL: TerminationStatus.OPTIMAL,
    _lp.Solver.FEASIBLE: TerminationStatus.FEASIBLE,
    _lp.Solver.INFEASIBLE: TerminationStatus.INFEASIBLE,
    _lp.Solver.UNBOUNDED: TerminationStatus.UNBOUNDED,
    _lp.Solver.ABNORMAL: TerminationStatus.UNKNOWN,
    _lp.Solver.MODEL_INVALID: TerminationStatus.MODEL_INVALID,
    _lp.Solver.NOT_SOLVED: TerminationStatus.UNKNOWN,
}


def _row_bounds(s) -> tuple:
    inf = _lp.Solver.infinity()
    if isinstance(s, LessThan):
        return -inf, float(s.upper)
    if isinstance(s, GreaterThan):
        return float(s.lower), inf
    if isinstance(s, EqualTo):
        return float(s.value), float(s.value)
    if isinstance(s, Interval):
        return float(s.lower), float(s.upper)
    raise TypeError(f"Unsupported row set: {type(s).__name__}")


class OrtoolsLinearModel(InMemoryModel):
    def __init__(self, config: Optional[OrtoolsSolverConfig] = None) -> None:
        super().__init__(supported_constraints=ORTOOLS_CONSTRAINTS, supported_objectives=ORTOOLS_OBJECTIVES)
        self.config = config or settings.ORTOOLS or OrtoolsSolverConfig()
        self.solver_name: Optional[str] = None

    def optimize(self) -> None:
        self.optimize_count += 1
        self.clear_results()

        integer: Dict[VariableIndex, bool] = {}
        for ci, f, s in self.constraints():
            if isinstance(s, ZeroOne):
                integer[f] = True
            elif isinstance(s, Integer):
                integer.setdefault(f, False)

        self.solver_name = self.config.mip_solver if integer else self.config.lp_solver
        solver = _lp.Solver.CreateSolver(self.solver_name)
        if solver is None:
            logger.error("ortools.solver_unavailable", extra={"solver": self.solver_name})
            self.set_attribute(Attribute.TERMINATION_STATUS, TerminationStatus.MODEL_INVALID)
            return
        if self.config.time_limit_ms:
            solver.SetTimeLimit(int(self.config.time_limit_ms))
        if self.config.enable_output:
            solver.EnableOutput()

        inf = solver.infinity()
        variables = self.get_attribute(Attribute.LIST_OF_VARIABLE_INDICES)
        var = {}
        for v in variables:
            if v in integer:
                lo, hi = (0.0, 1.0) if integer[v] else (-inf, inf)
                var[v] = solver.IntVar(lo, hi, f"x{v.value}")
            else:
                var[v] = solver.NumVar(-inf, inf, f"x{v.value}")

        rows = {}
        for ci, f, s in self.constraints():
            if not isinstance(f, ScalarAffineFunction):
                continue
            lo, hi = _row_bounds(s)
            row = solver.RowConstraint(lo, hi, f"c{ci.value}")
            for t in f.terms:
                # SetCoefficient overwrites; duplicate terms are summed first.
                row.SetCoefficient(var[t.variable], row.GetCoefficient(var[t.variable]) + float(t.coefficient))
            rows[ci] = row

        sense = self.get_attribute(Attribute.OBJECTIVE_SENSE)
        objective = solver.Objective()
        f = to_affine(self.get_attribute(Attribute.OBJECTIVE_FUNCTION))
        for t in f.terms:
            objective.SetCoefficient(var[t.variable], objective.GetCoefficient(var[t.variable]) + float(t.coefficient))
        objective.SetOffset(float(f.constant))
        if sense == ObjectiveSense.MAX:
            objective.SetMaximization()
        else:
            objective.SetMinimization()

        logger.info(
            "ortools.solve",
            extra={"solver": self.solver_name, "count": len(variables), "sense": sense.value},
        )
        status = _STATUS.get(solver.Solve(), TerminationStatus.UNKNOWN)
        self.set_attribute(Attribute.TERMINATION_STATUS, status)

        if status in (TerminationStatus.OPTIMAL, TerminationStatus.FEASIBLE):
            for v, x in var.items():
                self.set_attribute(Attribute.VARIABLE_PRIMAL, x.solution_value(), v)
            for ci, row in rows.items():
                self.set_attribute(Attribute.CONSTRAINT_PRIMAL, sum(
                    float(t.coefficient) * var[t.variable].solution_value()
                    for t in self.get_attribute(Attribute.CONSTRAINT_FUNCTION, ci).terms
                ), ci)
                if not integer:
                    self.set_attribute(Attribute.CONSTRAINT_DUAL, row.dual_value(), ci)
            self.set_attribute(Attribute.OBJECTIVE_VALUE, objective.Value())

        logger.info(
            "ortools.solve_done",
            extra={
                "solver": self.solver_name,
                "status": status.value,
                "objective_value": objective.Value() if status in (TerminationStatus.OPTIMAL, TerminationStatus.FEASIBLE) else None,
            },
        )
        if self.on_optimize is not None:
            self.on_optimize(self)


__all__ = ["OrtoolsLinearModel", "ORTOOLS_CONSTRAINTS", "ORTOOLS_OBJECTIVES"]
