# bridgeopt/services/bridges/optimizer.py
"""
Bridge optimizer: a drop-in proxy for a model store.

Constructs the model accepts natively go straight through. Everything else is
handed to the least-cost bridge chosen by `BridgeGraph`. Bridges are built on
top of this optimizer, so whatever they produce is bridged again when needed.

Bookkeeping:
- bridged constraints get a fresh negative outer index, never reused;
- every index a bridge reports owning maps back to exactly that bridge;
- caller-facing listings skip bridge-owned indices, so each construct the
  caller added is reported exactly once.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, Union

from bridgeopt.config import Settings, settings as default_settings
from bridgeopt.errors import (
    BridgeError,
    InvalidIndexError,
    ScalarFunctionConstantNotZeroError,
    StateError,
)
from bridgeopt.schemas.attributes import Attribute, ObjectiveSense
from bridgeopt.schemas.bridge_report import ActiveBridge, ActiveBridgesReport, SelectionReport
from bridgeopt.schemas.functions import (
    FunctionChange,
    ScalarAffineFunction,
    ScalarFunction,
    ScalarQuadraticFunction,
    VariableIndex,
)
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import ScalarSet
from bridgeopt.services.bridges.final_touch import FinalTouchCoordinator
from bridgeopt.services.bridges.graph import BridgeGraph, CostPolicy, get_cost_policy
from bridgeopt.services.bridges.interfaces import AbstractBridge, Index, ModelLike, Shape
from bridgeopt.services.bridges.registry import BridgeCatalog, BridgeRef, default_bridge_names
from bridgeopt.utils.function_ops import convert_approx

logger = logging.getLogger(__name__)


def _check_constant(f: ScalarFunction) -> None:
    if isinstance(f, (ScalarAffineFunction, ScalarQuadraticFunction)) and f.constant != 0:
        raise ScalarFunctionConstantNotZeroError(f.constant)


class BridgeOptimizer:
    def __init__(
        self,
        model: ModelLike,
        bridge_types: Optional[Iterable[BridgeRef]] = None,
        cost_policy: Optional[CostPolicy] = None,
        config: Optional[Settings] = None,
    ) -> None:
        cfg = config or default_settings
        self.model = model
        self.catalog = BridgeCatalog(model, default_bridge_names(cfg) if bridge_types is None else bridge_types)
        self.graph = BridgeGraph(self.catalog, cost_policy or get_cost_policy(cfg.BRIDGE_COST_POLICY))
        self.final_touch_coordinator = FinalTouchCoordinator()

        # Outer index -> bridge, in creation order.
        self._bridges: Dict[ConstraintIndex, AbstractBridge] = {}
        self._construct_types: Dict[ConstraintIndex, ConstructType] = {}
        self._last_outer = 0

        # Objective function type -> bridge, inner-most layer first.
        self._objective_bridges: Dict[type, AbstractBridge] = {}
        self._objective_function_type: Optional[type] = None

        # Ownership: index -> owning bridge; bridge id -> indices it owns.
        self._owner: Dict[Index, AbstractBridge] = {}
        self._owned: Dict[int, List[Index]] = {}

        # Indices created during the builds in progress (rolled back on failure).
        self._transactions: List[List[Index]] = []
        self._bridge_depth = 0

    # -------------------------
    # Catalog
    # -------------------------

    def add_bridge(self, ref: BridgeRef) -> None:
        self.catalog.add(ref)

    def remove_bridge(self, ref: BridgeRef) -> None:
        self.catalog.remove(ref)

    def explain(self, construct_type: Union[ConstructType, Shape]) -> SelectionReport:
        if not isinstance(construct_type, ConstructType):
            construct_type = ConstructType(*construct_type)
        return self.graph.explain(construct_type)

    def supports_constraint(self, function_type: type, set_type: type) -> bool:
        return self.graph.is_supported(ConstructType(function_type, set_type))

    def supports_objective(self, function_type: type) -> bool:
        return self.graph.is_supported(ConstructType(function_type, None))

    # -------------------------
    # Variables
    # -------------------------

    def add_variable(self) -> VariableIndex:
        v = self.model.add_variable()
        self._record(v)
        return v

    def add_variables(self, n: int) -> List[VariableIndex]:
        return [self.add_variable() for _ in range(n)]

    # -------------------------
    # Constraints
    # -------------------------

    def add_constraint(self, f: ScalarFunction, s: ScalarSet) -> ConstraintIndex:
        _check_constant(f)
        construct = Construct(f, s)
        construct_type = construct.construct_type
        bridge_type = self.graph.select(construct_type)
        if bridge_type is None:
            ci = self.model.add_constraint(f, s)
            self._record(ci)
            return ci

        bridge = self._build(bridge_type, construct)
        self._last_outer -= 1
        ci = ConstraintIndex(type(f), type(s), self._last_outer)
        self._bridges[ci] = bridge
        self._construct_types[ci] = construct_type
        self._record(ci)
        logger.debug(
            "bridge.add_constraint",
            extra={"bridge": bridge.name, "construct_type": str(construct_type), "index": ci.value},
        )
        return ci

    def is_valid(self, index: Index) -> bool:
        if isinstance(index, ConstraintIndex) and index in self._bridges:
            return True
        return self.model.is_valid(index)

    def delete(self, index: Index) -> None:
        self._check_not_owned(index)
        if isinstance(index, VariableIndex):
            self._delete_variable(index)
            return
        bridge = self._bridges.get(index)
        if bridge is None:
            if not self.model.is_valid(index):
                raise InvalidIndexError(index)
            self.model.delete(index)
            self._owner.pop(index, None)
            return
        self._delete_bridge(index, bridge)

    def _delete_variable(self, v: VariableIndex) -> None:
        if not self.model.is_valid(v):
            raise InvalidIndexError(v)
        # Bridged single-variable constraints on `v` go first.
        for ci, bridge in list(self._bridges.items()):
            # Skip entries already removed by an earlier cascade.
            if ci not in self._bridges:
                continue
            if ci.function_type is VariableIndex and ci not in self._owner:
                if bridge.get_attribute(self, Attribute.CONSTRAINT_FUNCTION) == v:
                    self._delete_bridge(ci, bridge)
        self.model.delete(v)
        self._owner.pop(v, None)
        for bridge in [*self._bridges.values(), *self._objective_bridges.values()]:
            bridge.delete_variable(self, v)

    def _delete_bridge(self, ci: ConstraintIndex, bridge: AbstractBridge) -> None:
        self._in_bridge(bridge, lambda: bridge.delete(self), sync=False)
        self._release(bridge)
        del self._bridges[ci]
        del self._construct_types[ci]
        self.final_touch_coordinator.unregister(bridge)
        logger.debug("bridge.delete", extra={"bridge": bridge.name, "index": ci.value})

    def modify(self, ci: ConstraintIndex, change: FunctionChange) -> None:
        self._check_not_owned(ci)
        bridge = self._bridges.get(ci)
        if bridge is not None:
            self._in_bridge(bridge, lambda: bridge.modify(self, change))
            return
        self._check_valid(ci)
        self.model.modify(ci, change)

    # -------------------------
    # Listing / counting
    # -------------------------

    def list_of_constraint_indices(self, function_type: type, set_type: type) -> List[ConstraintIndex]:
        native = [
            ci
            for ci in self.model.list_of_constraint_indices(function_type, set_type)
            if ci not in self._owner
        ]
        bridged = [
            ci
            for ci in self._bridges
            if ci.function_type is function_type and ci.set_type is set_type and ci not in self._owner
        ]
        return native + bridged

    def number_of_constraints(self, function_type: type, set_type: type) -> int:
        return len(self.list_of_constraint_indices(function_type, set_type))

    def list_of_constraint_types(self) -> List[Shape]:
        shapes: List[Shape] = []
        for shape in self.model.list_of_constraint_types():
            if shape not in shapes and self.number_of_constraints(*shape):
                shapes.append(shape)
        for ci in self._bridges:
            shape = (ci.function_type, ci.set_type)
            if shape not in shapes and ci not in self._owner:
                shapes.append(shape)
        return shapes

    def _visible_variables(self) -> List[VariableIndex]:
        variables = self.model.get_attribute(Attribute.LIST_OF_VARIABLE_INDICES)
        return [v for v in variables if v not in self._owner]

    # -------------------------
    # Attributes
    # -------------------------

    def get_attribute(self, attr: Attribute, index: Any = None) -> Any:
        if attr.is_constraint_attribute:
            bridge = self._bridges.get(index)
            if bridge is not None:
                return bridge.get_attribute(self, attr)
            self._check_valid(index)
            return self.model.get_attribute(attr, index)
        if attr.is_objective_attribute:
            return self._get_objective_attribute(attr, index)
        if attr == Attribute.NUMBER_OF_VARIABLES:
            return len(self._visible_variables())
        if attr == Attribute.LIST_OF_VARIABLE_INDICES:
            return self._visible_variables()
        if attr in (Attribute.VARIABLE_PRIMAL, Attribute.VARIABLE_PRIMAL_START):
            self._check_valid(index)
        return self.model.get_attribute(attr, index)

    def set_attribute(self, attr: Attribute, value: Any, index: Any = None) -> None:
        if attr.is_constraint_attribute:
            self._check_not_owned(index)
            if attr == Attribute.CONSTRAINT_FUNCTION:
                _check_constant(value)
            bridge = self._bridges.get(index)
            if bridge is not None:
                self._in_bridge(bridge, lambda: bridge.set_attribute(self, attr, value))
                return
            self._check_valid(index)
            self.model.set_attribute(attr, value, index)
            return
        if attr == Attribute.OBJECTIVE_FUNCTION:
            self._set_objective(value)
            return
        if attr == Attribute.OBJECTIVE_SENSE:
            self._set_sense(ObjectiveSense(value))
            return
        if attr == Attribute.VARIABLE_PRIMAL_START:
            self._check_valid(index)
        self.model.set_attribute(attr, value, index)

    def _check_valid(self, index: Any) -> None:
        if index is None or not self.is_valid(index):
            raise InvalidIndexError(index)

    def _check_not_owned(self, index: Any) -> None:
        # Bridge-owned indices are only changed by their bridge.
        if index in self._owner and not self._bridge_depth:
            raise InvalidIndexError(index, "owned by a bridge")

    # -------------------------
    # Objective
    # -------------------------

    def _get_objective_attribute(self, attr: Attribute, function_type: Optional[type]) -> Any:
        """Objective attributes, optionally at the layer whose objective type is `function_type`."""
        layer = function_type or self._objective_function_type
        bridge = self._objective_bridges.get(layer) if layer is not None else None
        if bridge is not None:
            return bridge.get_attribute(self, attr)
        value = self.model.get_attribute(attr)
        if attr == Attribute.OBJECTIVE_FUNCTION and function_type is not None:
            return convert_approx(function_type, value)
        return value

    def _set_objective(self, f: ScalarFunction) -> None:
        construct = Construct(f)
        # Select first: an unsupported objective leaves the current one in place.
        bridge_type = self.graph.select(construct.construct_type)
        self._delete_objective_bridges()
        if bridge_type is None:
            self.model.set_attribute(Attribute.OBJECTIVE_FUNCTION, f)
        else:
            bridge = self._build(bridge_type, construct)
            self._objective_bridges[type(f)] = bridge
            logger.debug(
                "bridge.set_objective",
                extra={"bridge": bridge.name, "construct_type": str(construct.construct_type)},
            )
        self._objective_function_type = type(f)

    def _set_sense(self, sense: ObjectiveSense) -> None:
        if self._objective_bridges:
            current = self.model.get_attribute(Attribute.OBJECTIVE_SENSE)
            if sense == ObjectiveSense.FEASIBILITY:
                self._delete_objective_bridges()
            elif sense != current:
                names = [b.name for b in self._objective_bridges.values()]
                logger.warning("bridge.sense_change_rejected", extra={"bridges": names, "sense": sense.value})
                raise StateError(
                    f"Cannot change the objective sense to {sense.value} while objective bridges "
                    f"{names} are attached; set the sense to feasibility first to remove the objective."
                )
        self.model.set_attribute(Attribute.OBJECTIVE_SENSE, sense)
        if sense == ObjectiveSense.FEASIBILITY:
            self._objective_function_type = None

    def _delete_objective_bridges(self) -> None:
        # Outer-most layer first.
        for function_type, bridge in reversed(list(self._objective_bridges.items())):
            self._in_bridge(bridge, lambda: bridge.delete(self), sync=False)
            self._release(bridge)
            self.final_touch_coordinator.unregister(bridge)
            logger.debug("bridge.delete_objective", extra={"bridge": bridge.name})
        self._objective_bridges.clear()

    def modify_objective(self, change: FunctionChange) -> None:
        bridge = self._objective_bridges.get(self._objective_function_type)
        if bridge is not None:
            self._in_bridge(bridge, lambda: bridge.modify(self, change))
            return
        self.model.modify_objective(change)

    # -------------------------
    # Solve
    # -------------------------

    def final_touch(self) -> int:
        bridges = self.final_touch_coordinator.bridges
        self._bridge_depth += 1
        try:
            return self.final_touch_coordinator.run(self)
        finally:
            self._bridge_depth -= 1
            for bridge in bridges:
                self._sync_ownership(bridge)

    def optimize(self) -> None:
        """Finalize bridges, then solve the underlying model.

        A finalization failure propagates before the model is invoked.
        """
        self.final_touch()
        self.model.optimize()

    # -------------------------
    # Introspection
    # -------------------------

    def bridge_of(self, ci: ConstraintIndex) -> AbstractBridge:
        bridge = self._bridges.get(ci)
        if bridge is None:
            raise InvalidIndexError(ci, "not bridged")
        return bridge

    def is_bridged(self, ci: ConstraintIndex) -> bool:
        return ci in self._bridges

    def owner_of(self, index: Index) -> Optional[AbstractBridge]:
        return self._owner.get(index)

    def active_bridges_report(self) -> ActiveBridgesReport:
        def describe(index: str, bridge: AbstractBridge, construct_type: str) -> ActiveBridge:
            return ActiveBridge(
                index=index,
                bridge=bridge.name,
                construct_type=construct_type,
                owned_variables=len(bridge.owned_variables()),
                owned_constraints=len(bridge.owned_constraints()),
                needs_final_touch=bridge.needs_final_touch(),
            )

        return ActiveBridgesReport(
            catalog=self.catalog.names,
            constraint_bridges=[
                describe(repr(ci), b, str(self._construct_types[ci])) for ci, b in self._bridges.items()
            ],
            objective_bridges=[
                describe(ftype.__name__, b, f"{ftype.__name__} objective")
                for ftype, b in self._objective_bridges.items()
            ],
            details={"final_touch_pending": len(self.final_touch_coordinator), "cost_policy": self.graph.cost_policy.name},
        )

    # -------------------------
    # Internals
    # -------------------------

    def _record(self, index: Index) -> None:
        if self._transactions:
            self._transactions[-1].append(index)

    def _build(self, bridge_type: Type[AbstractBridge], construct: Construct) -> AbstractBridge:
        created: List[Index] = []
        self._transactions.append(created)
        self._bridge_depth += 1
        try:
            bridge, new_indices = bridge_type.build(self, construct)
        except Exception:
            logger.warning(
                "bridge.build_failed",
                extra={"bridge": bridge_type.name, "construct_type": str(construct.construct_type), "count": len(created)},
            )
            self._rollback(created)
            raise
        finally:
            self._transactions.pop()
            self._bridge_depth -= 1
        self._adopt(bridge, new_indices)
        self.final_touch_coordinator.register(bridge)
        return bridge

    def _rollback(self, created: List[Index]) -> None:
        for index in reversed(created):
            try:
                self.delete(index)
            except BridgeError:
                logger.exception("bridge.rollback_failed", extra={"index": repr(index)})

    def _adopt(self, bridge: AbstractBridge, indices: Iterable[Index]) -> None:
        owned = list(indices)
        for index in owned:
            self._owner[index] = bridge
        self._owned[id(bridge)] = owned

    def _release(self, bridge: AbstractBridge) -> None:
        for index in self._owned.pop(id(bridge), []):
            if self._owner.get(index) is bridge:
                del self._owner[index]

    def _sync_ownership(self, bridge: AbstractBridge) -> None:
        current = bridge.owned_indices()
        for index in self._owned.get(id(bridge), []):
            if index not in current and self._owner.get(index) is bridge:
                del self._owner[index]
        self._adopt(bridge, current)

    def _in_bridge(self, bridge: AbstractBridge, call: Callable[[], Any], sync: bool = True) -> Any:
        self._bridge_depth += 1
        try:
            result = call()
        finally:
            self._bridge_depth -= 1
        if sync:
            self._sync_ownership(bridge)
        return result


def single_bridge_optimizer(model: ModelLike, bridge_type: BridgeRef, **kwargs: Any) -> BridgeOptimizer:
    """Bridge optimizer whose catalog holds exactly one bridge type."""
    return BridgeOptimizer(model, bridge_types=[bridge_type], **kwargs)


__all__ = ["BridgeOptimizer", "single_bridge_optimizer"]
