# bridgeopt/services/bridges/graph.py
"""
Least-cost bridge selection over the catalog graph.

Nodes are construct types, edges are catalog bridge types. The cost of a node
is 0 when the model accepts it natively; otherwise it is the cheapest, over
the bridges able to consume it, of the bridge cost plus the cost of every
type the bridge produces. The catalog graph is acyclic (enforced by the
catalog), so the memoized recursion below terminates.

Ties keep the bridge registered first. Results are memoized per construct
type until the catalog version changes.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Protocol, Tuple, Type

from bridgeopt.errors import UnsupportedConstructError
from bridgeopt.schemas.bridge_report import SelectionReport, SelectionStep
from bridgeopt.schemas.indices import ConstructType
from bridgeopt.services.bridges.interfaces import AbstractBridge
from bridgeopt.services.bridges.registry import BridgeCatalog

logger = logging.getLogger(__name__)


class CostPolicy(Protocol):
    """Cost of applying one bridge type to one construct type. Must be >= 0."""

    name: str

    def cost(self, bridge_type: Type[AbstractBridge], construct_type: ConstructType) -> float:  # pragma: no cover - interface only
        ...


class UniformCost:
    """Declared bridge cost (1 unless a bridge overrides it)."""

    name = "uniform"

    def cost(self, bridge_type: Type[AbstractBridge], construct_type: ConstructType) -> float:
        return float(bridge_type.cost)


class ResourceWeightedCost:
    """Declared cost plus one per produced construct and per added variable."""

    name = "resource_weighted"

    def cost(self, bridge_type: Type[AbstractBridge], construct_type: ConstructType) -> float:
        produced = len(bridge_type.produced_types(construct_type))
        return float(bridge_type.cost) + produced + bridge_type.added_variable_count(construct_type)


COST_POLICIES: Dict[str, Type] = {
    UniformCost.name: UniformCost,
    ResourceWeightedCost.name: ResourceWeightedCost,
}


def get_cost_policy(name: str) -> CostPolicy:
    policy = COST_POLICIES.get(name)
    if policy is None:
        raise ValueError(f"Unknown cost policy: {name}")
    return policy()


class BridgeGraph:
    """Selector: picks the least-cost bridge for a construct type."""

    def __init__(self, catalog: BridgeCatalog, cost_policy: Optional[CostPolicy] = None) -> None:
        self.catalog = catalog
        self.cost_policy: CostPolicy = cost_policy or UniformCost()
        self._version = catalog.version
        self._cost: Dict[ConstructType, float] = {}
        self._best: Dict[ConstructType, Optional[Type[AbstractBridge]]] = {}

    def _sync(self) -> None:
        if self._version != self.catalog.version:
            self.invalidate()

    def invalidate(self) -> None:
        self._cost.clear()
        self._best.clear()
        self._version = self.catalog.version

    def set_cost_policy(self, cost_policy: CostPolicy) -> None:
        self.cost_policy = cost_policy
        self.invalidate()

    def node_cost(self, construct_type: ConstructType) -> float:
        self._sync()
        return self._node_cost(construct_type)

    def _node_cost(self, construct_type: ConstructType) -> float:
        cached = self._cost.get(construct_type)
        if cached is not None:
            return cached

        best: Optional[Type[AbstractBridge]] = None
        best_cost = math.inf
        # Stop at natively accepted nodes.
        if self.catalog.is_natively_accepted(construct_type):
            best_cost = 0.0
        else:
            for bridge_type in self.catalog.candidates(construct_type):
                total = self.cost_policy.cost(bridge_type, construct_type)
                for produced in bridge_type.produced_types(construct_type):
                    total += self._node_cost(produced)
                    if total == math.inf:
                        break
                # Strict comparison: the earliest registered bridge wins ties.
                if total < best_cost:
                    best, best_cost = bridge_type, total

        self._cost[construct_type] = best_cost
        self._best[construct_type] = best
        return best_cost

    def is_supported(self, construct_type: ConstructType) -> bool:
        return self.node_cost(construct_type) < math.inf

    def is_bridged(self, construct_type: ConstructType) -> bool:
        return self.node_cost(construct_type) < math.inf and self._best[construct_type] is not None

    def select(self, construct_type: ConstructType) -> Optional[Type[AbstractBridge]]:
        """Bridge type to apply to `construct_type`, or None when natively accepted."""
        cost = self.node_cost(construct_type)
        if cost == math.inf:
            logger.info("graph.unsupported", extra={"construct_type": str(construct_type)})
            raise UnsupportedConstructError(construct_type, reason="no bridge chain reaches a natively supported type")
        best = self._best[construct_type]
        logger.debug(
            "graph.select",
            extra={"construct_type": str(construct_type), "bridge": best.name if best else None, "cost": cost},
        )
        return best

    def path(self, construct_type: ConstructType) -> Tuple[Tuple[ConstructType, str], ...]:
        """Full selected chain, depth-first: (construct type, bridge name) per application."""
        return tuple((ct, name) for ct, name, _ in self._walk(construct_type))

    def _walk(self, construct_type: ConstructType) -> List[Tuple[ConstructType, str, int]]:
        self.select(construct_type)
        steps: List[Tuple[ConstructType, str, int]] = []

        def visit(node: ConstructType, depth: int) -> None:
            bridge_type = self._best[node]
            if bridge_type is None:
                return
            steps.append((node, bridge_type.name, depth))
            for produced in bridge_type.produced_types(node):
                visit(produced, depth + 1)

        visit(construct_type, 0)
        return steps

    def explain(self, construct_type: ConstructType) -> SelectionReport:
        cost = self.node_cost(construct_type)
        if cost == math.inf:
            return SelectionReport(
                construct_type=str(construct_type),
                status="unsupported",
                cost_policy=self.cost_policy.name,
            )
        steps = [
            SelectionStep(construct_type=str(ct), bridge=name, depth=depth)
            for ct, name, depth in self._walk(construct_type)
        ]
        return SelectionReport(
            construct_type=str(construct_type),
            status="bridged" if steps else "native",
            total_cost=cost,
            steps=steps,
            cost_policy=self.cost_policy.name,
        )


__all__ = [
    "CostPolicy",
    "UniformCost",
    "ResourceWeightedCost",
    "COST_POLICIES",
    "get_cost_policy",
    "BridgeGraph",
]
