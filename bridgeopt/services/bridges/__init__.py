# bridgeopt/services/bridges/__init__.py
"""
Bridging layer: bridge protocol, catalog, least-cost selection, the bridge
optimizer and final-touch coordination.
"""
from .interfaces import AbstractBridge, ModelLike
from .registry import BRIDGE_TYPES, BridgeCatalog, BridgeInfo, default_catalog, get_bridge_type
from .graph import BridgeGraph, CostPolicy, ResourceWeightedCost, UniformCost, get_cost_policy
from .final_touch import FinalTouchCoordinator
from .optimizer import BridgeOptimizer, single_bridge_optimizer

__all__ = [
    "AbstractBridge",
    "ModelLike",
    "BRIDGE_TYPES",
    "BridgeCatalog",
    "BridgeInfo",
    "default_catalog",
    "get_bridge_type",
    "BridgeGraph",
    "CostPolicy",
    "ResourceWeightedCost",
    "UniformCost",
    "get_cost_policy",
    "FinalTouchCoordinator",
    "BridgeOptimizer",
    "single_bridge_optimizer",
]
