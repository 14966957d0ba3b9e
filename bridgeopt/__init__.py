# bridgeopt/__init__.py
"""Automatic reformulation ("bridging") of optimization model constructs."""
from bridgeopt.errors import (
    BridgeError,
    CatalogCycleError,
    InvalidIndexError,
    ReformulationError,
    ScalarFunctionConstantNotZeroError,
    StateError,
    UnsupportedAttributeError,
    UnsupportedConstructError,
    UnsupportedModificationError,
)
from bridgeopt.services.bridges import BridgeOptimizer, single_bridge_optimizer
from bridgeopt.services.solvers import InMemoryModel

__version__ = "0.1.0"

__all__ = [
    "BridgeError",
    "CatalogCycleError",
    "InvalidIndexError",
    "ReformulationError",
    "ScalarFunctionConstantNotZeroError",
    "StateError",
    "UnsupportedAttributeError",
    "UnsupportedConstructError",
    "UnsupportedModificationError",
    "BridgeOptimizer",
    "single_bridge_optimizer",
    "InMemoryModel",
]
