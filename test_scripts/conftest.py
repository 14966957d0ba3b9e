# Shared fixtures for bridge optimizer tests
from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# Ensure project root on sys.path for `bridgeopt` imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bridgeopt.config import Settings
from bridgeopt.schemas import (
    EqualTo,
    GreaterThan,
    Interval,
    LessThan,
    Parameter,
    ScalarAffineFunction,
    ScalarAffineTerm,
    VariableIndex,
)
from bridgeopt.services.bridges import BridgeOptimizer
from bridgeopt.services.solvers import InMemoryModel

logger = logging.getLogger(__name__)

# A solver that only takes affine rows written as `<=`.
LESS_THAN_ONLY = {(ScalarAffineFunction, LessThan)}

AFFINE_ROWS = {
    (ScalarAffineFunction, LessThan),
    (ScalarAffineFunction, GreaterThan),
    (ScalarAffineFunction, EqualTo),
    (ScalarAffineFunction, Interval),
}


def affine(*terms, constant: float = 0.0) -> ScalarAffineFunction:
    """affine((2.0, x), (1.0, y)) -> 2x + y"""
    return ScalarAffineFunction([ScalarAffineTerm(c, v) for c, v in terms], constant)


@pytest.fixture
def test_settings() -> Settings:
    """Settings independent of the developer's .env."""
    return Settings(
        _env_file=None,
        BRIDGE_COST_POLICY="uniform",
        BRIDGE_DEFAULT_SET=None,
        BRIDGE_INCLUDE=[],
        BRIDGE_EXCLUDE=[],
        BRIDGE_CATALOG_CONFIG_FILE=None,
    )


@pytest.fixture
def model() -> InMemoryModel:
    """In-memory model with the linear subset as native support."""
    return InMemoryModel()


@pytest.fixture
def bridged(model, test_settings) -> BridgeOptimizer:
    """Default catalog over the linear in-memory model."""
    return BridgeOptimizer(model, config=test_settings)


@pytest.fixture
def less_than_model() -> InMemoryModel:
    return InMemoryModel(
        supported_constraints=LESS_THAN_ONLY | {(VariableIndex, Parameter), (VariableIndex, EqualTo)},
        supported_objectives={VariableIndex},
    )


@pytest.fixture
def less_than_bridged(less_than_model, test_settings) -> BridgeOptimizer:
    """Default catalog over a model that only takes `affine <= constant` rows."""
    return BridgeOptimizer(less_than_model, config=test_settings)
