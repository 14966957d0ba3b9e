# bridgeopt/schemas/bridge_report.py
"""
Introspection reports for the bridge catalog and the bridge optimizer.

Used to explain why a construct type is (or is not) supported and which
bridges are currently attached to a model.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


SelectionStatus = Literal["native", "bridged", "unsupported"]


class SelectionStep(BaseModel):
    """One bridge application in a selected chain."""
    model_config = ConfigDict(extra="ignore")

    construct_type: str
    bridge: str
    depth: int = 0


class SelectionReport(BaseModel):
    """
    Result of the least-cost search for one construct type.

    `steps` are listed depth-first: the bridge applied to the requested type
    first, then the bridges applied to each of its produced types.
    """
    model_config = ConfigDict(extra="ignore")

    construct_type: str
    status: SelectionStatus
    total_cost: Optional[float] = None  # None when unsupported
    steps: List[SelectionStep] = Field(default_factory=list)
    cost_policy: str = "uniform"

    @property
    def bridge_names(self) -> List[str]:
        return [s.bridge for s in self.steps]


class ActiveBridge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: str  # outer index, or the objective function type for objective bridges
    bridge: str
    construct_type: str
    owned_variables: int = 0
    owned_constraints: int = 0
    needs_final_touch: bool = False


class ActiveBridgesReport(BaseModel):
    """Bridges currently attached to a bridge optimizer, in creation order."""
    model_config = ConfigDict(extra="ignore")

    catalog: List[str] = Field(default_factory=list)
    constraint_bridges: List[ActiveBridge] = Field(default_factory=list)
    objective_bridges: List[ActiveBridge] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.constraint_bridges) + len(self.objective_bridges)


__all__ = [
    "SelectionStatus",
    "SelectionStep",
    "SelectionReport",
    "ActiveBridge",
    "ActiveBridgesReport",
]
