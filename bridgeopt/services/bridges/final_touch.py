# bridgeopt/services/bridges/final_touch.py
"""
Deferred finalization for bridges that depend on problem-wide state.

Bridges declaring `needs_final_touch()` are tracked from creation until
deletion. `run` calls `final_touch` once per live bridge, in creation order.
The first failure aborts the run and propagates unchanged, so the caller
never reaches the solver with a half-finalized problem.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List

from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike

logger = logging.getLogger(__name__)


class FinalTouchCoordinator:
    def __init__(self) -> None:
        # Insertion ordered: creation order of the bridges.
        self._bridges: Dict[int, AbstractBridge] = {}
        self.runs = 0

    def register(self, bridge: AbstractBridge) -> None:
        if bridge.needs_final_touch():
            self._bridges[id(bridge)] = bridge

    def unregister(self, bridge: AbstractBridge) -> None:
        self._bridges.pop(id(bridge), None)

    def __len__(self) -> int:
        return len(self._bridges)

    def __iter__(self) -> Iterator[AbstractBridge]:
        return iter(list(self._bridges.values()))

    @property
    def bridges(self) -> List[AbstractBridge]:
        return list(self._bridges.values())

    def run(self, model: ModelLike) -> int:
        """Finalize every tracked bridge; returns how many were finalized."""
        bridges = self.bridges
        if not bridges:
            return 0
        logger.info("final_touch.start", extra={"count": len(bridges)})
        for bridge in bridges:
            try:
                bridge.final_touch(model)
            except Exception:
                logger.warning("final_touch.failed", extra={"bridge": bridge.name})
                raise
        self.runs += 1
        logger.info("final_touch.done", extra={"count": len(bridges), "runs": self.runs})
        return len(bridges)


__all__ = ["FinalTouchCoordinator"]
