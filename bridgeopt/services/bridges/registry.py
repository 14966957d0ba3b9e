# bridgeopt/services/bridges/registry.py
"""
Bridge catalog.

`BRIDGE_TYPES` is the static registry of every known bridge type, in
registration order (earlier registration wins cost ties). `BridgeCatalog` is
the active, mutable subset used by one bridge optimizer: an explicit lookup
table keyed by ((function type, set type), numeric type).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple, Type, Union

from bridgeopt.config import Settings, settings as default_settings
from bridgeopt.errors import CatalogCycleError
from bridgeopt.schemas.indices import ConstructType, type_label
from bridgeopt.services.bridges.constraint import (
    FixParametricVariablesBridge,
    GreaterToLessBridge,
    LessToGreaterBridge,
    ParameterToEqualToBridge,
    ScalarFunctionizeBridge,
    SplitIntervalBridge,
)
from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike, Shape
from bridgeopt.services.bridges.objective import SlackBridge

logger = logging.getLogger(__name__)

BridgeRef = Union[str, Type[AbstractBridge]]


@dataclass(frozen=True)
class BridgeInfo:
    name: str
    label: str
    description: str
    bridge_type: Type[AbstractBridge]
    default: bool = True


BRIDGE_TYPES: Dict[str, BridgeInfo] = {
    info.name: info
    for info in (
        BridgeInfo(
            name=ScalarFunctionizeBridge.name,
            label="Functionize",
            description="x in S -> 1.0 * x in S (affine)",
            bridge_type=ScalarFunctionizeBridge,
        ),
        BridgeInfo(
            name=ParameterToEqualToBridge.name,
            label="Parameter to EqualTo",
            description="x in Parameter(p) -> x in EqualTo(p)",
            bridge_type=ParameterToEqualToBridge,
        ),
        BridgeInfo(
            name=SplitIntervalBridge.name,
            label="Split interval",
            description="l <= f <= u -> f >= l, f <= u",
            bridge_type=SplitIntervalBridge,
        ),
        BridgeInfo(
            name=GreaterToLessBridge.name,
            label="Greater to less",
            description="f >= l -> -f <= -l",
            bridge_type=GreaterToLessBridge,
        ),
        BridgeInfo(
            name=LessToGreaterBridge.name,
            label="Less to greater",
            description="f <= u -> -f >= -u (inverse of greater_to_less)",
            bridge_type=LessToGreaterBridge,
            default=False,
        ),
        BridgeInfo(
            name=FixParametricVariablesBridge.name,
            label="Fix parametric variables",
            description="quadratic f in S -> affine g in S, substituting Parameter values in quadratic terms",
            bridge_type=FixParametricVariablesBridge,
            default=False,
        ),
        BridgeInfo(
            name=SlackBridge.name,
            label="Slack objective",
            description="min g(x) -> min s subject to g(x) - s <= 0",
            bridge_type=SlackBridge,
        ),
    )
}


def get_bridge_type(ref: BridgeRef) -> Type[AbstractBridge]:
    if isinstance(ref, type) and issubclass(ref, AbstractBridge):
        return ref
    info = BRIDGE_TYPES.get(str(ref))
    if not info:
        raise ValueError(f"Unknown bridge type: {ref}")
    return info.bridge_type


def default_bridge_names(config: Optional[Settings] = None) -> List[str]:
    """Names of the default active bridges, in registration order."""
    cfg = config or default_settings
    if cfg.BRIDGE_DEFAULT_SET is not None:
        names = list(cfg.BRIDGE_DEFAULT_SET)
    else:
        names = [name for name, info in BRIDGE_TYPES.items() if info.default]
    names.extend(n for n in cfg.BRIDGE_INCLUDE if n not in names)
    excluded = set(cfg.BRIDGE_EXCLUDE)
    return [n for n in names if n not in excluded]


def _shape_edges(bridge_type: Type[AbstractBridge]) -> Dict[Shape, List[Shape]]:
    edges: Dict[Shape, List[Shape]] = {}
    numeric = bridge_type.numeric_types[0]
    for shape in bridge_type.supported_types():
        ct = ConstructType(shape[0], shape[1], numeric)
        edges[shape] = [p.shape for p in bridge_type.produced_types(ct)]
    return edges


def _find_cycle(bridge_types: Iterable[Type[AbstractBridge]]) -> Optional[List[Shape]]:
    """Return one cycle of the shape-level graph, or None if it is acyclic."""
    graph: Dict[Shape, Set[Shape]] = {}
    for bt in bridge_types:
        for src, dsts in _shape_edges(bt).items():
            graph.setdefault(src, set()).update(dsts)

    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[Shape, int] = {}
    stack: List[Shape] = []

    def visit(node: Shape) -> Optional[List[Shape]]:
        color[node] = GREY
        stack.append(node)
        for nxt in sorted(graph.get(node, ()), key=lambda s: type_label(*s)):
            state = color.get(nxt, WHITE)
            if state == GREY:
                return stack[stack.index(nxt):] + [nxt]
            if state == WHITE:
                found = visit(nxt)
                if found:
                    return found
        stack.pop()
        color[node] = BLACK
        return None

    for node in sorted(graph, key=lambda s: type_label(*s)):
        if color.get(node, WHITE) == WHITE:
            found = visit(node)
            if found:
                return found
    return None


class BridgeCatalog:
    """Active bridge types of one bridge optimizer.

    Any change bumps `version`, which invalidates cached selections.
    """

    def __init__(self, model: ModelLike, bridge_types: Iterable[BridgeRef] = ()) -> None:
        self.model = model
        self._bridge_types: List[Type[AbstractBridge]] = []
        self._table: Dict[Tuple[Shape, type], List[Type[AbstractBridge]]] = {}
        self._version = 0
        for bt in bridge_types:
            self.add(bt)

    @property
    def version(self) -> int:
        return self._version

    @property
    def bridge_types(self) -> Tuple[Type[AbstractBridge], ...]:
        return tuple(self._bridge_types)

    @property
    def names(self) -> List[str]:
        return [bt.name for bt in self._bridge_types]

    def __contains__(self, ref: BridgeRef) -> bool:
        return get_bridge_type(ref) in self._bridge_types

    def __len__(self) -> int:
        return len(self._bridge_types)

    def add(self, ref: BridgeRef) -> None:
        bridge_type = get_bridge_type(ref)
        if bridge_type in self._bridge_types:
            return
        cycle = _find_cycle([*self._bridge_types, bridge_type])
        if cycle:
            path = " -> ".join(type_label(*s) for s in cycle)
            logger.warning("catalog.cycle_rejected", extra={"bridge": bridge_type.name, "cycle": path})
            raise CatalogCycleError(f"Adding bridge '{bridge_type.name}' creates a cycle: {path}")
        self._bridge_types.append(bridge_type)
        self._rebuild()
        logger.debug("catalog.add", extra={"bridge": bridge_type.name, "count": len(self._bridge_types)})

    def remove(self, ref: BridgeRef) -> None:
        bridge_type = get_bridge_type(ref)
        if bridge_type not in self._bridge_types:
            raise ValueError(f"Bridge '{bridge_type.name}' is not in the catalog")
        self._bridge_types.remove(bridge_type)
        self._rebuild()
        logger.debug("catalog.remove", extra={"bridge": bridge_type.name, "count": len(self._bridge_types)})

    def _rebuild(self) -> None:
        table: Dict[Tuple[Shape, type], List[Type[AbstractBridge]]] = {}
        for bt in self._bridge_types:
            for shape in bt.supported_types():
                for numeric in bt.numeric_types:
                    table.setdefault((shape, numeric), []).append(bt)
        self._table = table
        self._version += 1

    def candidates(self, construct_type: ConstructType) -> List[Type[AbstractBridge]]:
        """Bridge types able to consume `construct_type`, in registration order."""
        return list(self._table.get((construct_type.shape, construct_type.numeric_type), ()))

    def is_natively_accepted(self, construct_type: ConstructType) -> bool:
        if construct_type.is_objective:
            return self.model.supports_objective(construct_type.function_type)
        return self.model.supports_constraint(construct_type.function_type, construct_type.set_type)


def default_catalog(model: ModelLike, config: Optional[Settings] = None) -> BridgeCatalog:
    return BridgeCatalog(model, default_bridge_names(config))


__all__ = [
    "BridgeInfo",
    "BRIDGE_TYPES",
    "get_bridge_type",
    "default_bridge_names",
    "BridgeCatalog",
    "default_catalog",
]
