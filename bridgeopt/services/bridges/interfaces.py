# bridgeopt/services/bridges/interfaces.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, List, Optional, Protocol, Tuple, Union

from bridgeopt.errors import (
    UnsupportedAttributeError,
    UnsupportedConstructError,
    UnsupportedModificationError,
)
from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.functions import FunctionChange, ScalarFunction, VariableIndex
from bridgeopt.schemas.indices import ConstraintIndex, Construct, ConstructType
from bridgeopt.schemas.sets import ScalarSet

Index = Union[VariableIndex, ConstraintIndex]
Shape = Tuple[type, Optional[type]]


class ModelLike(Protocol):
    """Contract of the underlying model store.

    The bridge optimizer implements the same contract, so bridges can be built
    on top of either one.
    """

    def supports_constraint(self, function_type: type, set_type: type) -> bool:  # pragma: no cover - interface only
        ...

    def supports_objective(self, function_type: type) -> bool:  # pragma: no cover - interface only
        ...

    def add_variable(self) -> VariableIndex:  # pragma: no cover - interface only
        ...

    def add_variables(self, n: int) -> List[VariableIndex]:  # pragma: no cover - interface only
        ...

    def add_constraint(self, f: ScalarFunction, s: ScalarSet) -> ConstraintIndex:  # pragma: no cover - interface only
        ...

    def delete(self, index: Index) -> None:  # pragma: no cover - interface only
        ...

    def is_valid(self, index: Index) -> bool:  # pragma: no cover - interface only
        ...

    def modify(self, ci: ConstraintIndex, change: FunctionChange) -> None:  # pragma: no cover - interface only
        ...

    def modify_objective(self, change: FunctionChange) -> None:  # pragma: no cover - interface only
        ...

    def get_attribute(self, attr: Attribute, index: Any = None) -> Any:  # pragma: no cover - interface only
        ...

    def set_attribute(self, attr: Attribute, value: Any, index: Any = None) -> None:  # pragma: no cover - interface only
        ...

    def list_of_constraint_indices(self, function_type: type, set_type: type) -> List[ConstraintIndex]:  # pragma: no cover - interface only
        ...

    def number_of_constraints(self, function_type: type, set_type: type) -> int:  # pragma: no cover - interface only
        ...

    def list_of_constraint_types(self) -> List[Shape]:  # pragma: no cover - interface only
        ...

    def optimize(self) -> None:  # pragma: no cover - interface only
        ...


class AbstractBridge(ABC):
    """Base class of every bridge type.

    A bridge type re-expresses one construct type through more primitive ones.
    Class-level methods describe the catalog edge (accepted shapes, produced
    types, cost); instance methods reconstruct the original construct's view
    from the resources the instance owns.

    Bridges receive the model they build on as an argument. When built by a
    `BridgeOptimizer` this is the optimizer itself, so produced constructs that
    are unsupported get bridged again.
    """

    name: ClassVar[str] = ""
    numeric_types: ClassVar[Tuple[type, ...]] = (float,)
    cost: ClassVar[float] = 1.0

    # -------------------------
    # Catalog edge
    # -------------------------

    @classmethod
    @abstractmethod
    def supported_types(cls) -> Tuple[Shape, ...]:
        """Explicit (function type, set type) pairs accepted; set type None for objectives."""

    @classmethod
    def accepts(cls, construct_type: ConstructType) -> bool:
        return construct_type.shape in cls.supported_types() and construct_type.numeric_type in cls.numeric_types

    @classmethod
    def added_constraint_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        return []

    @classmethod
    def added_objective_type(cls, construct_type: ConstructType) -> Optional[ConstructType]:
        return None

    @classmethod
    def added_variable_count(cls, construct_type: ConstructType) -> int:
        return 0

    @classmethod
    def produced_types(cls, construct_type: ConstructType) -> List[ConstructType]:
        produced = list(cls.added_constraint_types(construct_type))
        objective = cls.added_objective_type(construct_type)
        if objective is not None:
            produced.append(objective)
        return produced

    # -------------------------
    # Construction
    # -------------------------

    @classmethod
    def build(cls, model: ModelLike, construct: Construct) -> Tuple["AbstractBridge", List[Index]]:
        """Build an instance for `construct`; returns the instance and the indices it created."""
        construct_type = construct.construct_type
        if not cls.accepts(construct_type):
            raise UnsupportedConstructError(construct_type, reason=f"rejected by bridge '{cls.name}'")
        bridge = cls.create(model, construct)
        return bridge, bridge.owned_indices()

    @classmethod
    @abstractmethod
    def create(cls, model: ModelLike, construct: Construct) -> "AbstractBridge":
        ...

    # -------------------------
    # Owned resources
    # -------------------------

    def owned_variables(self) -> List[VariableIndex]:
        return []

    def owned_constraints(self) -> List[ConstraintIndex]:
        return []

    def owned_indices(self) -> List[Index]:
        return [*self.owned_variables(), *self.owned_constraints()]

    # -------------------------
    # Attributes / modification / deletion
    # -------------------------

    def get_attribute(self, model: ModelLike, attr: Attribute) -> Any:
        raise UnsupportedAttributeError(attr, f"bridge '{self.name}'")

    def set_attribute(self, model: ModelLike, attr: Attribute, value: Any) -> None:
        raise UnsupportedAttributeError(attr, f"bridge '{self.name}'")

    def modify(self, model: ModelLike, change: FunctionChange) -> None:
        raise UnsupportedModificationError(change, f"bridge '{self.name}'")

    @abstractmethod
    def delete(self, model: ModelLike) -> None:
        """Delete every owned resource. Deleting twice fails in the model with InvalidIndexError."""

    def delete_variable(self, model: ModelLike, variable: VariableIndex) -> None:
        """Drop `variable` from any function the instance stores; it is already gone from the model."""
        return None

    # -------------------------
    # Final touch
    # -------------------------

    def needs_final_touch(self) -> bool:
        return False

    def final_touch(self, model: ModelLike) -> None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} '{self.name}'>"


__all__ = [
    "Index",
    "Shape",
    "ModelLike",
    "AbstractBridge",
]
