# bridgeopt/services/bridges/constraint/single_constraint.py

from __future__ import annotations

from typing import Any, List, Optional

from bridgeopt.schemas.attributes import Attribute
from bridgeopt.schemas.indices import ConstraintIndex
from bridgeopt.services.bridges.interfaces import AbstractBridge, ModelLike


class SingleConstraintBridge(AbstractBridge):
    """A constraint bridge that owns exactly one constraint and no variables.

    Subclasses override `_to_outer` / `_to_inner` for the attributes whose
    value changes across the reformulation; everything else passes through.
    """

    PASSTHROUGH = (
        Attribute.CONSTRAINT_FUNCTION,
        Attribute.CONSTRAINT_SET,
        Attribute.CONSTRAINT_PRIMAL,
        Attribute.CONSTRAINT_DUAL,
        Attribute.CONSTRAINT_PRIMAL_START,
        Attribute.CONSTRAINT_DUAL_START,
    )

    def __init__(self, constraint: ConstraintIndex) -> None:
        self.constraint = constraint

    def owned_constraints(self) -> List[ConstraintIndex]:
        return [self.constraint]

    def _to_outer(self, attr: Attribute, value: Any) -> Any:
        return value

    def _to_inner(self, attr: Attribute, value: Any) -> Any:
        return value

    def get_attribute(self, model: ModelLike, attr: Attribute) -> Any:
        if attr not in self.PASSTHROUGH:
            return super().get_attribute(model, attr)
        value = model.get_attribute(attr, self.constraint)
        if value is None:
            return None
        return self._to_outer(attr, value)

    def set_attribute(self, model: ModelLike, attr: Attribute, value: Any) -> None:
        if attr not in self.PASSTHROUGH or attr in (Attribute.CONSTRAINT_PRIMAL, Attribute.CONSTRAINT_DUAL):
            return super().set_attribute(model, attr, value)
        inner: Optional[Any] = None if value is None else self._to_inner(attr, value)
        model.set_attribute(attr, inner, self.constraint)

    def delete(self, model: ModelLike) -> None:
        model.delete(self.constraint)


__all__ = ["SingleConstraintBridge"]
