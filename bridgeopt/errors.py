# bridgeopt/errors.py

from __future__ import annotations

from typing import Any, Optional


class BridgeError(Exception):
    """Base class for every error raised by the bridging layer."""


class UnsupportedConstructError(BridgeError):
    """No accepting bridge chain exists, or a bridge rejects a parameterization.

    Raised at add-time; the model is left unchanged.
    """

    def __init__(self, construct_type: Any, reason: Optional[str] = None) -> None:
        self.construct_type = construct_type
        self.reason = reason
        message = f"Unsupported construct: {construct_type}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ReformulationError(BridgeError):
    """A bridge's final touch cannot produce a valid reformulation."""


class InvalidIndexError(BridgeError):
    """Operation on a deleted, foreign, or bridge-owned index."""

    def __init__(self, index: Any, reason: Optional[str] = None) -> None:
        self.index = index
        message = f"Invalid index: {index!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StateError(BridgeError):
    """An operation conflicts with an attached bridge's structural constraints."""


class CatalogCycleError(BridgeError):
    """Adding a bridge type would make the catalog graph cyclic."""


class UnsupportedAttributeError(BridgeError):
    """A bridge or model cannot get/set the requested attribute."""

    def __init__(self, attr: Any, owner: Any) -> None:
        self.attr = attr
        self.owner = owner
        super().__init__(f"Attribute {attr} is not supported by {owner}")


class UnsupportedModificationError(BridgeError):
    """A bridge or model cannot apply the requested modification."""

    def __init__(self, change: Any, owner: Any) -> None:
        self.change = change
        self.owner = owner
        super().__init__(f"Modification {change!r} is not supported by {owner}")


class ScalarFunctionConstantNotZeroError(BridgeError, ValueError):
    """Scalar constraint functions must carry their constant in the set."""

    def __init__(self, constant: Any) -> None:
        self.constant = constant
        super().__init__(
            f"Scalar constraint function has constant {constant!r}; "
            "move the constant into the set before adding the constraint."
        )


__all__ = [
    "BridgeError",
    "UnsupportedConstructError",
    "ReformulationError",
    "InvalidIndexError",
    "StateError",
    "CatalogCycleError",
    "UnsupportedAttributeError",
    "UnsupportedModificationError",
    "ScalarFunctionConstantNotZeroError",
]
