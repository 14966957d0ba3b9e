# bridgeopt/services/solvers/__init__.py
"""
Model stores the bridge optimizer can sit on.

`InMemoryModel` stores the problem and exposes settable results (used as a
mock solver). `OrtoolsLinearModel` solves the linear subset with OR-Tools;
import it from its module so `ortools` stays an import-time dependency of
that module only.
"""
from .in_memory_model import InMemoryModel, LINEAR_CONSTRAINTS, LINEAR_OBJECTIVES

__all__ = ["InMemoryModel", "LINEAR_CONSTRAINTS", "LINEAR_OBJECTIVES"]
