from .single_constraint import SingleConstraintBridge
from .flip_sign import GreaterToLessBridge, LessToGreaterBridge
from .functionize import ScalarFunctionizeBridge
from .parameter_to_equal_to import ParameterToEqualToBridge
from .split_interval import SplitIntervalBridge
from .fix_parametric_variables import FixParametricVariablesBridge

__all__ = [
    "SingleConstraintBridge",
    "GreaterToLessBridge",
    "LessToGreaterBridge",
    "ScalarFunctionizeBridge",
    "ParameterToEqualToBridge",
    "SplitIntervalBridge",
    "FixParametricVariablesBridge",
]
