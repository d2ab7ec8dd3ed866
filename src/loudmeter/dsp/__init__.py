from .k_weighting import KWeightingFilter
from .oversampling import OVERSAMPLE_FACTOR, PolyphaseInterpolator

__all__ = [
    "KWeightingFilter",
    "OVERSAMPLE_FACTOR",
    "PolyphaseInterpolator",
]
