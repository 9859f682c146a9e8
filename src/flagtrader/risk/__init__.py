"""
Risk Management Package

Position sizing and spread estimation for flag pattern trades.
"""

from .position_sizer import PositionSizer, PositionSizingConfig
from .spread import SpreadConfig, SpreadEstimator

__all__ = [
    "PositionSizer",
    "PositionSizingConfig",
    "SpreadConfig",
    "SpreadEstimator",
]
