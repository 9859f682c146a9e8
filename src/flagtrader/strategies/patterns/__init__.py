"""
Flag Pattern Recognition Module

Component functions (pole, consolidation, trendline, breakout, pullback),
the single-timeframe detector and its configuration.
"""

from .flag_detector import FlagPatternDetector
from .pattern_config import FlagDetectionConfig, get_pattern_config

__all__ = ["FlagPatternDetector", "FlagDetectionConfig", "get_pattern_config"]
