"""
Flagtrader: Flag Pattern Detection & Trade Decision Engine

Detects bull and bear flag patterns on forex candles across a structural
and an entry timeframe, decides whether to trade with news and economic
calendar context, and sizes the position with spread-aware price levels.
"""

__version__ = "0.1.0"
__author__ = "Flagtrader Team"
__description__ = "Flag Pattern Detection & Trade Decision Engine"

# Package-level imports for convenience
from .config import Config
from .logger import get_logger

__all__ = ["Config", "get_logger", "__version__"]
