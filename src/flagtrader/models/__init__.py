"""
Flagtrader Models Package

Value objects for candles, currency pairs, signal enumerations, decisions
and position sizing.
"""

from .market_data import (
    Candle,
    CurrencyPair,
    Timeframe,
    candles_from_records,
    pip_size_for,
    validate_candle_series,
)

from .signals import (
    CalendarRecommendation,
    DecisionAction,
    NewsSentiment,
    PatternDirection,
    TradeDirection,
)

from .trading import (
    Decision,
    PositionSizing,
    TargetValidation,
    TradeLevels,
)

__all__ = [
    "Candle",
    "CurrencyPair",
    "Timeframe",
    "candles_from_records",
    "pip_size_for",
    "validate_candle_series",
    "CalendarRecommendation",
    "DecisionAction",
    "NewsSentiment",
    "PatternDirection",
    "TradeDirection",
    "Decision",
    "PositionSizing",
    "TargetValidation",
    "TradeLevels",
]
