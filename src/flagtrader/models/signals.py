"""
Signal Enumerations

Direction and verdict enumerations shared by the pattern detector, the
decision engine and the position sizer:
- PatternDirection: Which way a flag pattern points
- TradeDirection: BUY / SELL / NEUTRAL trade side
- NewsSentiment: Verdict supplied by the news collaborator
- CalendarRecommendation: Verdict supplied by the economic-calendar collaborator
- DecisionAction: TRADE or WAIT
"""

from enum import Enum
from typing import Optional


class PatternDirection(str, Enum):
    """Flag pattern direction."""
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def trade_direction(self) -> "TradeDirection":
        return TradeDirection.BUY if self is PatternDirection.BULLISH else TradeDirection.SELL


class TradeDirection(str, Enum):
    """Trade side derived from a confirmed pattern."""
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"

    @classmethod
    def from_value(cls, value) -> "TradeDirection":
        """Lenient parsing: anything that is not SELL/NEUTRAL is a BUY."""
        if isinstance(value, TradeDirection):
            return value
        text = str(value or "").strip().upper()
        if text == "SELL":
            return cls.SELL
        if text == "NEUTRAL":
            return cls.NEUTRAL
        return cls.BUY


class NewsSentiment(str, Enum):
    """Aggregated news sentiment verdict."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"

    def opposes(self, direction: Optional[TradeDirection]) -> bool:
        """True when the sentiment points against a trade direction."""
        return (
            (direction == TradeDirection.BUY and self is NewsSentiment.BEARISH)
            or (direction == TradeDirection.SELL and self is NewsSentiment.BULLISH)
        )

    def supports(self, direction: Optional[TradeDirection]) -> bool:
        return (
            (direction == TradeDirection.BUY and self is NewsSentiment.BULLISH)
            or (direction == TradeDirection.SELL and self is NewsSentiment.BEARISH)
        )


class CalendarRecommendation(str, Enum):
    """Economic calendar verdict for the traded currencies."""
    PROCEED = "PROCEED"
    CAUTION = "CAUTION"
    AVOID = "AVOID"


class DecisionAction(str, Enum):
    """Final decision action."""
    TRADE = "TRADE"
    WAIT = "WAIT"
