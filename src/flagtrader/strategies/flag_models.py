"""
Flag Pattern Models

Immutable value objects produced by the flag pattern pipeline:

    Pole -> Consolidation -> TrendlineFit -> Breakout -> Pullback
         -> FlagPattern (per timeframe, per direction)
         -> TimeframeFlagAnalysis (both directions for one timeframe)
         -> MultiTimeframeResult (structural + entry timeframe agreement)

All indices are positions inside the analyzed window (the last ``lookback``
candles); ``FlagPattern.window_offset`` maps them back onto the series the
caller supplied.
"""

from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..models.market_data import Candle
from ..models.signals import PatternDirection, TradeDirection


class Pole(BaseModel):
    """Impulse move preceding a flag."""

    model_config = ConfigDict(frozen=True)

    direction: PatternDirection
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    start_price: Decimal = Field(..., description="Low (bullish) or high (bearish) at the start")
    end_price: Decimal = Field(..., description="High (bullish) or low (bearish) at the end")
    size: Decimal = Field(..., ge=0)

    @computed_field
    @property
    def length(self) -> int:
        """Number of candles in the pole, both ends included."""
        return self.end_index - self.start_index + 1

    @property
    def move_percent(self) -> Decimal:
        return self.size / self.start_price * Decimal('100')


class Consolidation(BaseModel):
    """
    Range-bound segment right after a pole.

    Rejected windows keep ``detected=False`` and a ``rejection_reason``; their
    price fields may be ``None`` when no window could be formed at all.
    """

    model_config = ConfigDict(frozen=True)

    detected: bool = False
    start_index: int = 0
    end_index: int = -1
    highest_high: Optional[Decimal] = None
    lowest_low: Optional[Decimal] = None
    range: Optional[Decimal] = None
    retracement: Optional[Decimal] = None
    candles: Tuple[Candle, ...] = ()
    rejection_reason: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.candles)


class TrendlineFit(BaseModel):
    """Two-point trendline over the consolidation, in relative indices."""

    model_config = ConfigDict(frozen=True)

    valid: bool = False
    slope: Decimal = Decimal('0')
    intercept: Decimal = Decimal('0')
    anchor_points: Tuple[int, ...] = ()
    touches: Tuple[int, ...] = ()

    @computed_field
    @property
    def touch_count(self) -> int:
        return len(self.touches)

    def value_at(self, x: int) -> Decimal:
        """Line value at relative index ``x``."""
        return self.slope * Decimal(x) + self.intercept


class Breakout(BaseModel):
    """First close beyond both the trendline and the consolidation extreme."""

    model_config = ConfigDict(frozen=True)

    detected: bool = False
    index: Optional[int] = None
    price: Optional[Decimal] = None
    level: Optional[Decimal] = None


class Pullback(BaseModel):
    """Retest of the breakout level with the close holding beyond it."""

    model_config = ConfigDict(frozen=True)

    detected: bool = False
    index: Optional[int] = None
    level: Optional[Decimal] = None


class FlagPattern(BaseModel):
    """Flag pattern evaluation for one timeframe and one direction."""

    model_config = ConfigDict(frozen=True)

    pair: str
    direction: PatternDirection
    window_offset: int = Field(default=0, ge=0)

    pole: Optional[Pole] = None
    consolidation: Optional[Consolidation] = None
    trendline: Optional[TrendlineFit] = None
    breakout: Optional[Breakout] = None
    pullback: Optional[Pullback] = None

    entry: Optional[Decimal] = None
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    stop_loss_pips: Optional[Decimal] = None
    take_profit_pips: Optional[Decimal] = None

    detected: bool = False
    valid: bool = False
    rejection_reason: Optional[str] = None

    @computed_field
    @property
    def touch_count(self) -> int:
        return self.trendline.touch_count if self.trendline else 0

    @property
    def trade_direction(self) -> TradeDirection:
        return self.direction.trade_direction


class TimeframeFlagAnalysis(BaseModel):
    """Both flag directions evaluated over the same candle window."""

    model_config = ConfigDict(frozen=True)

    pair: str
    candle_count: int = Field(..., ge=0)
    bullish: FlagPattern
    bearish: FlagPattern

    def for_direction(self, direction: PatternDirection) -> FlagPattern:
        return self.bullish if direction == PatternDirection.BULLISH else self.bearish

    @property
    def any_detected(self) -> bool:
        return self.bullish.detected or self.bearish.detected


class MultiTimeframeResult(BaseModel):
    """Agreement between the structural and entry timeframes."""

    model_config = ConfigDict(frozen=True)

    pair: str
    pattern_detected: bool = False
    direction: TradeDirection = TradeDirection.NEUTRAL
    entry: Optional[Decimal] = None
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    stop_loss_pips: Optional[int] = None
    take_profit_pips: Optional[int] = None
    pattern_quality: int = Field(default=0, ge=0, le=100)
    valid_trade: bool = False
    structural_analysis: TimeframeFlagAnalysis
    entry_analysis: TimeframeFlagAnalysis

    @property
    def pattern_direction(self) -> Optional[PatternDirection]:
        if self.direction == TradeDirection.BUY:
            return PatternDirection.BULLISH
        if self.direction == TradeDirection.SELL:
            return PatternDirection.BEARISH
        return None

    @property
    def entry_pattern(self) -> Optional[FlagPattern]:
        direction = self.pattern_direction
        return self.entry_analysis.for_direction(direction) if direction else None

    @property
    def structural_pattern(self) -> Optional[FlagPattern]:
        direction = self.pattern_direction
        return self.structural_analysis.for_direction(direction) if direction else None
