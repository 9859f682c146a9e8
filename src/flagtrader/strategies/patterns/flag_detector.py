"""
Single-Timeframe Flag Pattern Detector

Runs the component pipeline (pole -> consolidation -> trendline -> breakout
-> pullback) over the last ``lookback`` candles of one timeframe and derives
entry, stop loss and take profit once a pullback confirms the breakout.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Union

from ...models.market_data import Candle, CurrencyPair, pip_size_for
from ...models.signals import PatternDirection
from ..flag_models import FlagPattern, TimeframeFlagAnalysis
from .flag_components import (
    find_breakout,
    find_consolidation,
    find_poles,
    find_pullback,
    validate_trendline,
)
from .pattern_config import FlagDetectionConfig, get_pattern_config


logger = logging.getLogger(__name__)

PIP_QUANTUM = Decimal('0.1')


class FlagPatternDetector:
    """
    Flag pattern detector for a single timeframe.

    A pattern is ``detected`` once a breakout is found and ``valid`` once the
    pullback gives an entry. Series shorter than the lookback window simply
    report ``detected=False``.
    """

    def __init__(self, config: Optional[FlagDetectionConfig] = None):
        """
        Initialize detector.

        Args:
            config: Detection thresholds, defaults to the global pattern config
        """
        self.config = (config or get_pattern_config()).validate()

    def detect(
        self,
        candles: Sequence[Candle],
        direction: Union[PatternDirection, str],
        pair: Union[CurrencyPair, str] = "EUR/USD"
    ) -> FlagPattern:
        """Evaluate one flag direction over the most recent candles."""
        direction = PatternDirection(direction)
        symbol = str(pair)
        lookback = self.config.lookback

        if len(candles) < lookback:
            return self._rejected(
                symbol, direction, 0,
                f"need {lookback} candles, got {len(candles)}"
            )

        offset = len(candles) - lookback
        window = tuple(candles[offset:])

        poles = find_poles(window, direction, self.config.pole)
        if not poles:
            return self._rejected(symbol, direction, offset, "no pole")
        pole = poles[-1]

        consolidation = find_consolidation(window, pole, direction, self.config.consolidation)
        if not consolidation.detected:
            return self._rejected(
                symbol, direction, offset,
                f"no consolidation ({consolidation.rejection_reason})",
                pole=pole, consolidation=consolidation
            )

        trendline = validate_trendline(consolidation, direction, self.config.trendline)
        if not trendline.valid:
            return self._rejected(
                symbol, direction, offset,
                f"trendline has {trendline.touch_count} touches",
                pole=pole, consolidation=consolidation, trendline=trendline
            )

        breakout = find_breakout(window, consolidation, trendline, direction)
        if not breakout.detected:
            return self._rejected(
                symbol, direction, offset, "no breakout",
                pole=pole, consolidation=consolidation, trendline=trendline, breakout=breakout
            )

        pullback = find_pullback(window, breakout, direction)

        entry = stop_loss = take_profit = None
        stop_loss_pips = take_profit_pips = None

        if pullback.detected:
            entry = pullback.level
            if direction == PatternDirection.BULLISH:
                stop_loss = consolidation.lowest_low
                take_profit = entry + (entry - stop_loss) * self.config.target_ratio
            else:
                stop_loss = consolidation.highest_high
                take_profit = entry - (stop_loss - entry) * self.config.target_ratio

            pip = pip_size_for(pair)
            stop_loss_pips = (abs(entry - stop_loss) / pip).quantize(PIP_QUANTUM, rounding=ROUND_HALF_UP)
            take_profit_pips = (abs(take_profit - entry) / pip).quantize(PIP_QUANTUM, rounding=ROUND_HALF_UP)

        logger.debug(
            f"{symbol} {direction.value} flag: breakout at {breakout.index + offset}, "
            f"pullback {'at ' + str(pullback.index + offset) if pullback.detected else 'pending'}"
        )

        return FlagPattern(
            pair=symbol,
            direction=direction,
            window_offset=offset,
            pole=pole,
            consolidation=consolidation,
            trendline=trendline,
            breakout=breakout,
            pullback=pullback,
            entry=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            stop_loss_pips=stop_loss_pips,
            take_profit_pips=take_profit_pips,
            detected=True,
            valid=entry is not None and stop_loss is not None and pullback.detected
        )

    def analyze(
        self,
        candles: Sequence[Candle],
        pair: Union[CurrencyPair, str] = "EUR/USD"
    ) -> TimeframeFlagAnalysis:
        """Evaluate both flag directions over the same candles."""
        return TimeframeFlagAnalysis(
            pair=str(pair),
            candle_count=len(candles),
            bullish=self.detect(candles, PatternDirection.BULLISH, pair),
            bearish=self.detect(candles, PatternDirection.BEARISH, pair)
        )

    def _rejected(self, symbol: str, direction: PatternDirection, offset: int, reason: str, **stages) -> FlagPattern:
        logger.debug(f"{symbol} {direction.value} flag rejected: {reason}")
        return FlagPattern(
            pair=symbol,
            direction=direction,
            window_offset=offset,
            rejection_reason=reason,
            **stages
        )
