"""
Multi-Timeframe Flag Confirmation

Runs the flag detector on a structural (higher) timeframe and an entry
(lower) timeframe and only reports a pattern when both agree on direction.

Key features:
- Bullish agreement is checked before bearish agreement
- Entry and stop loss come from the entry timeframe, falling back to the
  structural timeframe's levels
- Stop distance rounded to whole pips, target at ``target_ratio`` times it
- Quality score rewarding timeframes whose trendline meets the touch rule
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Union

from ..models.market_data import Candle, CurrencyPair, pip_size_for
from ..models.signals import PatternDirection
from .flag_models import FlagPattern, MultiTimeframeResult, TimeframeFlagAnalysis
from .patterns.flag_detector import FlagPatternDetector
from .patterns.pattern_config import FlagDetectionConfig, get_pattern_config


logger = logging.getLogger(__name__)


class MultiTimeframeConfirmer:
    """
    Confirms flag patterns across the structural and entry timeframes.
    """

    def __init__(
        self,
        config: Optional[FlagDetectionConfig] = None,
        detector: Optional[FlagPatternDetector] = None
    ):
        """
        Initialize the confirmer.

        Args:
            config: Detection thresholds, defaults to the global pattern config
            detector: Detector override; its config replaces ``config`` so
                detection, targets and quality use the same thresholds
        """
        if detector is not None:
            self.config = detector.config
            self.detector = detector
        else:
            self.config = config or get_pattern_config()
            self.detector = FlagPatternDetector(self.config)

    def confirm(
        self,
        structural_candles: Sequence[Candle],
        entry_candles: Sequence[Candle],
        pair: Union[CurrencyPair, str] = "EUR/USD"
    ) -> MultiTimeframeResult:
        """
        Evaluate both timeframes and combine them.

        Args:
            structural_candles: Higher timeframe candles, oldest first
            entry_candles: Lower timeframe candles, oldest first
            pair: Currency pair (drives pip size)

        Returns:
            MultiTimeframeResult, ``pattern_detected=False`` and NEUTRAL when
            the timeframes do not agree
        """
        symbol = str(pair)

        structural = self.detector.analyze(structural_candles, pair)
        entry = self.detector.analyze(entry_candles, pair)

        result = None
        for direction in (PatternDirection.BULLISH, PatternDirection.BEARISH):
            structural_pattern = structural.for_direction(direction)
            entry_pattern = entry.for_direction(direction)
            if structural_pattern.detected and entry_pattern.detected:
                result = self._combine(symbol, pair, direction, structural_pattern, entry_pattern, structural, entry)
                break

        if result is None:
            result = MultiTimeframeResult(
                pair=symbol,
                structural_analysis=structural,
                entry_analysis=entry
            )

        if result.pattern_detected:
            logger.info(
                f"{symbol}: {result.direction.value} flag confirmed on both timeframes "
                f"(quality {result.pattern_quality}, valid trade: {result.valid_trade})"
            )
        else:
            logger.info(f"{symbol}: no multi-timeframe flag agreement")

        return result

    def _combine(
        self,
        symbol: str,
        pair: Union[CurrencyPair, str],
        direction: PatternDirection,
        structural_pattern: FlagPattern,
        entry_pattern: FlagPattern,
        structural: TimeframeFlagAnalysis,
        entry: TimeframeFlagAnalysis
    ) -> MultiTimeframeResult:
        """Build the agreed result for one direction."""
        entry_price = entry_pattern.entry if entry_pattern.entry is not None else structural_pattern.entry
        stop_loss = entry_pattern.stop_loss if entry_pattern.stop_loss is not None else structural_pattern.stop_loss

        take_profit = None
        stop_loss_pips = None
        take_profit_pips = None

        if entry_price is not None and stop_loss is not None:
            pip = pip_size_for(pair)
            stop_loss_pips = int((abs(entry_price - stop_loss) / pip).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
            take_profit_pips = int((Decimal(stop_loss_pips) * self.config.target_ratio).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
            distance = Decimal(take_profit_pips) * pip
            take_profit = entry_price + distance if direction == PatternDirection.BULLISH else entry_price - distance

        return MultiTimeframeResult(
            pair=symbol,
            pattern_detected=True,
            direction=direction.trade_direction,
            entry=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            stop_loss_pips=stop_loss_pips,
            take_profit_pips=take_profit_pips,
            pattern_quality=self.pattern_quality(structural_pattern, entry_pattern),
            valid_trade=entry_pattern.valid,
            structural_analysis=structural,
            entry_analysis=entry
        )

    def pattern_quality(self, *patterns: FlagPattern) -> int:
        """Base quality plus a bonus per timeframe meeting the touch rule, capped."""
        quality = self.config.quality
        score = quality.base_quality + quality.touch_bonus * sum(
            1 for p in patterns if p.touch_count >= quality.min_touches_for_bonus
        )
        return min(quality.max_quality, score)

