"""
Flag Pattern Components

Pure building blocks of flag recognition, each a function over an immutable
candle window:

- find_poles: impulse moves of at least ``min_length`` candles
- find_consolidation: range-bound window right after a pole
- validate_trendline: two-point trendline with the N-touch rule
- find_breakout: first close clearing the trendline and the range extreme
- find_pullback: retest of the breakout level holding on close

Bullish and bearish variants share one implementation; the direction only
selects which candle extreme is compared and which way the comparison goes.
None of these functions raise for structural absence: they return empty
lists or ``detected=False`` objects.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ...models.market_data import Candle
from ...models.signals import PatternDirection
from ..flag_models import Breakout, Consolidation, Pole, Pullback, TrendlineFit
from .pattern_config import ConsolidationConfig, PoleConfig, TrendlineConfig


logger = logging.getLogger(__name__)


def _is_bullish(direction: PatternDirection) -> bool:
    return PatternDirection(direction) == PatternDirection.BULLISH


def find_poles(
    candles: Sequence[Candle],
    direction: PatternDirection,
    config: Optional[PoleConfig] = None
) -> List[Pole]:
    """
    Find non-overlapping pole candidates, oldest first.

    For each scan index the start walks back while the previous candle sits
    further against the move, and the end walks forward while the next
    candle extends it. Bullish poles measure start low to end high, bearish
    poles start high to end low.

    Args:
        candles: Candle window, oldest first
        direction: Pole direction to look for
        config: Pole thresholds, defaults to ``PoleConfig()``

    Returns:
        Accepted poles in scan order (the last one is the most recent)
    """
    config = config or PoleConfig()
    bullish = _is_bullish(direction)
    n = len(candles)
    poles: List[Pole] = []

    i = config.edge_margin
    while i < n - config.edge_margin:
        start = i
        end = i

        if bullish:
            while start > 0 and candles[start - 1].low > candles[start].low:
                start -= 1
            while end < n - 1 and candles[end + 1].high > candles[end].high:
                end += 1
        else:
            while start > 0 and candles[start - 1].high < candles[start].high:
                start -= 1
            while end < n - 1 and candles[end + 1].low < candles[end].low:
                end += 1

        if end - start >= config.min_length - 1:
            if bullish:
                start_price = candles[start].low
                end_price = candles[end].high
                size = end_price - start_price
            else:
                start_price = candles[start].high
                end_price = candles[end].low
                size = start_price - end_price

            if size / start_price > config.min_move:
                poles.append(Pole(
                    direction=direction,
                    start_index=start,
                    end_index=end,
                    start_price=start_price,
                    end_price=end_price,
                    size=size
                ))
                # Resume after the accepted pole
                i = end + 1
                continue

        i += 1

    return poles


def find_consolidation(
    candles: Sequence[Candle],
    pole: Pole,
    direction: PatternDirection,
    config: Optional[ConsolidationConfig] = None
) -> Consolidation:
    """
    Find the consolidation window following a pole.

    The window starts right after the pole and ends before the first close
    beyond the pole extreme (that candle is the nascent breakout), or at the
    end of the series. Retracement is measured from the pole extreme to the
    opposite consolidation extreme, relative to the pole extreme.
    """
    config = config or ConsolidationConfig()
    bullish = _is_bullish(direction)
    n = len(candles)
    pole_end = pole.end_index

    if pole_end >= n - config.min_length:
        return Consolidation(
            start_index=pole_end + 1,
            rejection_reason=f"only {n - pole_end - 1} candles after the pole"
        )

    pole_extreme = candles[pole_end].high if bullish else candles[pole_end].low
    start = pole_end + 1
    end = n - 1

    for j in range(start, n):
        close = candles[j].close
        if (bullish and close > pole_extreme) or (not bullish and close < pole_extreme):
            end = j - 1
            break

    window = tuple(candles[start:end + 1])
    if len(window) < config.min_length:
        return Consolidation(
            start_index=start,
            end_index=end,
            candles=window,
            rejection_reason=f"window of {len(window)} candles is shorter than {config.min_length}"
        )

    highest_high = max(c.high for c in window)
    lowest_low = min(c.low for c in window)

    if bullish:
        retracement = (pole_extreme - lowest_low) / pole_extreme
    else:
        retracement = (highest_high - pole_extreme) / pole_extreme

    detected = config.min_retracement < retracement < config.max_retracement

    return Consolidation(
        detected=detected,
        start_index=start,
        end_index=end,
        highest_high=highest_high,
        lowest_low=lowest_low,
        range=highest_high - lowest_low,
        retracement=retracement,
        candles=window,
        rejection_reason=None if detected else f"retracement {retracement:.4f} outside band"
    )


def validate_trendline(
    consolidation: Consolidation,
    direction: PatternDirection,
    config: Optional[TrendlineConfig] = None
) -> TrendlineFit:
    """
    Fit the two-point trendline and count touches.

    Bullish flags use a resistance line through the highs, bearish flags a
    support line through the lows. The first anchor is the most extreme
    candle (earliest on ties); the second is the next most extreme candle
    that is not adjacent to it. A candle touches when its extreme lies within
    ``touch_tolerance`` of the line value at its relative index.
    """
    config = config or TrendlineConfig()
    bullish = _is_bullish(direction)
    candles = consolidation.candles

    if not consolidation.detected or len(candles) < config.min_candles:
        return TrendlineFit()

    extremes = [c.high if bullish else c.low for c in candles]

    # Stable sort keeps the earliest index first among equal extremes
    if bullish:
        ranked = sorted(range(len(extremes)), key=lambda k: -extremes[k])
    else:
        ranked = sorted(range(len(extremes)), key=lambda k: extremes[k])

    first = ranked[0]
    second = next((k for k in ranked[1:] if abs(k - first) > 1), None)
    if second is None:
        return TrendlineFit(anchor_points=(first,))

    slope = (extremes[second] - extremes[first]) / Decimal(second - first)
    intercept = extremes[first] - slope * Decimal(first)
    line = TrendlineFit(slope=slope, intercept=intercept, anchor_points=(first, second))

    touches = tuple(
        k for k, value in enumerate(extremes)
        if abs(value - line.value_at(k)) <= abs(line.value_at(k)) * config.touch_tolerance
    )

    return line.model_copy(update={
        'touches': touches,
        'valid': len(touches) >= config.min_touches,
    })


def find_breakout(
    candles: Sequence[Candle],
    consolidation: Consolidation,
    trendline: TrendlineFit,
    direction: PatternDirection
) -> Breakout:
    """
    Find the first close beyond the trendline and the consolidation extreme.

    The trendline is extrapolated to each candidate's relative index
    (``index - consolidation.start_index``).
    """
    if not consolidation.detected or not trendline.valid:
        return Breakout()

    bullish = _is_bullish(direction)
    level = consolidation.highest_high if bullish else consolidation.lowest_low

    for j in range(consolidation.end_index + 1, len(candles)):
        close = candles[j].close
        line_value = trendline.value_at(j - consolidation.start_index)
        if bullish and close > line_value and close > level:
            return Breakout(detected=True, index=j, price=close, level=level)
        if not bullish and close < line_value and close < level:
            return Breakout(detected=True, index=j, price=close, level=level)

    return Breakout()


def find_pullback(
    candles: Sequence[Candle],
    breakout: Breakout,
    direction: PatternDirection
) -> Pullback:
    """Find the first retest of the breakout level after the breakout candle."""
    if not breakout.detected:
        return Pullback()

    bullish = _is_bullish(direction)
    level = breakout.level

    for j in range(breakout.index + 1, len(candles)):
        candle = candles[j]
        if bullish and candle.low <= level < candle.close:
            return Pullback(detected=True, index=j, level=level)
        if not bullish and candle.high >= level > candle.close:
            return Pullback(detected=True, index=j, level=level)

    return Pullback()
