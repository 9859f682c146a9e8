"""
Trade Decision Engine

Fuses the multi-timeframe flag result with the news sentiment and economic
calendar verdicts into a TRADE/WAIT decision with reasoning and risk notes.

Policy:
1. Calendar AVOID always waits; the pattern is not evaluated.
2. A detected and valid pattern trades in its direction, with the pattern
   quality as confidence.
3. Anything else waits, explaining whether a pattern is still forming.
4. Risks are added independently: calendar CAUTION, news opposing the
   pattern direction.

The engine is pure and never raises; unknown verdict strings fall back to
NEUTRAL sentiment / PROCEED recommendation.
"""

import logging
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from ..config_manager import ConfigManager, get_config_manager
from ..models.signals import CalendarRecommendation, DecisionAction, NewsSentiment, TradeDirection
from ..models.trading import Decision
from .flag_models import MultiTimeframeResult


logger = logging.getLogger(__name__)


class DecisionConfig(BaseModel):
    """Decision policy settings."""

    max_stop_loss_pips: Optional[int] = Field(
        default=None,
        description="Wait instead of trading when the stop is wider than this (disabled when None)",
        ge=1
    )

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "DecisionConfig":
        """Build from the ``decision`` section of the trading config."""
        manager = manager or get_config_manager()
        section = manager.get_section('trading', 'decision')
        return cls(**section) if section else cls()


class DecisionEngine:
    """
    Decision policy over a confirmed flag, news sentiment and calendar risk.
    """

    def __init__(self, config: Optional[DecisionConfig] = None):
        self.config = config or DecisionConfig()

    def decide(
        self,
        result: Optional[MultiTimeframeResult],
        sentiment: Union[NewsSentiment, str, None] = NewsSentiment.NEUTRAL,
        recommendation: Union[CalendarRecommendation, str, None] = CalendarRecommendation.PROCEED
    ) -> Decision:
        """
        Make the trading decision.

        Args:
            result: Multi-timeframe flag result (None is treated as no pattern)
            sentiment: News sentiment verdict
            recommendation: Economic calendar verdict

        Returns:
            Decision with action, direction, confidence, reasoning and risks
        """
        sentiment = self._coerce(NewsSentiment, sentiment, NewsSentiment.NEUTRAL)
        recommendation = self._coerce(CalendarRecommendation, recommendation, CalendarRecommendation.PROCEED)

        if recommendation == CalendarRecommendation.AVOID:
            logger.info("Decision: WAIT (high impact economic event)")
            return Decision(
                action=DecisionAction.WAIT,
                reasoning=["High impact economic event scheduled"],
                risks=["Economic calendar shows high-risk period"]
            )

        reasoning: List[str] = []
        risks: List[str] = []
        action = DecisionAction.WAIT
        direction: Optional[TradeDirection] = None
        confidence = 0

        detected = result is not None and result.pattern_detected
        pattern_direction = result.direction if detected else TradeDirection.NEUTRAL

        if detected and result.valid_trade:
            limit = self.config.max_stop_loss_pips
            if limit is not None and result.stop_loss_pips is not None and result.stop_loss_pips > limit:
                reasoning.append(
                    f"Stop loss of {result.stop_loss_pips} pips exceeds the {limit} pip limit"
                )
            else:
                action = DecisionAction.TRADE
                direction = result.direction
                confidence = result.pattern_quality
                reasoning.extend(self._trade_reasoning(result, sentiment))
        elif detected:
            reasoning.append(
                f"{self._flag_name(result.direction)} flag pattern detected but incomplete "
                f"(no pullback to the breakout level yet)"
            )
        else:
            reasoning.append("No flag pattern forming on both timeframes")

        if recommendation == CalendarRecommendation.CAUTION:
            risks.append("Multiple economic events today - exercise caution")
        if sentiment.opposes(pattern_direction):
            risks.append(
                f"News sentiment ({sentiment.value}) conflicts with the "
                f"{self._flag_name(pattern_direction).lower()} pattern"
            )

        logger.info(f"Decision: {action.value} {direction.value if direction else ''} (confidence {confidence})")

        return Decision(
            action=action,
            direction=direction,
            confidence=confidence,
            reasoning=reasoning,
            risks=risks
        )

    def _trade_reasoning(self, result: MultiTimeframeResult, sentiment: NewsSentiment) -> List[str]:
        reasons = [
            "Flag pattern confirmed on structural and entry timeframes",
            "Trendline validated with at least 3 touches",
            f"{self._flag_name(result.direction)} flag: {result.direction.value} on pullback to the breakout level",
            f"Stop loss {result.stop_loss_pips} pips, take profit {result.take_profit_pips} pips",
        ]
        if sentiment.supports(result.direction):
            reasons.append(f"News sentiment ({sentiment.value}) supports the trade direction")
        return reasons

    @staticmethod
    def _flag_name(direction: Optional[TradeDirection]) -> str:
        if direction == TradeDirection.BUY:
            return "Bullish"
        if direction == TradeDirection.SELL:
            return "Bearish"
        return "Neutral"

    @staticmethod
    def _coerce(enum_cls, value, default):
        if isinstance(value, enum_cls):
            return value
        if value is None:
            return default
        try:
            return enum_cls(str(value).strip().upper())
        except ValueError:
            logger.warning(f"Unknown {enum_cls.__name__} value {value!r}, using {default.value}")
            return default
