"""
Flag Trade Analysis Engine

Orchestrates one analysis of a currency pair:

1. Validate the structural and entry candle series
2. Confirm the flag pattern across both timeframes
3. Decide TRADE/WAIT with the news and calendar verdicts
4. Size the position when trading (spread supplied or estimated)

Independent pairs can be analyzed in parallel with ``analyze_many``; each
analysis only reads its own inputs.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from ..config import AccountConfig, Config
from ..logger import get_trading_adapter
from ..models.market_data import Candle, CurrencyPair, Timeframe, validate_candle_series
from ..models.signals import CalendarRecommendation, NewsSentiment
from ..models.trading import Decision, PositionSizing
from ..risk.position_sizer import PositionSizer, PositionSizingConfig
from ..risk.spread import SpreadConfig, SpreadEstimator
from .decision_engine import DecisionConfig, DecisionEngine
from .flag_models import MultiTimeframeResult
from .timeframe_analyzer import MultiTimeframeConfirmer


logger = logging.getLogger(__name__)

RECENT_CANDLES = 20


class AnalysisRequest(BaseModel):
    """Inputs for one pair analysis."""

    model_config = ConfigDict(frozen=True)

    pair: str
    structural_candles: List[Candle]
    entry_candles: List[Candle]
    news_sentiment: NewsSentiment = NewsSentiment.NEUTRAL
    calendar_recommendation: CalendarRecommendation = CalendarRecommendation.PROCEED
    account: Optional[AccountConfig] = None
    spread_pips: Optional[Decimal] = None
    now: Optional[datetime] = None


class AnalysisResult(BaseModel):
    """Complete analysis of one pair."""

    model_config = ConfigDict(frozen=True)

    pair: str
    timestamp: datetime
    structural_timeframe: Timeframe
    entry_timeframe: Timeframe
    decision: Decision
    pattern: MultiTimeframeResult
    position_sizing: Optional[PositionSizing] = None
    spread_pips: Optional[Decimal] = None
    recent_candles: List[Candle] = Field(default_factory=list)


class AnalysisEngine:
    """
    Main class for flag trade analysis.

    Coordinates candle validation, multi-timeframe confirmation, the decision
    policy and position sizing.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        confirmer: Optional[MultiTimeframeConfirmer] = None,
        decision_engine: Optional[DecisionEngine] = None,
        position_sizer: Optional[PositionSizer] = None,
        spread_estimator: Optional[SpreadEstimator] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Application configuration. If None, uses defaults.
            confirmer: Multi-timeframe confirmer (global pattern config when None)
            decision_engine: Decision policy
            position_sizer: Position sizer
            spread_estimator: Spread estimator used when no spread is supplied
        """
        self.config = config or Config()
        self.confirmer = confirmer or MultiTimeframeConfirmer()
        self.decision_engine = decision_engine or DecisionEngine(DecisionConfig.from_config_manager())
        self.position_sizer = position_sizer or PositionSizer(PositionSizingConfig.from_config_manager())
        self.spread_estimator = spread_estimator or SpreadEstimator(SpreadConfig.from_config_manager())

    def analyze(
        self,
        pair: Union[CurrencyPair, str],
        structural_candles: Sequence[Candle],
        entry_candles: Sequence[Candle],
        news_sentiment: Union[NewsSentiment, str] = NewsSentiment.NEUTRAL,
        calendar_recommendation: Union[CalendarRecommendation, str] = CalendarRecommendation.PROCEED,
        account: Optional[AccountConfig] = None,
        spread_pips: Optional[Union[Decimal, float, str]] = None,
        now: Optional[datetime] = None
    ) -> AnalysisResult:
        """
        Analyze one pair.

        Raises:
            InsufficientDataError: A series is empty or shorter than ``min_candles``
            MalformedCandleDataError: A series is not strictly ascending in time
        """
        pair = CurrencyPair.parse(pair)
        settings = self.config.analysis
        log = get_trading_adapter(logger, pair=pair.symbol)

        structural = validate_candle_series(
            structural_candles, settings.min_candles, f"{settings.structural_timeframe.value} candles"
        )
        entry = validate_candle_series(
            entry_candles, settings.min_candles, f"{settings.entry_timeframe.value} candles"
        )

        log.info(f"Analyzing {len(structural)} structural / {len(entry)} entry candles")

        pattern = self.confirmer.confirm(structural, entry, pair)
        decision = self.decision_engine.decide(pattern, news_sentiment, calendar_recommendation)

        now = now or datetime.now(timezone.utc)
        spread = None
        sizing = None

        if decision.is_trade and pattern.stop_loss_pips and pattern.stop_loss_pips > 0:
            account = account or self.config.account
            spread = Decimal(str(spread_pips)) if spread_pips is not None else self.spread_estimator.estimate(pair, now)
            sizing = self.position_sizer.calculate(
                account_balance=account.balance,
                risk_percent=account.risk_percent,
                stop_loss_pips=pattern.stop_loss_pips,
                current_price=entry[-1].close,
                pair=pair,
                direction=decision.direction,
                spread_pips=spread,
                account_currency=account.account_currency
            )
            log.info(
                f"{decision.direction.value} {sizing.lot_size} lots, "
                f"entry {sizing.entry_price}, SL {sizing.stop_loss_price}, TP {sizing.take_profit_price}"
            )
        else:
            log.info(f"Decision {decision.action.value}: {'; '.join(decision.reasoning)}")

        return AnalysisResult(
            pair=pair.symbol,
            timestamp=now,
            structural_timeframe=settings.structural_timeframe,
            entry_timeframe=settings.entry_timeframe,
            decision=decision,
            pattern=pattern,
            position_sizing=sizing,
            spread_pips=spread,
            recent_candles=list(entry[-RECENT_CANDLES:])
        )

    def analyze_request(self, request: AnalysisRequest) -> AnalysisResult:
        return self.analyze(
            pair=request.pair,
            structural_candles=request.structural_candles,
            entry_candles=request.entry_candles,
            news_sentiment=request.news_sentiment,
            calendar_recommendation=request.calendar_recommendation,
            account=request.account,
            spread_pips=request.spread_pips,
            now=request.now
        )

    def analyze_many(self, requests: Sequence[AnalysisRequest]) -> List[AnalysisResult]:
        """
        Analyze independent pairs in parallel.

        Results are returned in request order; the first failing request's
        exception propagates.
        """
        if not requests:
            return []

        workers = min(self.config.analysis.max_workers, len(requests))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.analyze_request, requests))
