"""
Spread estimation by pair and trading session.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ..config_manager import ConfigManager, get_config_manager
from ..models.market_data import CurrencyPair


logger = logging.getLogger(__name__)


class SpreadConfig(BaseModel):
    """Typical spreads and session multipliers."""

    base_spreads: Dict[str, Decimal] = Field(
        default_factory=lambda: {
            "EUR/USD": Decimal("1.0"),
            "USD/JPY": Decimal("1.2"),
            "GBP/USD": Decimal("1.8"),
            "AUD/USD": Decimal("1.5"),
            "NZD/USD": Decimal("1.9"),
            "EUR/GBP": Decimal("1.7"),
            "USD/CHF": Decimal("1.6"),
            "EUR/JPY": Decimal("2.0"),
            "USD/CAD": Decimal("1.8"),
            "GBP/JPY": Decimal("2.5"),
        },
        description="Average spread in pips per pair"
    )
    default_spread: Decimal = Field(default=Decimal("2.0"), ge=Decimal("0"))
    broker_utc_offset_hours: int = Field(default=3, ge=-12, le=14)
    # (start hour, end hour, multiplier) in broker time; start > end wraps midnight
    sessions: List[Tuple[int, int, Decimal]] = Field(
        default_factory=lambda: [
            (22, 7, Decimal("1.5")),   # Asian session, thin liquidity
            (19, 22, Decimal("1.3")),  # After the New York close
            (13, 16, Decimal("0.8")),  # London / New York overlap
        ]
    )

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "SpreadConfig":
        """Build from the ``spread`` section of the trading config."""
        manager = manager or get_config_manager()
        section = manager.get_section('trading', 'spread')
        return cls(**section) if section else cls()


class SpreadEstimator:
    """Estimates the spread in pips for a pair at a given time."""

    def __init__(self, config: Optional[SpreadConfig] = None):
        self.config = config or SpreadConfig()

    def base_spread(self, pair: Union[CurrencyPair, str]) -> Decimal:
        symbol = CurrencyPair.parse(pair).symbol
        return self.config.base_spreads.get(symbol, self.config.default_spread)

    def session_multiplier(self, at: datetime) -> Decimal:
        """Multiplier for the broker-time hour of ``at``."""
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        hour = (at.astimezone(timezone.utc) + timedelta(hours=self.config.broker_utc_offset_hours)).hour

        for start, end, multiplier in self.config.sessions:
            if start > end:
                in_session = hour >= start or hour < end
            else:
                in_session = start <= hour < end
            if in_session:
                return multiplier
        return Decimal("1.0")

    def estimate(self, pair: Union[CurrencyPair, str], at: Optional[datetime] = None) -> Decimal:
        """
        Estimate the spread in pips, rounded to 0.1 pip.

        Args:
            pair: Currency pair
            at: Moment to estimate for, defaults to now (UTC)
        """
        at = at or datetime.now(timezone.utc)
        spread = self.base_spread(pair) * self.session_multiplier(at)
        spread = spread.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        logger.debug(f"Estimated spread for {pair} at {at.isoformat()}: {spread} pips")
        return spread
