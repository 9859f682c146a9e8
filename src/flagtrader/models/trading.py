"""
Trading Decision and Position Models

- Decision: TRADE/WAIT verdict with reasoning and risk flags
- TradeLevels: Entry/stop/target prices for one trade side
- PositionSizing: Spread-aware position size and price levels
- TargetValidation: Realism check for a profit target
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .signals import DecisionAction, TradeDirection


class Decision(BaseModel):
    """Outcome of the decision policy."""

    model_config = ConfigDict(frozen=True)

    action: DecisionAction = Field(..., description="TRADE or WAIT")
    direction: Optional[TradeDirection] = Field(
        None,
        description="BUY/SELL when trading, None when waiting"
    )
    confidence: int = Field(default=0, ge=0, le=100)
    reasoning: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)

    @property
    def is_trade(self) -> bool:
        return self.action == DecisionAction.TRADE


class TradeLevels(BaseModel):
    """Entry, stop and target for one side of the market."""

    model_config = ConfigDict(frozen=True)

    entry: Decimal
    stop_loss: Decimal
    take_profit: Decimal


class PositionSizing(BaseModel):
    """
    Position size and spread-adjusted price levels.

    ``lot_size`` is the raw risk-based size floored to the lot step;
    ``recommended_lot_size`` comes from the balance tier table and drives
    ``projected_profit``.
    """

    model_config = ConfigDict(frozen=True)

    pair: str
    direction: TradeDirection
    account_balance: Decimal
    risk_percent: Decimal
    risk_amount: Decimal
    lot_size: Decimal
    recommended_lot_size: Decimal
    pip_value: Decimal
    stop_loss_pips: Decimal
    take_profit_pips: Decimal
    spread_pips: Decimal
    entry_price: Decimal
    stop_loss_price: Decimal
    take_profit_price: Decimal
    buy_levels: TradeLevels
    sell_levels: TradeLevels
    projected_profit: Decimal
    risk_reward_ratio: Decimal = Field(default=Decimal('2'))
    true_risk_reward_ratio: Decimal

    @computed_field
    @property
    def calculated_lot_size(self) -> Decimal:
        """Alias of ``lot_size``."""
        return self.lot_size


class TargetValidation(BaseModel):
    """Whether a profit target is realistic for an account size."""

    model_config = ConfigDict(frozen=True)

    is_realistic: bool
    profit_percent: Decimal
    warning: Optional[str] = None
