"""
Spread-Aware Position Sizing

Sizes a forex position from account risk and the stop distance, and prices
the entry, stop loss and take profit for both trade sides:

- Risk amount = balance x risk% / 100
- Pip value per standard lot from the pair / account currency relationship
- Raw lot size floored to the broker lot step
- Recommended lot size from the account balance tier table
- Spread added to the BUY entry, subtracted from the SELL entry; stop and
  target stay anchored on the quoted price, so the true risk:reward after
  spread is never better than the target ratio
"""

import logging
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from ..config_manager import ConfigManager, get_config_manager
from ..models.market_data import CurrencyPair
from ..models.signals import TradeDirection
from ..models.trading import PositionSizing, TargetValidation, TradeLevels


logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class PositionSizingConfig(BaseModel):
    """Position sizing parameters."""

    contract_size: Decimal = Field(
        default=Decimal("100000"),
        description="Units per standard lot",
        gt=Decimal("0")
    )
    lot_step: Decimal = Field(
        default=Decimal("0.01"),
        description="Smallest lot increment accepted by the broker",
        gt=Decimal("0")
    )
    target_ratio: Decimal = Field(
        default=Decimal("2"),
        description="Take profit distance as a multiple of the stop distance",
        gt=Decimal("0")
    )
    lot_tiers: List[Tuple[Decimal, Decimal]] = Field(
        default_factory=lambda: [
            (Decimal("2000"), Decimal("0.1")),
            (Decimal("3000"), Decimal("0.2")),
            (Decimal("4000"), Decimal("0.3")),
            (Decimal("5000"), Decimal("0.4")),
            (Decimal("6000"), Decimal("0.5")),
            (Decimal("7000"), Decimal("0.6")),
            (Decimal("8000"), Decimal("0.7")),
            (Decimal("9000"), Decimal("0.8")),
            (Decimal("10000"), Decimal("0.9")),
        ],
        description="(balance below, recommended lot) pairs in ascending order"
    )
    balance_per_lot: Decimal = Field(
        default=Decimal("10000"),
        description="Above the tier table, one full lot per this much balance",
        gt=Decimal("0")
    )
    max_target_percent: Decimal = Field(
        default=Decimal("10"),
        description="Largest profit target, as % of balance, considered realistic",
        gt=Decimal("0")
    )
    ratio_decimals: int = Field(default=2, ge=0)

    @classmethod
    def from_config_manager(cls, manager: Optional[ConfigManager] = None) -> "PositionSizingConfig":
        """Build from the ``position_sizing`` section of the trading config."""
        manager = manager or get_config_manager()
        section = manager.get_section('trading', 'position_sizing')
        return cls(**section) if section else cls()


class PositionSizer:
    """
    Position size and price level calculator.

    Never raises for zero or negative inputs: a zero stop distance or a zero
    pip value gives a lot size of 0 and a risk:reward ratio of 0.
    """

    def __init__(self, config: Optional[PositionSizingConfig] = None):
        self.config = config or PositionSizingConfig()

    def calculate(
        self,
        account_balance: Number,
        risk_percent: Number,
        stop_loss_pips: Number,
        current_price: Number,
        pair: Union[CurrencyPair, str],
        direction: Union[TradeDirection, str, None] = TradeDirection.BUY,
        spread_pips: Number = 0,
        account_currency: str = "GBP",
        quote_to_account_rate: Optional[Number] = None
    ) -> PositionSizing:
        """
        Calculate the position size and spread-adjusted levels.

        Args:
            account_balance: Account balance in the account currency
            risk_percent: Percentage of the balance to risk
            stop_loss_pips: Stop distance in pips
            current_price: Quoted price of the pair
            pair: Currency pair
            direction: BUY or SELL; anything that is not SELL prices a BUY
            spread_pips: Spread in pips applied to the entry
            account_currency: Account currency code
            quote_to_account_rate: Conversion rate from the quote currency to
                the account currency, for cross pairs

        Returns:
            PositionSizing for the selected direction
        """
        pair = CurrencyPair.parse(pair)
        direction = TradeDirection.from_value(direction)
        if direction == TradeDirection.NEUTRAL:
            direction = TradeDirection.BUY

        balance = _dec(account_balance)
        risk_pct = _dec(risk_percent)
        sl_pips = _dec(stop_loss_pips)
        price = _dec(current_price)
        spread = _dec(spread_pips)
        rate = _dec(quote_to_account_rate) if quote_to_account_rate is not None else None

        risk_amount = balance * risk_pct / Decimal("100")
        tp_pips = sl_pips * self.config.target_ratio
        pip_value = self.pip_value(pair, price, account_currency, rate)

        if sl_pips > 0 and pip_value > 0:
            raw_lots = risk_amount / (sl_pips * pip_value)
            lot_size = raw_lots.quantize(self.config.lot_step, rounding=ROUND_DOWN)
            lot_size = max(Decimal("0"), lot_size)
        else:
            lot_size = Decimal("0")

        recommended = self.standard_lot_size(balance)
        projected_profit = tp_pips * recommended * pip_value

        buy_levels, sell_levels = self._levels(pair, price, sl_pips, tp_pips, spread)
        levels = sell_levels if direction == TradeDirection.SELL else buy_levels

        true_ratio = self._true_ratio(levels, direction) if sl_pips > 0 else Decimal("0")

        logger.debug(
            f"{pair} {direction.value}: risk {risk_amount} {account_currency}, "
            f"lot {lot_size} (recommended {recommended}), true R:R {true_ratio}"
        )

        return PositionSizing(
            pair=pair.symbol,
            direction=direction,
            account_balance=balance,
            risk_percent=risk_pct,
            risk_amount=risk_amount,
            lot_size=lot_size,
            recommended_lot_size=recommended,
            pip_value=pip_value,
            stop_loss_pips=sl_pips,
            take_profit_pips=tp_pips,
            spread_pips=spread,
            entry_price=levels.entry,
            stop_loss_price=levels.stop_loss,
            take_profit_price=levels.take_profit,
            buy_levels=buy_levels,
            sell_levels=sell_levels,
            projected_profit=projected_profit,
            risk_reward_ratio=self.config.target_ratio,
            true_risk_reward_ratio=true_ratio
        )

    def pip_value(
        self,
        pair: Union[CurrencyPair, str],
        price: Number,
        account_currency: str = "GBP",
        quote_to_account_rate: Optional[Number] = None
    ) -> Decimal:
        """Value of one pip for one standard lot, in the account currency."""
        pair = CurrencyPair.parse(pair)
        account_currency = account_currency.upper()
        per_lot = pair.pip_size * self.config.contract_size
        price = _dec(price)

        if pair.quote == account_currency:
            return per_lot
        if pair.base != account_currency and quote_to_account_rate is not None:
            return per_lot * _dec(quote_to_account_rate)
        # Base is the account currency, or cross pair without a rate
        if price <= 0:
            return Decimal("0")
        return per_lot / price

    def standard_lot_size(self, account_balance: Number) -> Decimal:
        """Recommended lot size for an account balance."""
        balance = _dec(account_balance)
        for threshold, lots in self.config.lot_tiers:
            if balance < threshold:
                return lots
        return (balance / self.config.balance_per_lot).to_integral_value(rounding=ROUND_DOWN) * Decimal("1.0")

    def validate_target(self, account_balance: Number, target_profit: Number) -> TargetValidation:
        """Check whether a profit target is realistic for the account."""
        balance = _dec(account_balance)
        target = _dec(target_profit)

        if balance <= 0:
            return TargetValidation(
                is_realistic=False,
                profit_percent=Decimal("0"),
                warning="Account balance must be positive"
            )

        profit_percent = (target / balance * Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        is_realistic = profit_percent <= self.config.max_target_percent

        return TargetValidation(
            is_realistic=is_realistic,
            profit_percent=profit_percent,
            warning=None if is_realistic else (
                f"Target of {profit_percent}% exceeds {self.config.max_target_percent}% of the balance per trade"
            )
        )

    def _levels(
        self,
        pair: CurrencyPair,
        price: Decimal,
        sl_pips: Decimal,
        tp_pips: Decimal,
        spread: Decimal
    ) -> Tuple[TradeLevels, TradeLevels]:
        pip = pair.pip_size
        buy = TradeLevels(
            entry=pair.round_price(price + spread * pip),
            stop_loss=pair.round_price(price - sl_pips * pip),
            take_profit=pair.round_price(price + tp_pips * pip)
        )
        sell = TradeLevels(
            entry=pair.round_price(price - spread * pip),
            stop_loss=pair.round_price(price + sl_pips * pip),
            take_profit=pair.round_price(price - tp_pips * pip)
        )
        return buy, sell

    def _true_ratio(self, levels: TradeLevels, direction: TradeDirection) -> Decimal:
        if direction == TradeDirection.SELL:
            risk = levels.stop_loss - levels.entry
            reward = levels.entry - levels.take_profit
        else:
            risk = levels.entry - levels.stop_loss
            reward = levels.take_profit - levels.entry

        if risk <= 0:
            return Decimal("0")
        quantum = Decimal(1).scaleb(-self.config.ratio_decimals)
        return (reward / risk).quantize(quantum, rounding=ROUND_HALF_UP)
