"""
Core Market Data Models

This module contains Pydantic models for the market data the flag engine
consumes:
- Timeframe: Enumeration of supported candle timeframes
- Candle: Immutable OHLC(V) candle with price relationship validation
- CurrencyPair: Forex pair with pip size and price precision helpers

Series-level helpers (ordering and length checks) live at the bottom of the
module and raise the exceptions from ``flagtrader.exceptions``.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import re

from ..exceptions import InsufficientDataError, MalformedCandleDataError


PRICE_QUANTUM = Decimal('0.00000001')


class Timeframe(str, Enum):
    """Supported candle timeframes."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"

    @property
    def seconds(self) -> int:
        """Convert timeframe to seconds."""
        mapping = {
            "1m": 60,
            "5m": 300,
            "15m": 900,
            "30m": 1800,
            "1h": 3600,
            "4h": 14400,
            "1d": 86400,
        }
        return mapping[self.value]


class Candle(BaseModel):
    """
    OHLC candle with optional volume.

    Validates:
    - Price relationships (high >= low, high >= open/close, low <= open/close)
    - Positive prices and non-negative volume
    - Timestamps normalized to timezone-aware UTC
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Candle open time in UTC")
    open: Decimal = Field(..., description="Opening price", gt=0)
    high: Decimal = Field(..., description="Highest price", gt=0)
    low: Decimal = Field(..., description="Lowest price", gt=0)
    close: Decimal = Field(..., description="Closing price", gt=0)
    volume: Decimal = Field(default=Decimal('0'), description="Traded volume", ge=0)

    @field_validator('timestamp', mode='before')
    @classmethod
    def validate_timestamp(cls, v) -> datetime:
        """Ensure timestamp is timezone-aware UTC."""
        if isinstance(v, str):
            if v.endswith('Z'):
                v = v[:-1] + '+00:00'
            dt = datetime.fromisoformat(v)
        elif isinstance(v, (int, float)):
            # Milliseconds since epoch
            dt = datetime.fromtimestamp(v / 1000, tz=timezone.utc)
        elif isinstance(v, datetime):
            dt = v
        else:
            raise ValueError(f"Invalid timestamp format: {type(v)}")

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        elif dt.tzinfo != timezone.utc:
            dt = dt.astimezone(timezone.utc)

        return dt

    @field_validator('open', 'high', 'low', 'close', 'volume', mode='before')
    @classmethod
    def validate_price_fields(cls, v) -> Decimal:
        """Convert price/volume fields to 8 dp Decimals."""
        if v is None:
            return Decimal('0')
        if isinstance(v, str):
            v = v.strip()
        return Decimal(str(v)).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    @model_validator(mode='after')
    def validate_ohlc_relationships(self):
        """Validate OHLC price relationships."""
        if self.high < max(self.open, self.close):
            raise ValueError(f"High price {self.high} must be >= max(open, close)")
        if self.high < self.low:
            raise ValueError(f"High price {self.high} must be >= low price {self.low}")
        if self.low > min(self.open, self.close):
            raise ValueError(f"Low price {self.low} must be <= min(open, close)")
        return self

    @property
    def body_size(self) -> Decimal:
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with string prices, matching the candle file format."""
        return {
            'timestamp': self.timestamp.isoformat(),
            'open': str(self.open),
            'high': str(self.high),
            'low': str(self.low),
            'close': str(self.close),
            'volume': str(self.volume),
        }


class CurrencyPair(BaseModel):
    """
    Forex currency pair, e.g. EUR/USD.

    Accepts ``EUR/USD``, ``EURUSD`` and ``EUR_USD`` spellings through
    :meth:`parse`. Pip size is 0.01 when JPY is either currency, 0.0001
    otherwise.
    """

    model_config = ConfigDict(frozen=True)

    base: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")
    quote: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Z]{3}$")

    @field_validator('base', 'quote', mode='before')
    @classmethod
    def normalize_currency(cls, v) -> str:
        return str(v).upper().strip()

    @classmethod
    def parse(cls, value: Union[str, "CurrencyPair"]) -> "CurrencyPair":
        """Parse a pair symbol in any of the supported spellings."""
        if isinstance(value, CurrencyPair):
            return value

        symbol = str(value).upper().strip()
        match = re.match(r'^([A-Z]{3})[/_\-]?([A-Z]{3})$', symbol)
        if not match:
            raise ValueError(f"Invalid currency pair: {value!r}")
        return cls(base=match.group(1), quote=match.group(2))

    @property
    def symbol(self) -> str:
        return f"{self.base}/{self.quote}"

    @property
    def is_jpy(self) -> bool:
        return 'JPY' in (self.base, self.quote)

    @property
    def pip_size(self) -> Decimal:
        return Decimal('0.01') if self.is_jpy else Decimal('0.0001')

    @property
    def price_decimals(self) -> int:
        return 3 if self.is_jpy else 5

    def price_to_pips(self, distance: Decimal) -> Decimal:
        """Convert a price distance to pips (unrounded)."""
        return abs(Decimal(str(distance))) / self.pip_size

    def pips_to_price(self, pips: Union[int, Decimal]) -> Decimal:
        """Convert a pip count to a price distance."""
        return Decimal(str(pips)) * self.pip_size

    def round_price(self, price: Decimal) -> Decimal:
        """Round a price to the pair's quoting precision."""
        quantum = Decimal(1).scaleb(-self.price_decimals)
        return Decimal(str(price)).quantize(quantum, rounding=ROUND_HALF_UP)

    def __str__(self) -> str:
        return self.symbol


def pip_size_for(pair: Union[str, CurrencyPair]) -> Decimal:
    """Pip size for a pair; any symbol containing JPY uses 0.01."""
    if isinstance(pair, CurrencyPair):
        return pair.pip_size
    return Decimal('0.01') if 'JPY' in str(pair).upper() else Decimal('0.0001')


def validate_candle_series(
    candles: Sequence[Candle],
    minimum: int = 1,
    label: str = "candles"
) -> Tuple[Candle, ...]:
    """
    Check a candle series at an input boundary.

    Args:
        candles: Candles, oldest first
        minimum: Minimum number of candles required
        label: Series name used in error messages

    Returns:
        The series as an immutable tuple

    Raises:
        InsufficientDataError: Series empty or shorter than ``minimum``
        MalformedCandleDataError: Timestamps not strictly ascending
    """
    series = tuple(candles or ())

    if not series:
        raise InsufficientDataError(f"No {label} supplied", available=0, required=minimum)
    if len(series) < minimum:
        raise InsufficientDataError(
            f"Need at least {minimum} {label}, got {len(series)}",
            available=len(series),
            required=minimum
        )

    for index in range(1, len(series)):
        if series[index].timestamp <= series[index - 1].timestamp:
            raise MalformedCandleDataError(
                f"{label} timestamps must be strictly ascending "
                f"(index {index}: {series[index].timestamp.isoformat()} "
                f"after {series[index - 1].timestamp.isoformat()})"
            )

    return series


def candles_from_records(records: Iterable[Dict[str, Any]]) -> List[Candle]:
    """
    Build candles from plain dict records (e.g. a JSON candle file).

    Raises:
        MalformedCandleDataError: A record is missing fields or breaks the
            OHLC relationships
    """
    candles = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise MalformedCandleDataError(f"Candle record {index} is not an object")
        try:
            candles.append(Candle(**record))
        except ValidationError as e:
            raise MalformedCandleDataError(f"Invalid candle record {index}: {e}") from e
    return candles
