"""
Pytest configuration and fixtures for Flagtrader tests.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from unittest.mock import patch

import pytest

from flagtrader.config_manager import ConfigManager, set_config_manager
from flagtrader.models.market_data import Candle
from flagtrader.models.signals import PatternDirection, TradeDirection
from flagtrader.strategies.flag_models import (
    FlagPattern,
    MultiTimeframeResult,
    TimeframeFlagAnalysis,
)
from flagtrader.strategies.patterns.pattern_config import reset_pattern_config


BASE_TIME = datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)
MIRROR_AXIS = Decimal('2.2')

FILLER = ('1.1000', '1.1005', '1.0995', '1.1000')

# Bullish flag on EUR/USD: pole 17-22, consolidation 23-26 under a falling
# resistance line touched three times, breakout at 27, pullback at 28.
BULL_FLAG_OHLC: List[Tuple[str, str, str, str]] = [FILLER] * 18 + [
    ('1.1000', '1.1020', '1.0995', '1.1018'),
    ('1.1018', '1.1040', '1.1015', '1.1038'),
    ('1.1038', '1.1060', '1.1035', '1.1058'),
    ('1.1058', '1.1080', '1.1055', '1.1078'),
    ('1.1078', '1.1100', '1.1075', '1.1098'),
    ('1.1088', '1.1090', '1.1075', '1.1078'),
    ('1.1078', '1.1085', '1.1072', '1.1074'),
    ('1.1074', '1.1080', '1.1069', '1.1072'),
    ('1.1066', '1.1068', '1.1062', '1.1064'),
    ('1.1066', '1.1110', '1.1065', '1.1105'),
    ('1.1104', '1.1108', '1.1088', '1.1098'),
    ('1.1098', '1.1104', '1.1095', '1.1102'),
]

# Same flag, but price keeps running after the breakout without a retest
BULL_FLAG_NO_PULLBACK_OHLC = BULL_FLAG_OHLC[:28] + [
    ('1.1105', '1.1120', '1.1100', '1.1115'),
    ('1.1115', '1.1125', '1.1110', '1.1120'),
]


def create_test_candle(
    index: int,
    open_price,
    high,
    low,
    close,
    step: timedelta = timedelta(hours=1),
    volume: str = '100'
) -> Candle:
    """Create a test candle ``index`` steps after the base time."""
    return Candle(
        timestamp=BASE_TIME + step * index,
        open=Decimal(str(open_price)),
        high=Decimal(str(high)),
        low=Decimal(str(low)),
        close=Decimal(str(close)),
        volume=Decimal(volume)
    )


def build_series(ohlc: Sequence[Tuple], step: timedelta = timedelta(hours=1), start: int = 0) -> List[Candle]:
    """Build a candle series from (open, high, low, close) tuples."""
    return [create_test_candle(start + i, *row, step=step) for i, row in enumerate(ohlc)]


def mirror_series(candles: Sequence[Candle]) -> List[Candle]:
    """Reflect prices around 1.1 so a bullish flag becomes a bearish one."""
    return [
        Candle(
            timestamp=c.timestamp,
            open=MIRROR_AXIS - c.open,
            high=MIRROR_AXIS - c.low,
            low=MIRROR_AXIS - c.high,
            close=MIRROR_AXIS - c.close,
            volume=c.volume
        )
        for c in candles
    ]


def empty_analysis(pair: str = "EUR/USD", candle_count: int = 30) -> TimeframeFlagAnalysis:
    return TimeframeFlagAnalysis(
        pair=pair,
        candle_count=candle_count,
        bullish=FlagPattern(pair=pair, direction=PatternDirection.BULLISH),
        bearish=FlagPattern(pair=pair, direction=PatternDirection.BEARISH)
    )


def make_mtf_result(
    pattern_detected: bool = True,
    direction: TradeDirection = TradeDirection.BUY,
    valid_trade: bool = True,
    pattern_quality: int = 90,
    stop_loss_pips: Optional[int] = 28,
    **overrides
) -> MultiTimeframeResult:
    """Create a MultiTimeframeResult without running the detector."""
    values = dict(
        pair="EUR/USD",
        pattern_detected=pattern_detected,
        direction=direction if pattern_detected else TradeDirection.NEUTRAL,
        entry=Decimal('1.1090') if pattern_detected else None,
        stop_loss=Decimal('1.1062') if pattern_detected else None,
        take_profit=Decimal('1.1146') if pattern_detected else None,
        stop_loss_pips=stop_loss_pips if pattern_detected else None,
        take_profit_pips=stop_loss_pips * 2 if pattern_detected and stop_loss_pips else None,
        pattern_quality=pattern_quality if pattern_detected else 0,
        valid_trade=valid_trade,
        structural_analysis=empty_analysis(),
        entry_analysis=empty_analysis()
    )
    values.update(overrides)
    return MultiTimeframeResult(**values)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path):
    """Keep tests independent of the repository config/ directory."""
    set_config_manager(ConfigManager(config_dir=tmp_path / "config"))
    reset_pattern_config()
    yield
    set_config_manager(None)
    reset_pattern_config()


@pytest.fixture
def bullish_flag_candles() -> List[Candle]:
    """30 one-hour candles forming a complete bullish flag."""
    return build_series(BULL_FLAG_OHLC)


@pytest.fixture
def bullish_flag_structural_candles() -> List[Candle]:
    """The bullish flag on four-hour candles."""
    return build_series(BULL_FLAG_OHLC, step=timedelta(hours=4))


@pytest.fixture
def bearish_flag_candles(bullish_flag_candles) -> List[Candle]:
    """Mirror image of the bullish flag: a complete bearish flag."""
    return mirror_series(bullish_flag_candles)


@pytest.fixture
def bearish_flag_structural_candles(bullish_flag_structural_candles) -> List[Candle]:
    return mirror_series(bullish_flag_structural_candles)


@pytest.fixture
def incomplete_flag_candles() -> List[Candle]:
    """Bullish flag with a breakout but no pullback yet."""
    return build_series(BULL_FLAG_NO_PULLBACK_OHLC)


@pytest.fixture
def flat_candles() -> List[Candle]:
    """30 identical candles: no pattern in either direction."""
    return build_series([FILLER] * 30)


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    test_env = {
        "ACCOUNT_BALANCE": "5000",
        "RISK_PERCENT": "1.5",
        "ACCOUNT_CURRENCY": "usd",
        "DEFAULT_PAIR": "GBP/USD",
        "STRUCTURAL_TIMEFRAME": "1d",
        "ENTRY_TIMEFRAME": "4h",
        "MIN_CANDLES": "40",
        "LOG_LEVEL": "DEBUG",
        "LOG_FILE_PATH": "",
    }

    with patch.dict(os.environ, test_env, clear=False):
        yield test_env


@pytest.fixture
def candle_factory():
    """Factory building a candle ``index`` steps after the base time."""
    return create_test_candle


@pytest.fixture
def series_factory():
    """Factory building a candle series from (open, high, low, close) rows."""
    return build_series


@pytest.fixture
def mtf_result_factory():
    """Factory building MultiTimeframeResult objects without detection."""
    return make_mtf_result
