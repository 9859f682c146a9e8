"""
Configuration management for the flagtrader analysis engine.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .models.market_data import Timeframe


class AccountConfig(BaseModel):
    """Trading account settings used for position sizing."""

    balance: Decimal = Field(default=Decimal("1000"), ge=Decimal("0"))
    risk_percent: Decimal = Field(default=Decimal("2.0"), gt=Decimal("0"), le=Decimal("100"))
    account_currency: str = Field(default="GBP", min_length=3, max_length=3)

    @field_validator('account_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        v = v.upper().strip()
        if not v.isalpha():
            raise ValueError(f"Account currency must be a 3-letter code: {v}")
        return v


class AnalysisConfig(BaseModel):
    """Which pair/timeframes the engine analyzes by default."""

    default_pair: str = Field(default="EUR/USD")
    structural_timeframe: Timeframe = Field(default=Timeframe.FOUR_HOURS)
    entry_timeframe: Timeframe = Field(default=Timeframe.ONE_HOUR)
    min_candles: int = Field(default=30, ge=1)
    max_workers: int = Field(default=4, ge=1, le=32)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    file_path: Optional[str] = Field(default="./logs/flagtrader.log")
    max_size: str = Field(default="10MB")
    backup_count: int = Field(default=5)


class Config(BaseModel):
    """Main configuration class."""

    account: AccountConfig = Field(default_factory=AccountConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_env(cls, env_file: Optional[str] = None) -> "Config":
        """Load configuration from environment variables."""
        if env_file:
            load_dotenv(env_file)
        else:
            # Try to load from .env file in current directory
            env_path = Path(".env")
            if env_path.exists():
                load_dotenv(env_path)

        account = AccountConfig(
            balance=Decimal(os.getenv("ACCOUNT_BALANCE", "1000")),
            risk_percent=Decimal(os.getenv("RISK_PERCENT", "2.0")),
            account_currency=os.getenv("ACCOUNT_CURRENCY", "GBP")
        )

        analysis = AnalysisConfig(
            default_pair=os.getenv("DEFAULT_PAIR", "EUR/USD"),
            structural_timeframe=Timeframe(os.getenv("STRUCTURAL_TIMEFRAME", "4h")),
            entry_timeframe=Timeframe(os.getenv("ENTRY_TIMEFRAME", "1h")),
            min_candles=int(os.getenv("MIN_CANDLES", "30")),
            max_workers=int(os.getenv("ANALYSIS_MAX_WORKERS", "4"))
        )

        log_file = os.getenv("LOG_FILE_PATH", "./logs/flagtrader.log")
        logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            file_path=log_file or None,
            max_size=os.getenv("LOG_MAX_SIZE", "10MB"),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5"))
        )

        return cls(
            account=account,
            analysis=analysis,
            logging=logging
        )
