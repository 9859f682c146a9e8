"""
Logging infrastructure for the flagtrader analysis engine.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class StructuredFormatter(logging.Formatter):
    """Structured formatter for file output."""

    def format(self, record: logging.LogRecord) -> str:
        # Prefix analysis context carried by TradingLoggerAdapter
        prefix = ""
        if hasattr(record, 'timeframe'):
            prefix = f"[{record.timeframe}] " + prefix
        if hasattr(record, 'pair'):
            prefix = f"[{record.pair}] " + prefix

        message = super().format(record)
        return f"{prefix}{message}" if prefix else message


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: str = "10MB",
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up a logger with file rotation and optional console output.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to output to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Clear existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)

        console_format = ColoredFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)

        file_format = StructuredFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str, level: str = "INFO", log_file: Optional[str] = "./logs/flagtrader.log") -> logging.Logger:
    """
    Get a logger instance with default configuration.

    Args:
        name: Logger name
        level: Logging level
        log_file: Rotating log file, ``None`` for console only

    Returns:
        Logger instance
    """
    return setup_logger(
        name=name,
        level=level,
        log_file=log_file,
        console_output=True
    )


def _parse_size(size_str: str) -> int:
    """
    Parse size string (e.g., '10MB', '1GB') to bytes.

    Args:
        size_str: Size string with unit

    Returns:
        Size in bytes
    """
    size_str = size_str.upper().strip()

    # Longest suffixes first so 'MB' is not read as 'B'
    size_map = {
        'GB': 1024 * 1024 * 1024,
        'MB': 1024 * 1024,
        'KB': 1024,
        'B': 1,
    }

    for unit, multiplier in size_map.items():
        if size_str.endswith(unit):
            number = size_str[:-len(unit)].strip()
            try:
                return int(float(number) * multiplier)
            except ValueError:
                pass

    try:
        return int(size_str)
    except ValueError:
        return 10 * 1024 * 1024  # Default 10MB


class TradingLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter carrying pair/timeframe context into every record."""

    def process(self, msg: str, kwargs: dict) -> tuple:
        extra = dict(self.extra)
        extra.update(kwargs.get('extra', {}))
        kwargs['extra'] = extra
        return msg, kwargs


def get_trading_adapter(
    logger: Optional[logging.Logger] = None,
    pair: Optional[str] = None,
    timeframe: Optional[str] = None
) -> TradingLoggerAdapter:
    """
    Get a logger adapter with analysis context.

    Args:
        logger: Underlying logger, defaults to the ``flagtrader.analysis`` logger
        pair: Currency pair (e.g., 'EUR/USD')
        timeframe: Timeframe label (e.g., '4h')

    Returns:
        Logger adapter with analysis context
    """
    logger = logger or logging.getLogger("flagtrader.analysis")
    extra = {}

    if pair:
        extra['pair'] = pair
    if timeframe:
        extra['timeframe'] = timeframe

    return TradingLoggerAdapter(logger, extra)
