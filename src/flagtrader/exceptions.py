"""
Exception hierarchy for the flag pattern engine.

Structural non-detection (no pole, no breakout, no pullback...) is never an
exception: it is reported as ``detected=False`` and ends in a WAIT decision.
The classes below are reserved for broken input contracts.
"""


class FlagTraderError(ValueError):
    """Base exception for all flagtrader errors.

    Subclasses ``ValueError`` so callers treating bad input generically
    keep working.
    """

    pass


class InsufficientDataError(FlagTraderError):
    """Raised when a candle series is empty or shorter than required.

    This exception is raised when:
    - The candle source returned no candles
    - Fewer candles than the configured minimum window were supplied
    """

    def __init__(self, message: str, available: int = 0, required: int = 0):
        super().__init__(message)
        self.available = available
        self.required = required


class MalformedCandleDataError(FlagTraderError):
    """Raised when a candle series violates the ordering or OHLC contract.

    This exception is raised when:
    - Timestamps are not strictly ascending
    - A candle's high is below its open, close or low
    - A candle's low is above its open or close
    """

    pass


class ConfigurationError(FlagTraderError):
    """Raised when pattern or trading configuration values are unusable."""

    pass
