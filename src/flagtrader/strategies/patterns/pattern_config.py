"""
Flag Pattern Detection Configuration

This module defines all configurable parameters for flag pattern detection.
All thresholds (pole size, retracement band, touch tolerance, lookback...)
are centralized here for calibration.
"""

from decimal import Decimal, InvalidOperation
from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional
import json
import logging
from pathlib import Path

from ...exceptions import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass
class PoleConfig:
    """Configuration for pole (impulse move) detection."""
    min_move: Decimal = Decimal('0.005')  # 0.5% of start price
    min_length: int = 3                   # candles, start and end included
    edge_margin: int = 5                  # candles skipped at both series ends


@dataclass
class ConsolidationConfig:
    """Configuration for the consolidation (flag body) window."""
    min_length: int = 3
    min_retracement: Decimal = Decimal('0.001')  # 0.1% of the pole extreme
    max_retracement: Decimal = Decimal('0.7')    # 70% of the pole extreme


@dataclass
class TrendlineConfig:
    """Configuration for the two-point trendline and the touch rule."""
    touch_tolerance: Decimal = Decimal('0.0005')  # 0.05% of the line value
    min_touches: int = 3
    min_candles: int = 3


@dataclass
class QualityConfig:
    """Configuration for multi-timeframe pattern quality scoring."""
    base_quality: int = 70
    touch_bonus: int = 10
    min_touches_for_bonus: int = 3
    max_quality: int = 90


@dataclass
class FlagDetectionConfig:
    """Master configuration for flag pattern detection."""

    # Global settings
    lookback: int = 30
    target_ratio: Decimal = Decimal('2')

    pole: PoleConfig = field(default_factory=PoleConfig)
    consolidation: ConsolidationConfig = field(default_factory=ConsolidationConfig)
    trendline: TrendlineConfig = field(default_factory=TrendlineConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)

    def validate(self) -> 'FlagDetectionConfig':
        """
        Check that the thresholds describe a detectable pattern.

        Raises:
            ConfigurationError: If any value is out of range
        """
        problems = []

        if self.lookback < 1:
            problems.append(f"lookback must be positive, got {self.lookback}")
        if self.target_ratio <= 0:
            problems.append(f"target_ratio must be positive, got {self.target_ratio}")
        if self.pole.min_move <= 0:
            problems.append(f"pole.min_move must be positive, got {self.pole.min_move}")
        if self.pole.min_length < 2:
            problems.append(f"pole.min_length must be at least 2, got {self.pole.min_length}")
        if self.pole.edge_margin < 0:
            problems.append(f"pole.edge_margin must not be negative, got {self.pole.edge_margin}")
        if self.consolidation.min_length < 1:
            problems.append(f"consolidation.min_length must be positive, got {self.consolidation.min_length}")
        if self.consolidation.min_retracement < 0:
            problems.append("consolidation.min_retracement must not be negative")
        if self.consolidation.min_retracement >= self.consolidation.max_retracement:
            problems.append(
                f"consolidation retracement band is empty: "
                f"{self.consolidation.min_retracement} >= {self.consolidation.max_retracement}"
            )
        if self.trendline.touch_tolerance <= 0:
            problems.append(f"trendline.touch_tolerance must be positive, got {self.trendline.touch_tolerance}")
        if self.trendline.min_touches < 2:
            problems.append(f"trendline.min_touches must be at least 2, got {self.trendline.min_touches}")
        if self.trendline.min_candles < 3:
            problems.append(f"trendline.min_candles must be at least 3, got {self.trendline.min_candles}")
        if self.quality.max_quality < self.quality.base_quality:
            problems.append("quality.max_quality must not be below quality.base_quality")

        if problems:
            raise ConfigurationError("Invalid flag detection config: " + "; ".join(problems))
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        def convert_decimal(obj):
            if isinstance(obj, Decimal):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: convert_decimal(v) for k, v in obj.items()}
            elif hasattr(obj, '__dict__'):
                return convert_decimal(obj.__dict__)
            return obj

        return convert_decimal(self.__dict__)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlagDetectionConfig':
        """
        Create configuration from dictionary (JSON deserialization).

        Raises:
            ConfigurationError: Unknown keys or values that are not numbers
        """
        section_classes = {
            'pole': PoleConfig,
            'consolidation': ConsolidationConfig,
            'trendline': TrendlineConfig,
            'quality': QualityConfig,
        }

        def build(config_cls, values: Dict[str, Any], path: str):
            if not isinstance(values, dict):
                raise ConfigurationError(f"Config section '{path}' must be an object")

            known = {f.name: f for f in fields(config_cls)}
            unknown = set(values) - set(known)
            if unknown:
                raise ConfigurationError(f"Unknown keys in '{path}': {sorted(unknown)}")

            kwargs = {}
            for key, value in values.items():
                if key in section_classes:
                    kwargs[key] = build(section_classes[key], value, f"{path}.{key}")
                    continue
                default = getattr(config_cls(), key)
                try:
                    if isinstance(default, Decimal):
                        kwargs[key] = Decimal(str(value))
                    elif isinstance(value, bool):
                        raise TypeError(f"expected a whole number, got {value!r}")
                    else:
                        number = Decimal(str(value))
                        if not number.is_finite() or number != number.to_integral_value():
                            raise ValueError(f"expected a whole number, got {value!r}")
                        kwargs[key] = int(number)
                except (InvalidOperation, ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid value for '{path}.{key}': {value!r}") from e
            return config_cls(**kwargs)

        return build(cls, data, 'pattern_detection')

    def save_to_file(self, filepath: Path):
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_from_file(cls, filepath: Path) -> 'FlagDetectionConfig':
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data).validate()


# Global configuration instance
_config: Optional[FlagDetectionConfig] = None


def get_pattern_config() -> FlagDetectionConfig:
    """Get the global flag detection configuration."""
    global _config
    if _config is None:
        # Seed from centralized config, falling back to defaults
        from ...config_manager import get_config_manager
        config_data = get_config_manager().get_section('pattern_detection')
        if config_data:
            _config = FlagDetectionConfig.from_dict(config_data).validate()
        else:
            logger.debug("No pattern_detection config found, using defaults")
            _config = FlagDetectionConfig()
    return _config


def set_pattern_config(config: FlagDetectionConfig):
    """Set the global flag detection configuration."""
    global _config
    _config = config.validate()


def load_pattern_config(filepath: Path):
    """Load pattern configuration from file and set it as global."""
    config = FlagDetectionConfig.load_from_file(filepath)
    set_pattern_config(config)


def save_pattern_config(filepath: Path):
    """Save current global configuration to file."""
    config = get_pattern_config()
    config.save_to_file(filepath)


def reset_pattern_config():
    """Reset to default configuration."""
    global _config
    _config = FlagDetectionConfig()
