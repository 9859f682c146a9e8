"""
Centralized Configuration Manager

Manages the JSON configuration files in the config/ directory and provides
a unified interface for reading pattern detection and trading parameters
throughout the application.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


@dataclass
class ConfigPaths:
    """Configuration file paths."""

    # Project root directory (this file lives in src/flagtrader/)
    project_root: Path = field(default_factory=lambda: Path(__file__).parent.parent.parent)
    override_dir: Optional[Path] = None

    @property
    def config_dir(self) -> Path:
        """Configuration directory path."""
        if self.override_dir is not None:
            return self.override_dir
        return self.project_root / "config"

    @property
    def pattern_detection_config(self) -> Path:
        """Flag pattern detection configuration file."""
        return self.config_dir / "pattern_detection.json"

    @property
    def trading_config(self) -> Path:
        """Position sizing, spread and decision policy configuration file."""
        return self.config_dir / "trading.json"

    def files(self) -> Dict[str, Path]:
        return {
            'pattern_detection': self.pattern_detection_config,
            'trading': self.trading_config,
        }


class ConfigManager:
    """
    Centralized configuration manager.

    Provides unified access to the pattern detection and trading
    configurations. Missing or unreadable files degrade to empty sections so
    every consumer falls back to its built-in defaults.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Optional custom config directory path
        """
        self.paths = ConfigPaths(override_dir=Path(config_dir) if config_dir else None)
        self._configs: Dict[str, Dict[str, Any]] = {}
        self._load_all_configs()

    def _load_all_configs(self) -> None:
        """Load all configuration files."""
        for config_name, config_path in self.paths.files().items():
            self._configs[config_name] = self._load_config_file(config_path)
            logger.debug(f"Loaded {config_name} configuration from {config_path}")

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load a JSON configuration file."""
        if not path.exists():
            logger.warning(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file {path}: {e}")
            return {}
        except OSError as e:
            logger.error(f"Error loading config file {path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Config file {path} must contain a JSON object")
            return {}
        return data

    def get(self, config_type: str, *keys: str, default: Any = None) -> Any:
        """
        Get configuration value by nested keys.

        Args:
            config_type: Configuration type ('pattern_detection', 'trading')
            *keys: Configuration keys (e.g., 'trendline', 'touch_tolerance')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            config.get('pattern_detection', 'consolidation', 'max_retracement')
        """
        if config_type not in self._configs:
            logger.warning(f"Unknown config type: {config_type}")
            return default

        value = self._configs[config_type]

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, config_type: str, *keys: str) -> Dict[str, Any]:
        """Get an entire configuration section."""
        value = self.get(config_type, *keys, default={})

        if isinstance(value, dict):
            return value
        else:
            logger.warning(f"Expected dict but got {type(value)}, returning empty dict")
            return {}


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager()

    return _config_manager


def set_config_manager(manager: Optional[ConfigManager]) -> None:
    """Replace (or clear, with ``None``) the global configuration manager."""
    global _config_manager
    _config_manager = manager

