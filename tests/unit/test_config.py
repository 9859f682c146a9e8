"""
Unit tests for configuration management.
"""

import json
import os
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from flagtrader.config import AccountConfig, Config
from flagtrader.config_manager import ConfigManager, get_config_manager, set_config_manager
from flagtrader.exceptions import ConfigurationError
from flagtrader.models.market_data import Timeframe
from flagtrader.strategies.patterns import pattern_config
from flagtrader.strategies.patterns.pattern_config import (
    FlagDetectionConfig,
    TrendlineConfig,
    get_pattern_config,
    load_pattern_config,
    reset_pattern_config,
    save_pattern_config,
    set_pattern_config,
)


class TestConfig:
    """Test configuration loading and validation."""

    def test_config_loads_defaults(self) -> None:
        """Test that configuration loads with default values."""
        config = Config()

        assert config.account.balance == Decimal("1000")
        assert config.account.risk_percent == Decimal("2.0")
        assert config.account.account_currency == "GBP"
        assert config.analysis.default_pair == "EUR/USD"
        assert config.analysis.structural_timeframe == Timeframe.FOUR_HOURS
        assert config.analysis.entry_timeframe == Timeframe.ONE_HOUR
        assert config.analysis.min_candles == 30
        assert config.logging.level == "INFO"

    def test_config_loads_from_env(self, mock_env_vars: dict, tmp_path, monkeypatch) -> None:
        """Test that configuration loads from environment variables."""
        monkeypatch.chdir(tmp_path)
        config = Config.load_from_env()

        assert config.account.balance == Decimal("5000")
        assert config.account.risk_percent == Decimal("1.5")
        assert config.account.account_currency == "USD"
        assert config.analysis.default_pair == "GBP/USD"
        assert config.analysis.structural_timeframe == Timeframe.ONE_DAY
        assert config.analysis.entry_timeframe == Timeframe.FOUR_HOURS
        assert config.analysis.min_candles == 40
        assert config.logging.level == "DEBUG"
        assert config.logging.file_path is None

    def test_config_loads_env_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        env_file = tmp_path / "custom.env"
        env_file.write_text("ACCOUNT_BALANCE=2500\nRISK_PERCENT=1\n")

        with patch.dict(os.environ, {}, clear=True):
            config = Config.load_from_env(str(env_file))

        assert config.account.balance == Decimal("2500")
        assert config.account.risk_percent == Decimal("1")

    def test_invalid_timeframe_in_env(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)

        with patch.dict(os.environ, {"ENTRY_TIMEFRAME": "2h"}, clear=True):
            with pytest.raises(ValueError):
                Config.load_from_env()

    def test_account_validation(self) -> None:
        with pytest.raises(ValidationError):
            AccountConfig(risk_percent=Decimal("0"))
        with pytest.raises(ValidationError):
            AccountConfig(account_currency="US1")
        with pytest.raises(ValidationError):
            AccountConfig(balance=Decimal("-1"))


class TestConfigManager:
    """Test the JSON configuration file manager."""

    def setup_method(self):
        self.trading = {
            "position_sizing": {"lot_step": "0.01", "contract_size": 100000},
            "spread": {"default_spread": "2.0"},
        }

    def write_configs(self, directory):
        (directory / "trading.json").write_text(json.dumps(self.trading))
        (directory / "pattern_detection.json").write_text(json.dumps({"lookback": 40}))

    def test_get_nested_values(self, tmp_path):
        self.write_configs(tmp_path)
        manager = ConfigManager(config_dir=tmp_path)

        assert manager.get('trading', 'position_sizing', 'lot_step') == "0.01"
        assert manager.get('trading', 'position_sizing', 'contract_size') == 100000
        assert manager.get_section('trading', 'spread') == {"default_spread": "2.0"}
        assert manager.get('pattern_detection', 'lookback') == 40

    def test_missing_values_use_defaults(self, tmp_path):
        self.write_configs(tmp_path)
        manager = ConfigManager(config_dir=tmp_path)

        assert manager.get('trading', 'missing', default=7) == 7
        assert manager.get('unknown', 'key', default='x') == 'x'
        assert manager.get_section('trading', 'decision') == {}

    def test_section_must_be_an_object(self, tmp_path):
        self.write_configs(tmp_path)
        manager = ConfigManager(config_dir=tmp_path)

        assert manager.get_section('trading', 'position_sizing', 'lot_step') == {}

    def test_missing_directory_is_empty(self, tmp_path):
        manager = ConfigManager(config_dir=tmp_path / "nowhere")

        assert manager.get_section('trading') == {}
        assert manager.get_section('pattern_detection') == {}

    def test_invalid_json_is_empty(self, tmp_path):
        (tmp_path / "trading.json").write_text("{not json")

        assert ConfigManager(config_dir=tmp_path).get_section('trading') == {}

    def test_non_object_json_is_empty(self, tmp_path):
        (tmp_path / "trading.json").write_text("[1, 2]")

        assert ConfigManager(config_dir=tmp_path).get_section('trading') == {}

    def test_global_manager(self, tmp_path):
        self.write_configs(tmp_path)
        manager = ConfigManager(config_dir=tmp_path)
        set_config_manager(manager)

        assert get_config_manager() is manager
        assert get_config_manager().get_section('trading', 'spread') == {"default_spread": "2.0"}

    def test_global_manager_created_on_demand(self):
        set_config_manager(None)

        assert isinstance(get_config_manager(), ConfigManager)
        assert get_config_manager() is get_config_manager()


class TestFlagDetectionConfig:
    """Test the flag detection thresholds."""

    def test_defaults(self):
        config = FlagDetectionConfig()

        assert config.lookback == 30
        assert config.target_ratio == Decimal('2')
        assert config.pole.min_move == Decimal('0.005')
        assert config.consolidation.max_retracement == Decimal('0.7')
        assert config.trendline.min_touches == 3
        assert config.quality.max_quality == 90
        assert config.validate() is config

    def test_dict_round_trip(self):
        config = FlagDetectionConfig(trendline=TrendlineConfig(touch_tolerance=Decimal('0.001')))
        data = config.to_dict()

        assert data['trendline']['touch_tolerance'] == '0.001'
        assert FlagDetectionConfig.from_dict(data) == config

    def test_partial_dict(self):
        config = FlagDetectionConfig.from_dict({"pole": {"min_move": "0.01"}})

        assert config.pole.min_move == Decimal('0.01')
        assert config.pole.min_length == 3
        assert config.lookback == 30

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown keys"):
            FlagDetectionConfig.from_dict({"pole": {"min_size": "0.01"}})

    def test_bad_value_rejected(self):
        with pytest.raises(ConfigurationError, match="Invalid value"):
            FlagDetectionConfig.from_dict({"lookback": "many"})

    @pytest.mark.parametrize("value", [2.9, "2.5", True, float("inf")])
    def test_fractional_count_rejected(self, value):
        """Integer thresholds are never truncated."""
        with pytest.raises(ConfigurationError, match="trendline.min_touches"):
            FlagDetectionConfig.from_dict({"trendline": {"min_touches": value}})

    def test_whole_number_counts_accepted(self):
        config = FlagDetectionConfig.from_dict({"lookback": "40", "trendline": {"min_touches": 4.0}})

        assert config.lookback == 40
        assert config.trendline.min_touches == 4
        assert isinstance(config.trendline.min_touches, int)

    def test_section_must_be_object(self):
        with pytest.raises(ConfigurationError):
            FlagDetectionConfig.from_dict({"trendline": 3})

    def test_validate_lists_all_problems(self):
        config = FlagDetectionConfig.from_dict({
            "lookback": 0,
            "consolidation": {"min_retracement": "0.8"},
        })

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()

        message = str(exc_info.value)
        assert "lookback" in message
        assert "retracement band" in message

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "flags.json"
        set_pattern_config(FlagDetectionConfig(lookback=40))

        save_pattern_config(path)
        reset_pattern_config()
        assert get_pattern_config().lookback == 30

        load_pattern_config(path)
        assert get_pattern_config().lookback == 40

    def test_set_rejects_invalid(self):
        with pytest.raises(ConfigurationError):
            set_pattern_config(FlagDetectionConfig(target_ratio=Decimal('0')))

    def test_seeded_from_config_manager(self, tmp_path, monkeypatch):
        (tmp_path / "pattern_detection.json").write_text(json.dumps({"lookback": 45}))
        set_config_manager(ConfigManager(config_dir=tmp_path))
        monkeypatch.setattr(pattern_config, "_config", None)

        assert get_pattern_config().lookback == 45
