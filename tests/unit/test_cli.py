"""
Unit tests for the command-line interface.
"""

import json
import logging

import pytest
from click.testing import CliRunner

from flagtrader import __version__
from flagtrader.cli.commands import cli


ENV = {"LOG_LEVEL": "ERROR", "LOG_FILE_PATH": "", "ACCOUNT_CURRENCY": "USD"}


@pytest.fixture(autouse=True)
def restore_logger(tmp_path, monkeypatch):
    """Keep the CLI's logger setup from leaking into other tests."""
    monkeypatch.chdir(tmp_path)
    yield
    logger = logging.getLogger("flagtrader")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def write_candles(path, candles):
    path.write_text(json.dumps({"candles": [c.to_dict() for c in candles]}))
    return str(path)


class TestAnalyzeCommand:
    """Test the analyze command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_analyze_json(self, tmp_path, bullish_flag_structural_candles, bullish_flag_candles):
        structural = write_candles(tmp_path / "h4.json", bullish_flag_structural_candles)
        entry = write_candles(tmp_path / "h1.json", bullish_flag_candles)

        result = self.runner.invoke(cli, [
            "analyze", "--pair", "EUR/USD", "--structural", structural, "--entry", entry,
            "--sentiment", "bullish", "--spread", "1.0", "--json"
        ], env=ENV)

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["decision"]["action"] == "TRADE"
        assert data["decision"]["direction"] == "BUY"
        assert data["pattern"]["stop_loss_pips"] == 28
        assert data["position_sizing"]["lot_size"] == "0.07"

    def test_analyze_table(self, tmp_path, bullish_flag_structural_candles, bullish_flag_candles):
        structural = write_candles(tmp_path / "h4.json", bullish_flag_structural_candles)
        entry = write_candles(tmp_path / "h1.json", bullish_flag_candles)

        result = self.runner.invoke(cli, [
            "analyze", "--structural", structural, "--entry", entry, "--calendar", "avoid"
        ], env=ENV)

        assert result.exit_code == 0, result.output
        assert "WAIT" in result.output
        assert "High impact economic event scheduled" in result.output

    def test_analyze_insufficient_data(self, tmp_path, bullish_flag_candles):
        short = write_candles(tmp_path / "short.json", bullish_flag_candles[:5])
        entry = write_candles(tmp_path / "h1.json", bullish_flag_candles)

        result = self.runner.invoke(cli, ["analyze", "--structural", short, "--entry", entry], env=ENV)

        assert result.exit_code == 1
        assert "Analysis failed" in result.output

    def test_analyze_malformed_file(self, tmp_path, bullish_flag_candles):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps([{"timestamp": "2024-01-15T00:00:00Z", "open": "1.1"}]))
        entry = write_candles(tmp_path / "h1.json", bullish_flag_candles)

        result = self.runner.invoke(cli, ["analyze", "--structural", str(bad), "--entry", entry], env=ENV)

        assert result.exit_code == 1
        assert "Invalid candle record 0" in result.output


class TestPositionCommand:
    """Test the position command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_position_json(self):
        result = self.runner.invoke(cli, [
            "position", "--pair", "EUR/USD", "--balance", "1000", "--stop-loss-pips", "20",
            "--price", "1.1000", "--spread", "1.5", "--json"
        ], env=ENV)

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["entry_price"] == "1.10015"
        assert data["lot_size"] == "0.10"
        assert data["true_risk_reward_ratio"] == "1.79"

    def test_position_table(self):
        result = self.runner.invoke(cli, [
            "position", "--pair", "USD/JPY", "--balance", "1000", "--stop-loss-pips", "20",
            "--price", "150.00", "--direction", "sell"
        ], env=ENV)

        assert result.exit_code == 0, result.output
        assert "150.200" in result.output

    def test_position_bad_number(self):
        result = self.runner.invoke(cli, [
            "position", "--pair", "EUR/USD", "--balance", "lots", "--stop-loss-pips", "20", "--price", "1.1"
        ], env=ENV)

        assert result.exit_code == 1
        assert "Position sizing failed" in result.output


class TestSpreadCommand:
    def test_spread_at_time(self):
        result = CliRunner().invoke(cli, ["spread", "--pair", "eurusd", "--at", "2024-01-15T10:00:00Z"], env=ENV)

        assert result.exit_code == 0, result.output
        assert "Estimated spread for EUR/USD: 0.8 pips" in result.output

    def test_spread_bad_pair(self):
        result = CliRunner().invoke(cli, ["spread", "--pair", "EURO"], env=ENV)

        assert result.exit_code == 1
        assert "Spread estimation failed" in result.output


class TestConfigCommands:
    def test_config_show(self):
        result = CliRunner().invoke(cli, ["config", "show"], env=ENV)

        assert result.exit_code == 0, result.output
        assert "trendline.touch_tolerance" in result.output

    def test_config_save(self, tmp_path):
        path = tmp_path / "saved.json"

        result = CliRunner().invoke(cli, ["config", "save", str(path)], env=ENV)

        assert result.exit_code == 0, result.output
        assert json.loads(path.read_text())["lookback"] == 30


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
