"""Tests for CLI commands."""
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import yaml
from click.testing import CliRunner
from unittest.mock import patch

from main import cli
from models.weather import WeatherSnapshot


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("SPOT_ALERTS_DB_PATH", raising=False)
    monkeypatch.delenv("SPOT_ALERTS_PUSH_TRANSPORT", raising=False)
    rules = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                         "config", "alert_rules.yaml")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database": {"path": str(tmp_path / "test.db")},
        "alerts": {"rules_path": rules, "timezone": "UTC", "max_workers": 1},
        "push": {"transport": "none"},
    }))
    return str(path)


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Spot Alerts" in result.output


def test_cli_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_alerts_help(runner):
    result = runner.invoke(cli, ["alerts", "--help"])
    assert result.exit_code == 0
    for cmd in ("check", "test", "rules", "history", "import"):
        assert cmd in result.output


def test_service_help(runner):
    result = runner.invoke(cli, ["service", "--help"])
    assert result.exit_code == 0
    for cmd in ("install", "uninstall", "status", "logs"):
        assert cmd in result.output


def test_import_then_list_rules(runner, config_file):
    result = runner.invoke(cli, ["--config", config_file, "alerts", "import"])
    assert result.exit_code == 0, result.output
    assert "3 rules" in result.output

    result = runner.invoke(cli, ["--config", config_file, "alerts", "rules"])
    assert result.exit_code == 0
    assert "Alert Rules" in result.output


def test_rules_empty(runner, config_file):
    result = runner.invoke(cli, ["--config", config_file, "alerts", "rules"])
    assert result.exit_code == 0
    assert "No rules stored" in result.output


def test_check_runs_cycle(runner, config_file):
    runner.invoke(cli, ["--config", config_file, "alerts", "import"])
    weather = WeatherSnapshot(cloud_cover=5, wind_speed=2, visibility=30)
    with patch("weather.open_meteo.OpenMeteoClient.get_current_weather", return_value=weather):
        result = runner.invoke(cli, ["--config", config_file, "alerts", "check"])
    assert result.exit_code == 0, result.output
    assert "3 checked" in result.output

    result = runner.invoke(cli, ["--config", config_file, "alerts", "history"])
    assert result.exit_code == 0


def test_test_command_shows_table(runner, config_file):
    runner.invoke(cli, ["--config", config_file, "alerts", "import"])
    with patch("weather.open_meteo.OpenMeteoClient.get_current_weather",
               return_value=WeatherSnapshot(cloud_cover=90)):
        result = runner.invoke(cli, ["--config", config_file, "alerts", "test"])
    assert result.exit_code == 0, result.output
    assert "Alert Rules Test" in result.output


def test_check_fails_when_rules_unreadable(runner, config_file):
    with patch("models.database.Database.list_active_rules", side_effect=RuntimeError("locked")):
        result = runner.invoke(cli, ["--config", config_file, "alerts", "check"])
    assert result.exit_code == 1
    assert "Alert cycle failed" in result.output
