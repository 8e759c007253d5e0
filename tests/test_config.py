"""Tests for the config module."""

import tempfile

import pytest
import yaml

from group_scheduler.config import (
    ApiConfig,
    BookingConfig,
    DisplayConfig,
    GroupPollConfig,
    SchedulerConfig,
    load_config,
)

ENV_VARS = ["SCHEDULER_API_URL", "SCHEDULER_API_TIMEOUT", "SCHEDULER_TIMEZONE"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)


class TestApiConfig:
    def test_defaults(self):
        config = ApiConfig()
        assert config.base_url == "http://localhost:8000"
        assert config.timeout == 30.0

    def test_trailing_slash_stripped(self):
        assert ApiConfig(base_url="http://api.example.com/").base_url == (
            "http://api.example.com"
        )

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            ApiConfig(timeout=0)

    def test_from_dict_with_env(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_API_URL", "http://env.example.com")
        monkeypatch.setenv("SCHEDULER_API_TIMEOUT", "12.5")
        config = ApiConfig.from_dict({})
        assert config.base_url == "http://env.example.com"
        assert config.timeout == 12.5

    def test_file_values_win_over_env(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_API_URL", "http://env.example.com")
        config = ApiConfig.from_dict({"base_url": "http://file.example.com"})
        assert config.base_url == "http://file.example.com"


class TestDisplayConfig:
    def test_defaults(self):
        config = DisplayConfig()
        assert config.timezone == "Asia/Tokyo"
        assert config.cell_height == 30.0
        assert config.min_extent == 20.0
        assert config.month_cell_event_limit == 3
        assert str(config.zone) == "Asia/Tokyo"

    def test_invalid_timezone(self):
        with pytest.raises(ValueError, match="Invalid timezone"):
            DisplayConfig(timezone="Not/AZone")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("cell_height", 0),
            ("min_extent", -1),
            ("month_cell_event_limit", 0),
            ("cascade_depth", 0),
        ],
    )
    def test_invalid_sizes(self, field, value):
        with pytest.raises(ValueError):
            DisplayConfig(**{field: value})

    def test_timezone_from_env(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_TIMEZONE", "Europe/Berlin")
        assert DisplayConfig.from_dict({}).timezone == "Europe/Berlin"


class TestGroupPollConfig:
    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            GroupPollConfig(attempts=0)

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            GroupPollConfig(interval_seconds=-1)


class TestLoadConfig:
    def test_load_from_file(self):
        config_data = {
            "api": {"base_url": "http://backend:9000", "timeout": 10},
            "display": {"timezone": "America/New_York", "cell_height": 24},
            "booking": {"title_max_length": 80},
            "groups": {"attempts": 10, "interval_seconds": 1.5},
        }
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w+") as temp_file:
            yaml.dump(config_data, temp_file)
            temp_file.flush()

            config = load_config(temp_file.name)

        assert config.api.base_url == "http://backend:9000"
        assert config.api.timeout == 10
        assert config.display.timezone == "America/New_York"
        assert config.display.cell_height == 24
        assert config.booking == BookingConfig(title_max_length=80)
        assert config.groups == GroupPollConfig(attempts=10, interval_seconds=1.5)

    def test_load_from_default_location(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        with open(config_dir / "scheduler.yaml", "w") as f:
            yaml.dump({"display": {"timezone": "UTC"}}, f)

        config = load_config()
        assert config.display.timezone == "UTC"

    def test_missing_explicit_file_falls_back(self, tmp_path, caplog):
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config == SchedulerConfig.from_dict({})
        assert "Configuration file not found" in caplog.text

    def test_no_file_uses_defaults(self):
        config = load_config()
        assert config.display.timezone == "Asia/Tokyo"
        assert config.api.base_url == "http://localhost:8000"

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"display": {"cell_height": -5}}))
        with pytest.raises(ValueError):
            load_config(str(path))
