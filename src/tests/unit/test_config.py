"""Unit tests for Config and the decimal/datetime helpers it ships with.

Config tests cover:
- Environment selection (production vs development)
- Database URL override via argument and environment variable
- The get_config() singleton
"""

import logging
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

from src.utils.config import Config, get_config, get_database_url, reset_config
from src.utils.constants import DATABASE_FILENAME, ENV_VAR_DATABASE_URL, ENV_VAR_ENVIRONMENT
from src.utils.datetime_utils import as_utc
from src.utils.decimal_utils import quantize_price, to_decimal


class TestConfig:
    """Tests for the Config class."""

    def setup_method(self):
        """Reset config singleton before each test."""
        reset_config()

    def teardown_method(self):
        """Clean up after each test."""
        reset_config()

    def test_production_uses_home_directory(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.delenv(ENV_VAR_DATABASE_URL, raising=False)

        config = Config("production")

        assert config.is_production
        assert config.database_path == tmp_path / ".rm_cost_tracker" / DATABASE_FILENAME
        assert config.database_path.parent.is_dir()
        assert config.database_url == f"sqlite:///{config.database_path}"
        assert config.database_exists() is False

    def test_development_uses_project_data_dir(self):
        config = Config("development", database_url="sqlite:///:memory:")

        project_root = Path(__file__).resolve().parents[3]
        assert config.is_development
        assert config.database_path.resolve() == (project_root / "data" / DATABASE_FILENAME).resolve()

    def test_url_argument_overrides_default(self):
        config = Config("development", database_url="postgresql://db/costs")

        assert config.database_url == "postgresql://db/costs"
        assert config.database_exists() is True

    def test_url_environment_override(self, monkeypatch):
        monkeypatch.setenv(ENV_VAR_DATABASE_URL, "sqlite:////srv/costs.db")

        assert Config("production").database_url == "sqlite:////srv/costs.db"

    def test_get_config_reads_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_VAR_ENVIRONMENT, "development")
        monkeypatch.setenv(ENV_VAR_DATABASE_URL, "sqlite:///:memory:")

        config = get_config()

        assert config.environment == "development"
        assert get_database_url() == "sqlite:///:memory:"

    def test_get_config_is_singleton(self, monkeypatch, caplog):
        monkeypatch.setenv(ENV_VAR_DATABASE_URL, "sqlite:///:memory:")
        first = get_config("development")

        with caplog.at_level(logging.WARNING):
            second = get_config("production")

        assert second is first
        assert second.environment == "development"
        assert "Returning existing singleton" in caplog.text


class TestDecimalUtils:
    """Tests for to_decimal() and quantize_price()."""

    @pytest.mark.parametrize(
        "value,expected",
        [(2, Decimal("2")), ("1.5", Decimal("1.5")), (0.1, Decimal("0.1")), (Decimal("3"), Decimal("3"))],
    )
    def test_to_decimal(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "abc", "NaN", "Infinity"])
    def test_to_decimal_rejects(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    def test_quantize_price_rounds_half_up(self):
        assert quantize_price("1.00005") == Decimal("1.0001")
        assert quantize_price("12.5") == Decimal("12.5000")


class TestAsUtc:
    """Tests for as_utc()."""

    def test_naive_is_treated_as_utc(self):
        value = as_utc(datetime(2026, 1, 2, 3, 4, 5))
        assert value.tzinfo == timezone.utc
        assert value.hour == 3

    def test_aware_is_converted(self):
        value = as_utc(datetime(2026, 1, 2, 3, 0, tzinfo=timezone(timedelta(hours=2))))
        assert value.hour == 1

    def test_none(self):
        assert as_utc(None) is None
