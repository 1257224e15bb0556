"""
Tests for the configuration loader.
"""
import pytest
import tempfile
from pathlib import Path

from forecast_engine.config import ForecastConfig, get_config, reload_config, ConfigurationError


class TestForecastConfig:
    """Tests for ForecastConfig class."""

    def test_load_default_config(self):
        """Test loading the default configuration file."""
        config = get_config()
        assert config.version == "1.0.0"
        assert config.month_count == 12

    def test_record_defaults(self):
        """New records default to MANUAL with a flat weight."""
        config = get_config()
        assert config.default_method == "MANUAL"
        assert config.default_weight == 10

    def test_raw_access(self):
        config = get_config()
        assert "curves" in config
        assert config["horizon"]["month_count"] == 12
        assert config.get("missing", "fallback") == "fallback"

    def test_reload_config(self):
        """Reloading replaces the cached singleton."""
        before = get_config()
        after = reload_config()
        assert after is not before
        assert after is get_config()
        assert after.version == before.version


class TestCurveConfig:
    """Tests for distribution curve parameters."""

    def test_curve_params(self):
        config = get_config()
        assert config.s_curve_steepness == 0.5
        assert config.bell_curve_sigma == 3.0

    def test_ai_forecast_params(self):
        params = get_config().ai_forecast_params
        assert params == {"base": 0.8, "amplitude": 0.4, "noise": 0.1}

    def test_unknown_curve(self):
        assert get_config().get_curve_params("zigzag") == {}


class TestAcknowledgmentConfig:
    """Tests for acknowledgment workflow settings."""

    def test_defaults(self):
        config = get_config()
        assert config.default_previous_method == "MANUAL"
        assert config.default_user == "system"
        assert config.rejection_reasoning == "User rejected HBI forecast recommendation"


class TestRationaleConfig:
    """Tests for rationale templates."""

    def test_default_rationale(self):
        rationale = get_config().default_rationale
        assert "historical data" in rationale["reasoning"]
        assert len(rationale["factors"]) == 3

    def test_division_rationale(self):
        """Test lookup by two-digit CSI division."""
        config = get_config()
        concrete = config.get_division_rationale("03")
        assert "weather" in concrete["reasoning"].lower()
        assert config.get_division_rationale("99") is None

    def test_cost_code_rationale_prefix(self):
        """Test longest-prefix lookup for GC/GR cost codes."""
        config = get_config()
        assert config.get_cost_code_rationale("01-01-100") is not None
        assert config.get_cost_code_rationale("02-50") is None


class TestDatabaseConfig:
    """Tests for database configuration."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FORECAST_DATABASE_URL", "sqlite:///./override.db")
        assert get_config().database_url == "sqlite:///./override.db"

    def test_file_setting(self, monkeypatch):
        monkeypatch.delenv("FORECAST_DATABASE_URL", raising=False)
        assert get_config().database_url == "sqlite:///./forecast.db"

    def test_connect_args_sqlite_only(self):
        from forecast_engine.models import connect_args_for

        assert connect_args_for("sqlite:///./forecast.db") == {"check_same_thread": False}
        assert connect_args_for("sqlite://") == {"check_same_thread": False}
        assert connect_args_for("postgresql://user@db/forecast") == {}


class TestConfigurationError:
    """Tests for configuration error handling."""

    def test_missing_file(self):
        """Test error on missing config file."""
        with pytest.raises(ConfigurationError) as exc_info:
            ForecastConfig(Path("/nonexistent/path.yaml"))
        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self):
        """Test error on invalid YAML."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("invalid: yaml: content: [")
            temp_path = Path(f.name)

        try:
            with pytest.raises(ConfigurationError) as exc_info:
                ForecastConfig(temp_path)
            assert "Invalid YAML" in str(exc_info.value)
        finally:
            temp_path.unlink()

    def test_custom_config_falls_back_to_defaults(self):
        """Missing sections fall back to built-in defaults."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("version: '2.0'\nhorizon:\n  month_count: 6\n")
            temp_path = Path(f.name)

        try:
            config = ForecastConfig(temp_path)
            assert config.version == "2.0"
            assert config.month_count == 6
            assert config.default_weight == 10
            assert config.ai_forecast_params["noise"] == 0.1
        finally:
            temp_path.unlink()
