"""
Configuration loader for the Forecast Distribution & Acknowledgment Engine.

Loads settings from forecast_config.yaml and provides typed access
to all configuration sections.
"""
import os
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "forecast_config.yaml"

DATABASE_URL_ENV = "FORECAST_DATABASE_URL"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class ForecastConfig:
    """
    Configuration manager for the forecast engine.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Forecast Horizon
    # =========================================================================

    @property
    def horizon(self) -> dict:
        """Rolling forecast horizon configuration."""
        return self._config.get("horizon", {})

    @property
    def month_count(self) -> int:
        """Number of months in the rolling window."""
        return int(self.horizon.get("month_count", 12))

    @property
    def sum_tolerance(self) -> float:
        """Allowed drift between a distribution's sum and its budget."""
        return float(self.horizon.get("sum_tolerance", 0.01))

    # =========================================================================
    # Record Defaults
    # =========================================================================

    @property
    def defaults(self) -> dict:
        """Defaults applied to newly created forecast records."""
        return self._config.get("defaults", {})

    @property
    def default_method(self) -> str:
        return self.defaults.get("method", "MANUAL")

    @property
    def default_weight(self) -> int:
        return int(self.defaults.get("weight", 10))

    # =========================================================================
    # Distribution Curves
    # =========================================================================

    @property
    def curves(self) -> dict:
        """Shape parameters for the distribution curves."""
        return self._config.get("curves", {})

    def get_curve_params(self, curve: str) -> dict:
        """
        Get parameters for a distribution curve.

        Args:
            curve: One of 's_curve', 'bell_curve', 'ai_forecast'
        """
        return self.curves.get(curve, {})

    @property
    def s_curve_steepness(self) -> float:
        return float(self.get_curve_params("s_curve").get("steepness", 0.5))

    @property
    def bell_curve_sigma(self) -> float:
        return float(self.get_curve_params("bell_curve").get("sigma", 3.0))

    @property
    def ai_forecast_params(self) -> dict:
        """Base, amplitude and noise bound for the AI forecast curve."""
        params = self.get_curve_params("ai_forecast")
        return {
            "base": float(params.get("base", 0.8)),
            "amplitude": float(params.get("amplitude", 0.4)),
            "noise": float(params.get("noise", 0.1)),
        }

    # =========================================================================
    # Acknowledgment Workflow
    # =========================================================================

    @property
    def acknowledgment(self) -> dict:
        """Acknowledgment workflow configuration."""
        return self._config.get("acknowledgment", {})

    @property
    def default_previous_method(self) -> str:
        """Method restored on rejection when no previous method was recorded."""
        return self.acknowledgment.get("default_previous_method", "MANUAL")

    @property
    def default_user(self) -> str:
        return self.acknowledgment.get("default_user", "system")

    @property
    def rejection_reasoning(self) -> str:
        return self.acknowledgment.get(
            "rejection_reasoning", "User rejected HBI forecast recommendation"
        )

    # =========================================================================
    # Rationale Templates
    # =========================================================================

    @property
    def rationale(self) -> dict:
        """Rationale templates used to explain AI forecasts."""
        return self._config.get("rationale", {})

    @property
    def default_rationale(self) -> dict:
        return self.rationale.get("default", {
            "reasoning": "AI-powered analysis based on historical data and market conditions.",
            "factors": ["Historical performance", "Market trends", "Weather patterns"],
        })

    def get_division_rationale(self, division: str) -> Optional[dict]:
        """Get rationale template for a two-digit CSI division (e.g., '03')."""
        return self.rationale.get("csi_divisions", {}).get(str(division))

    def get_cost_code_rationale(self, cost_code: str) -> Optional[dict]:
        """Get rationale template for the longest matching cost code prefix."""
        templates = self.rationale.get("cost_codes", {})
        matches = [prefix for prefix in templates if cost_code.startswith(prefix)]
        if not matches:
            return None
        return templates[max(matches, key=len)]

    # =========================================================================
    # Database
    # =========================================================================

    @property
    def database(self) -> dict:
        return self._config.get("database", {})

    @property
    def database_url(self) -> str:
        """Database URL; FORECAST_DATABASE_URL overrides the file setting."""
        return os.environ.get(
            DATABASE_URL_ENV,
            self.database.get("url", "sqlite:///./forecast.db")
        )

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> ForecastConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        ForecastConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return ForecastConfig(path)


def reload_config() -> ForecastConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
