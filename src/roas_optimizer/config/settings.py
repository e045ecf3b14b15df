"""
Configuration management for the ROAS optimizer.
Handles application settings, environment variables, and optimization rules.
"""
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from roas_optimizer.utils.exceptions import ConfigurationError


class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


@dataclass
class FitConfig:
    """Response curve grid search configuration."""
    # Multipliers applied to max observed revenue / max observed spend
    alpha_multipliers: tuple = (1.05, 1.1, 1.2)
    gamma_values: tuple = (1.1, 1.3, 1.6, 2.0, 2.5)
    k_multipliers: tuple = (0.25, 0.5, 0.75, 1.0, 1.5)

    time_budget_seconds: float = 8.0
    max_evaluations: Optional[int] = None


@dataclass
class SearchConfig:
    """Optimal spend search configuration."""
    peak_samples: int = 512  # 513 points including both ends
    bisection_iterations: int = 60

    # Search bound expansion
    bound_growth: float = 1.8
    bound_max_iterations: int = 32
    bound_spend_multiplier: float = 2.0
    bound_k_multiplier: float = 4.0
    ceiling_spend_multiplier: float = 50.0
    ceiling_k_multiplier: float = 20.0


@dataclass
class PortfolioConfig:
    """Portfolio (multi-entity) configuration."""
    min_observations: int = 3
    unknown_entity_id: str = "UNKNOWN"
    max_workers: int = 1


@dataclass
class DefaultsConfig:
    """Default run inputs."""
    gross_margin_pct: float = 25.0
    required_net_pct: float = 14.0
    current_spend: float = 0.0
    max_spend: float = 3000.0
    seasonality: str = "none"
    recency: float = 0.30
    curve_points: int = 120


@dataclass
class IngestionConfig:
    """CSV ingestion configuration."""
    header_aliases: Dict[str, str] = field(default_factory=lambda: {
        "ad_revenue": "ad_sales",
        "ppc_sales": "ad_sales",
        "revenue": "ad_sales",
        "sales_attributed": "ad_sales",
        "ad_spend": "spend",
        "ppc_spend": "spend",
        "cost": "spend",
        "ads_cost": "spend",
        "total_revenue": "total_sales",
        "ordered_revenue": "total_sales",
        "sales": "total_sales",
        "gross_sales": "total_sales",
        "item_asin": "asin",
        "sku_asin": "asin",
        "child_asin": "asin",
        "order_date": "date",
        "day": "date",
    })
    required_single: tuple = ("date", "spend", "ad_sales")
    required_portfolio: tuple = ("asin", "date", "spend", "ad_sales")
    max_upload_size: int = 20 * 1024 * 1024  # 20MB


@dataclass
class APIConfig:
    """API server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    reload: bool = False

    # CORS settings
    cors_origins: list = field(default_factory=lambda: ["*"])
    cors_methods: list = field(default_factory=lambda: ["GET", "POST"])


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: str = "logs"
    max_file_size_mb: int = 10
    backup_count: int = 5

    # Structured logging
    use_json: bool = True


class Settings:
    """Main application settings class."""

    def __init__(self, env: Optional[Environment] = None):
        self._load_environment_variables()
        try:
            self.env = env or Environment(os.getenv("ROAS_ENV", "development"))
            self._initialize_configs()
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_environment_variables(self):
        """Loads configuration from environment variables."""
        env_file = Path(".env")
        if env_file.exists():
            self._load_env_file(env_file)

    def _load_env_file(self, env_file: Path):
        """Loads environment variables from .env file."""
        try:
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip())
        except OSError as e:
            print(f"Warning: Could not load .env file: {e}")

    def _initialize_configs(self):
        """Initializes configuration objects."""
        max_evaluations = os.getenv("ROAS_FIT_MAX_EVALUATIONS")

        self.fit = FitConfig(
            time_budget_seconds=float(os.getenv("ROAS_FIT_TIME_BUDGET_SECONDS", "8.0")),
            max_evaluations=int(max_evaluations) if max_evaluations else None
        )

        self.search = SearchConfig()

        self.portfolio = PortfolioConfig(
            max_workers=int(os.getenv("ROAS_PORTFOLIO_MAX_WORKERS", "1"))
        )

        self.defaults = DefaultsConfig()

        self.ingestion = IngestionConfig(
            max_upload_size=int(os.getenv("ROAS_MAX_UPLOAD_MB", "20")) * 1024 * 1024
        )

        self.api = APIConfig(
            host=os.getenv("ROAS_HOST", "0.0.0.0"),
            port=int(os.getenv("ROAS_PORT", "8000")),
            debug=self.env == Environment.DEVELOPMENT,
            reload=self.env == Environment.DEVELOPMENT
        )

        self.logging = LoggingConfig(
            level=os.getenv("ROAS_LOG_LEVEL", "INFO"),
            log_dir=os.getenv("ROAS_LOG_DIR", "logs"),
            use_json=os.getenv("ROAS_USE_JSON_LOGGING", "true").lower() == "true"
        )

    def get_fit_grid_config(self) -> Dict[str, Any]:
        """Gets the response curve grid (relative multipliers)."""
        return {
            "alpha": list(self.fit.alpha_multipliers),
            "gamma": list(self.fit.gamma_values),
            "K": list(self.fit.k_multipliers)
        }

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == Environment.DEVELOPMENT

    def setup_directories(self):
        """Creates necessary directories."""
        Path(self.logging.log_dir).mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
