"""
Configuration management for the metrics engine
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Ops Metrics Engine"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    database_url: str = "sqlite:///./opsmetrics.db"

    # Fetch DAG
    fetch_batch_timeout_seconds: float = 10.0  # Per batch, whole computation fails on timeout

    # Metric defaults
    trailing_chart_months: int = 6
    default_vat_rate: float = 0.0  # Used when neither goal nor business sets a VAT rate
    default_markup: float = 1.0  # Used when neither goal nor business sets a markup
    use_unit_cost_snapshot: bool = False  # Cost managed products at unit_cost_at_time instead of live unit_cost

    # Stored snapshots
    snapshot_round_digits: int = 2

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
