"""Application settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables."""

    # Policy
    policy_path: Optional[str] = Field(
        default=None,
        description="YAML policy file; the bundled default policy when unset",
    )

    # Reliability curves
    default_curve_resolution: int = Field(
        default=100,
        gt=0,
        description="Curve resolution used by the pipeline when a request omits one",
    )
    default_time_unit: str = Field(default="hours")

    # Simulation
    simulation_seed: Optional[int] = Field(
        default=None,
        description="Seed for Monte Carlo runs; None draws fresh entropy",
    )
    simulation_histogram_bins: int = Field(default=20, gt=0)

    # Memoization
    cache_size: int = Field(default=128, ge=0, description="Entries kept per memo cache; 0 disables")

    # Paths
    artifacts_dir: str = Field(
        default="./data/artifacts",
        description="Directory for generated charts",
    )

    # Logging
    verbose: bool = Field(default=False, description="Echo engine logs to stdout")

    class Config:
        env_prefix = "RELIABILITY_"
        env_file = ".env"
        env_file_encoding = "utf-8"


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
