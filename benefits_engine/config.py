"""Engine configuration via pydantic-settings.

Values are loaded from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings object.
Components take these values as constructor defaults; nothing reads them mid-evaluation.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DATA_DIR = Path(__file__).resolve().parent / "data"


class AmiSettings(BaseSettings):
    """Area Median Income reference data and cache settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ami_data_dir: Path = Field(
        default=_DATA_DIR / "ami",
        description="Directory holding <year>/<state>.json AMI tables",
    )
    ami_year: int = Field(default=2024, description="AMI table year to load")
    ami_cache_ttl_seconds: float = Field(default=24 * 60 * 60, description="Cache entry lifetime")
    ami_cache_max_size: int = Field(default=1000, description="Maximum cached (state, county, size) entries")
    ami_eviction: str = Field(default="fifo", description="Eviction policy: fifo or lru")

    @field_validator("ami_eviction")
    @classmethod
    def validate_eviction(cls, v: str) -> str:
        """Ensure the eviction policy is known."""
        lower = v.lower()
        if lower not in {"fifo", "lru"}:
            msg = f"Invalid eviction policy: {v}. Must be 'fifo' or 'lru'"
            raise ValueError(msg)
        return lower


class ScoringSettings(BaseSettings):
    """Confidence scores and the cut-offs that turn them into statuses."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    qualified_confidence_threshold: int = Field(default=85, ge=0, le=100)
    medium_confidence_threshold: int = Field(default=60, ge=0, le=100)
    complete_confidence: int = Field(default=95, ge=0, le=100)
    incomplete_confidence: int = Field(default=50, ge=0, le=100)
    error_confidence: int = Field(default=0, ge=0, le=100)


class ThresholdSettings(BaseSettings):
    """Poverty-line threshold resolution settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    fpl_increments_path: Path = Field(
        default=_DATA_DIR / "fpl_increments.json",
        description="JSON map of base amount -> per-additional-person increment",
    )


class EvaluatorSettings(BaseSettings):
    """Rule expression evaluator limits."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    max_rule_depth: int = Field(default=100, gt=0)


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.ami.ami_cache_ttl_seconds
        settings.scoring.qualified_confidence_threshold
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    ami: AmiSettings = Field(default_factory=AmiSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    thresholds: ThresholdSettings = Field(default_factory=ThresholdSettings)
    evaluator: EvaluatorSettings = Field(default_factory=EvaluatorSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level instance: import this wherever defaults are needed.
settings = Settings()
