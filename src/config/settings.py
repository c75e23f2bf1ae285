# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache ===
    cache_backend: Literal["json", "redis"] = "json"
    cache_file: Path = Path("~/.fpcache/fingerprints.json")
    cache_redis_url: str = ""
    cache_redis_timeout: float = 5.0
    cache_redis_key_prefix: str = ""
    cache_redis_verify: bool = False

    # === Perceptual hashing ===
    perceptual_enabled: bool = True
    perceptual_algorithm: Literal["average", "gradient", "vert-gradient"] = "average"
    perceptual_hash_size: int = 8
    near_duplicate_threshold: int = 5
    include_raw_formats: bool = False

    # === Batch ===
    batch_max_workers: int = 4
    batch_recursive: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("cache_redis_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        """Remote I/O must stay bounded."""
        if v <= 0:
            raise ValueError("cache_redis_timeout must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if (
            self.perceptual_hash_size < 2
            or (self.perceptual_hash_size * self.perceptual_hash_size) % 8
        ):
            errors.append(
                "PERCEPTUAL_HASH_SIZE must be >= 2 and its square a multiple of 8"
            )

        if self.near_duplicate_threshold < 0:
            errors.append("NEAR_DUPLICATE_THRESHOLD must be >= 0")

        if self.near_duplicate_threshold > self.perceptual_hash_size**2:
            errors.append(
                "NEAR_DUPLICATE_THRESHOLD must not exceed the perceptual digest bit count"
            )

        if self.batch_max_workers < 1:
            errors.append("BATCH_MAX_WORKERS must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
