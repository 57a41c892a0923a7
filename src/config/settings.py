# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: source tree
location, cache backend, extraction tuning, event feed bounds and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from healthfacts.version import EXTRACTOR_VERSION


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Sources ===
    data_root: Path = Path("./data")

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.healthfacts/cache")
    cache_redis_url: str = ""
    extractor_version: str = EXTRACTOR_VERSION

    # === Extraction ===
    extraction_window_lines: int = 4
    min_confidence: float = 0.0

    # === Event feed ===
    event_default_limit: int = 50
    event_max_limit: int = 200
    event_include_info: bool = True
    critical_range_fraction: float = 0.5
    activity_event_days: int = 14

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("min_confidence")
    @classmethod
    def validate_min_confidence(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 1.0:
            raise ValueError("min_confidence must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.extraction_window_lines < 1:
            errors.append("EXTRACTION_WINDOW_LINES must be >= 1")

        if self.event_max_limit < 1:
            errors.append("EVENT_MAX_LIMIT must be >= 1")
        elif not 1 <= self.event_default_limit <= self.event_max_limit:
            errors.append("EVENT_DEFAULT_LIMIT must be within [1, EVENT_MAX_LIMIT]")

        if self.critical_range_fraction <= 0:
            errors.append("CRITICAL_RANGE_FRACTION must be > 0")

        if self.activity_event_days < 0:
            errors.append("ACTIVITY_EVENT_DAYS must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def resolved_cache_root(self) -> Path:
        """Cache root with the user directory expanded."""
        return self.cache_root.expanduser()

    @property
    def manifest_path(self) -> Path:
        """Location of the persisted cache manifest."""
        return self.resolved_cache_root / "manifest.json"


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
