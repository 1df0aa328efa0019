"""Configuration management using Pydantic settings.

This module implements a two-layer configuration system:
1. Environment: Loads raw values from environment variables (UPPER_CASE)
2. Settings: Clean application settings with lowercase fields and derived values
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory (parent of projector/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

SWAP_STRATEGIES = ("auto", "rename", "recreate")


class ConfigurationError(Exception):
    """Raised when projector configuration is invalid."""

    pass


class Environment(BaseSettings):
    """Raw environment variable loading.

    This class loads values directly from environment variables with UPPER_CASE names.
    It should not contain any derived values or transformation logic.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECTOR_TARGET_DIR: Path | None = Field(
        default=None,
        description="Default target directory for projections"
    )
    PROJECTOR_LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level name (DEBUG, INFO, WARNING, ERROR)"
    )
    PROJECTOR_SWAP_STRATEGY: str = Field(
        default="auto",
        description="How ..data is replaced: auto, rename or recreate"
    )
    PROJECTOR_MATERIALIZE_WORKERS: int = Field(
        default=1,
        description="Number of threads used to write payload entries"
    )
    PROJECTOR_PRUNE_ORPHANS: bool = Field(
        default=True,
        description="Remove orphaned snapshot directories and dangling links after a swap"
    )


class Settings(BaseModel):
    """Projector settings with lowercase fields.

    Constructed directly in tests, or through Settings.load() from the
    environment.
    """

    model_config = ConfigDict(from_attributes=True)

    target_dir: Path | None = None
    log_level: str = "INFO"
    swap_strategy: str = "auto"
    materialize_workers: int = 1
    prune_orphans: bool = True

    @classmethod
    def load(cls, env: "Environment | None" = None) -> "Settings":
        """Load settings from environment variables.

        Args:
            env: Optional Environment instance (for testing). If None, loads from environment.

        Returns:
            Settings instance with all values populated
        """
        if env is None:
            env = Environment()

        return cls(
            target_dir=env.PROJECTOR_TARGET_DIR,
            log_level=env.PROJECTOR_LOG_LEVEL.upper(),
            swap_strategy=env.PROJECTOR_SWAP_STRATEGY.lower(),
            materialize_workers=env.PROJECTOR_MATERIALIZE_WORKERS,
            prune_orphans=env.PROJECTOR_PRUNE_ORPHANS,
        )

    def validate_config(self) -> None:
        """Validate that the configuration is usable.

        Raises:
            ConfigurationError: If one or more settings are invalid
        """
        errors: list[str] = []

        if self.swap_strategy not in SWAP_STRATEGIES:
            errors.append(
                f"PROJECTOR_SWAP_STRATEGY must be one of {', '.join(SWAP_STRATEGIES)} "
                f"(got {self.swap_strategy!r})"
            )

        if self.materialize_workers < 1:
            errors.append(
                f"PROJECTOR_MATERIALIZE_WORKERS must be at least 1 (got {self.materialize_workers})"
            )

        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"PROJECTOR_LOG_LEVEL {self.log_level!r} is not a known level")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.load()
