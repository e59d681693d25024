"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
CyclePolicy = Literal["accept", "warn", "fail"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `JSONBRIDGE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    blocks_file : Path | None
        Default JSON file describing the independent blocks registry; maps
        from `JSONBRIDGE_BLOCKS_FILE`.
    cycle_policy : CyclePolicy
        What the processor does with blocks left unordered by a dependency
        cycle; maps from `JSONBRIDGE_CYCLE_POLICY`.
    output_key : str
        Top-level key of the processed output document; maps from
        `JSONBRIDGE_OUTPUT_KEY`.
    """

    environment: EnvName = Field(default="dev", alias="JSONBRIDGE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    blocks_file: Path | None = Field(default=None, alias="JSONBRIDGE_BLOCKS_FILE")
    cycle_policy: CyclePolicy = Field(default="warn", alias="JSONBRIDGE_CYCLE_POLICY")
    output_key: str = Field(default="independent_blocks", alias="JSONBRIDGE_OUTPUT_KEY")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("JSONBRIDGE_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "jsonbridge") -> logging.Logger:
    """Return a process-global logger configured to the current `LOG_LEVEL`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
