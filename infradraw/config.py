"""Runtime configuration for infradraw, read from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 15.0
BUNDLED_SCHEMA_DIR = Path(__file__).with_name("schemas")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


@dataclass
class AppConfig:
    """Settings shared by the importer, the schema catalog and the CLI."""

    schema_dir: Path = field(
        default_factory=lambda: Path(os.getenv("INFRADRAW_SCHEMA_DIR") or BUNDLED_SCHEMA_DIR)
    )
    provider_version: Optional[str] = field(
        default_factory=lambda: os.getenv("INFRADRAW_PROVIDER_VERSION") or None
    )
    github_token: Optional[str] = field(default_factory=lambda: os.getenv("GITHUB_TOKEN") or None)
    request_timeout: float = field(
        default_factory=lambda: _env_float("INFRADRAW_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
    )
    log_level: str = field(default_factory=lambda: os.getenv("INFRADRAW_LOG_LEVEL", "INFO").upper())

    def __post_init__(self) -> None:
        self.schema_dir = Path(self.schema_dir)
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level}")

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls()
