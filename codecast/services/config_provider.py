"""Deployment configuration providers.

``FileConfigProvider`` re-reads ``config.json`` on every call so that edits take
effect on the next webhook without a restart. ``InMemoryConfigProvider`` is the
test double.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from codecast.schemas.deploy import DeployConfig

logger = structlog.get_logger()

CONFIG_FILENAME = "config.json"


class ConfigurationError(Exception):
    """The deployment configuration is missing, unreadable or invalid."""


class ConfigProvider(Protocol):
    """Protocol for loading the deployment configuration."""

    def load(self) -> DeployConfig:
        """Return a validated configuration or raise ``ConfigurationError``."""
        ...


class FileConfigProvider:
    """Loads ``<config_dir>/config.json`` from disk on each call."""

    def __init__(self, config_dir: str | Path) -> None:
        self.path = Path(config_dir) / CONFIG_FILENAME

    def load(self) -> DeployConfig:
        logger.info("config_reading", path=str(self.path))
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("config_unreadable", path=str(self.path), error=str(exc))
            raise ConfigurationError("Application is not configured.") from exc

        try:
            return DeployConfig.model_validate_json(raw)
        except ValidationError as exc:
            logger.error(
                "config_invalid",
                path=str(self.path),
                errors=exc.errors(include_url=False),
            )
            raise ConfigurationError("Application is not configured.") from exc


class InMemoryConfigProvider:
    """Test double that hands out a fixed configuration and counts loads."""

    def __init__(self, config: DeployConfig | None = None) -> None:
        self.config = config
        self.loads = 0

    def load(self) -> DeployConfig:
        self.loads += 1
        if self.config is None:
            raise ConfigurationError("Application is not configured.")
        return self.config
