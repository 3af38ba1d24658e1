from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMPILED_PATH = Path("bootstrap/cache/container.json")


class ContainerSettings(BaseSettings):
    """Runtime configuration for compiled containers and the ``conduit`` CLI.

    Values are read from ``CONDUIT_*`` environment variables, for example
    ``CONDUIT_COMPILED_PATH=/srv/app/cache/container.json``.
    """

    model_config = SettingsConfigDict(env_prefix="CONDUIT_", extra="ignore")

    compiled_path: Path = DEFAULT_COMPILED_PATH
    """Where ``conduit compile`` writes the artifact and containers load it from."""

    use_compiled: bool = True
    """Load the artifact in ``CompiledContainer.from_settings``."""

    log_level: str = "INFO"
    """Log level configured by the CLI."""


__all__ = ["DEFAULT_COMPILED_PATH", "ContainerSettings"]
