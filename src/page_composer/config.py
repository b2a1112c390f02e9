"""Runtime configuration for the page composer.

Settings are read from the environment once and frozen.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./page_composer.sqlite3"


class ComposerSettings(BaseModel):
    """
    Static configuration shared by the CLI, the UI and the editor sessions.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy async connection string for the record store.",
    )
    log_level: str = Field(
        default="INFO", description="Root log level."
    )
    catalog_path: Optional[str] = Field(
        default=None,
        description="Optional YAML catalog of component definitions.",
    )
    mutation_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds an editor waits for a store call before giving up.",
    )

    @classmethod
    def from_env(cls) -> "ComposerSettings":
        """Builds settings from environment variables."""
        timeout = os.environ.get("PAGE_COMPOSER_TIMEOUT")
        return cls(
            database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            catalog_path=os.environ.get("PAGE_COMPOSER_CATALOG") or None,
            mutation_timeout=float(timeout) if timeout else None,
        )
