"""Environment-driven configuration for the query service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _load_env(dotenv_path: Optional[Path] = None) -> None:
    """Load the .env file once for the process."""

    if getattr(_load_env, "_loaded", False):  # type: ignore[attr-defined]
        return

    load_dotenv(dotenv_path)
    setattr(_load_env, "_loaded", True)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection details for the database that questions are asked against."""

    driver: str = "postgresql+psycopg2"
    user: str = "postgres"
    password: str = "postgres"
    host: str = "127.0.0.1"
    port: int = 5432
    name: str = "postgres"
    schema: str = "public"
    url_override: Optional[str] = None

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        """Instantiate settings using environment overrides when present."""

        defaults = cls()
        return cls(
            driver=os.getenv("DB_DRIVER", defaults.driver),
            user=os.getenv("DB_USER", defaults.user),
            password=os.getenv("DB_PASSWORD", defaults.password),
            host=os.getenv("DB_HOST", defaults.host),
            port=int(os.getenv("DB_PORT", defaults.port)),
            name=os.getenv("DB_NAME", defaults.name),
            schema=os.getenv("DB_SCHEMA", defaults.schema),
            url_override=os.getenv("DATABASE_URL") or None,
        )

    @property
    def sqlalchemy_url(self) -> str:
        """Return a SQLAlchemy compatible URL."""

        if self.url_override:
            return self.url_override
        if self.password:
            credentials = f"{self.user}:{self.password}"
        else:
            credentials = self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.name}"

    @property
    def masked_url(self) -> str:
        if self.url_override:
            return self.url_override.split("@")[-1]
        pwd = "***" if self.password else ""
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True)
class Settings:
    """Container for application configuration."""

    database: DatabaseSettings
    sqlalchemy_echo: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "Settings":
        """Build ``Settings`` using environment variables (optionally from ``.env``)."""

        _load_env(dotenv_path)

        database = DatabaseSettings.from_env()
        sqlalchemy_echo = os.getenv("SQLALCHEMY_ECHO", "false").lower() in {"1", "true"}

        return cls(
            database=database,
            sqlalchemy_echo=sqlalchemy_echo,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@lru_cache()
def get_settings(dotenv_path: Optional[Path] = None) -> Settings:
    """Return a cached settings instance."""

    return Settings.from_env(dotenv_path=dotenv_path)
