"""
Process-level settings, read from the environment (``.env`` honoured).

    VERSIONIC_DATABASE_URL   SQLAlchemy URL, default ``sqlite:///versionic.db``
    VERSIONIC_ECHO_SQL       ``1``/``true`` to log every statement
    VERSIONIC_LOG_LEVEL      level for the ``versionic`` logger, default WARNING
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite:///versionic.db"


class VersionicSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VERSIONIC_",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "VersionicSettings":
        if dotenv:
            load_dotenv()
        return cls()
