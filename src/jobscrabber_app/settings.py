#!src/jobscrabber_app/settings.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AISettings(BaseSettings):
    """Knobs shared by every outbound provider call.

    Attributes:
        timeout_seconds: Total time budget for one HTTP call, body included.
        max_tokens: Completion token cap sent to every provider.
        top_p: Nucleus sampling sent to every provider.
        temperature: Default sampling temperature for routed prompts.
        max_response_bytes: Hard cap on a provider response body.
        app_url: Attribution URL for providers that ask for one.
        app_title: Attribution title for providers that ask for one.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    timeout_seconds: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices(
            "JOBSCRABBER_AI_TIMEOUT_SECONDS", "ai_timeout_seconds"
        ),
    )
    max_tokens: int = Field(
        default=2048,
        ge=1,
        validation_alias=AliasChoices("JOBSCRABBER_AI_MAX_TOKENS", "ai_max_tokens"),
    )
    top_p: float = Field(
        default=0.95,
        gt=0.0,
        le=1.0,
        validation_alias=AliasChoices("JOBSCRABBER_AI_TOP_P", "ai_top_p"),
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        validation_alias=AliasChoices(
            "JOBSCRABBER_AI_TEMPERATURE", "ai_temperature"
        ),
    )
    max_response_bytes: int = Field(
        default=2_000_000,
        validation_alias=AliasChoices(
            "JOBSCRABBER_AI_MAX_RESPONSE_BYTES", "ai_max_response_bytes"
        ),
    )
    app_url: str = Field(
        default="https://job-scrabber.app",
        validation_alias=AliasChoices("JOBSCRABBER_APP_URL", "app_url"),
    )
    app_title: str = Field(
        default="Job Scrabber",
        validation_alias=AliasChoices("JOBSCRABBER_APP_TITLE", "app_title"),
    )


class DatabaseSettings(BaseSettings):
    """Location of the profile store.

    Attributes:
        path: SQLite file holding user profiles.
        timeout_seconds: Busy timeout for concurrent writers.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    path: Path = Field(
        default=Path("data/jobscrabber.db"),
        validation_alias=AliasChoices("JOBSCRABBER_DB_PATH", "db_path"),
    )
    timeout_seconds: int = Field(
        default=30,
        validation_alias=AliasChoices(
            "JOBSCRABBER_DB_TIMEOUT_SECONDS", "db_timeout_seconds"
        ),
    )


@lru_cache(maxsize=1)
def get_ai_settings() -> AISettings:
    return AISettings()


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings()
