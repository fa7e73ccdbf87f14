"""Application configuration management using Pydantic Settings.

This module defines the `Settings` class, which loads configuration parameters
from environment variables and a `.env` file. It centralizes every tunable
parameter of the CLI: the n8n instance to talk to, request timeout, logging
level, where JSON artifacts are written and how much of large payloads the
text formatters preview.

The `get_settings` function provides a cached, singleton instance of the
configuration, ensuring consistent settings throughout the application.
"""
from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict as _SettingsConfigDict

DEFAULT_OUTPUT_DIR = os.path.join(tempfile.gettempdir(), "n8n-inspector")


class Settings(BaseSettings):
    """Defines all application configuration parameters.

    Values are read from environment variables or a `.env` file. The base URL
    and API key identify a single n8n instance; everything else has a sane
    default so a two-line `.env` is enough to get going.
    """

    model_config = _SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # n8n instance
    N8N_BASE_URL: str = Field(
        description="Base URL of the n8n instance, e.g. https://n8n.example.com"
    )
    N8N_API_KEY: str = Field(description="n8n public API key (sent as X-N8N-API-KEY)")
    REQUEST_TIMEOUT: float = Field(
        default=30.0, description="Timeout (seconds) for n8n API requests"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Output
    OUTPUT_DIR: str = Field(
        default=DEFAULT_OUTPUT_DIR,
        description="Directory receiving JSON artifacts written by --json",
    )
    PREVIEW_MAX_CHARS: int = Field(
        default=500,
        description="Characters of node output shown per channel in verbose mode (without --full)",
    )
    AI_OUTPUT_MAX_CHARS: int = Field(
        default=300,
        description="Characters of model output shown per exchange in --ai mode (without --full)",
    )
    PROMPT_PREVIEW_CHARS: int = Field(
        default=200, description="Characters of each STEP_<n> prompt shown in --ai mode"
    )

    @field_validator("N8N_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        """Drop surrounding whitespace and trailing slashes from the base URL."""
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("OUTPUT_DIR", mode="before")
    @classmethod
    def blank_output_dir_to_default(cls, v: Any) -> Any:
        """Treat a blank OUTPUT_DIR as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_OUTPUT_DIR
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, singleton instance of the application settings.

    Provides a clearer error if mandatory env vars are missing.
    """
    try:
        # Required fields are injected from the environment at runtime.
        return Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        missing = [
            str(err["loc"][0])
            for err in e.errors()
            if err.get("type") == "missing" and err.get("loc")
        ]
        if missing:
            raise RuntimeError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Set them in the environment or in a .env file."
            ) from e
        raise
