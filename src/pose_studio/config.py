from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator


class GeminiConfig(BaseModel):
    """Settings required to call the Gemini image editing model."""

    api_key: str = Field(..., min_length=1, description="Google AI Studio / Gemini API key")
    model: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model that accepts images and returns an edited image",
    )
    api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language REST API",
    )
    timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=600.0,
        description="Per-request timeout for generation calls",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per generation when the transport fails or the service is overloaded",
    )
    backoff_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=30.0,
        description="Multiplier for exponential backoff between attempts",
    )


class SampleImageConfig(BaseModel):
    """Location of the sample photo offered before the user uploads one."""

    url: str | None = Field(default=None, description="URL of the default sample image")
    timeout_seconds: float = Field(default=15.0, ge=1.0, le=120.0)


class OutputConfig(BaseModel):
    """Configuration for storing generated images."""

    root_dir: Path = Field(default_factory=lambda: Path("output"))
    include_metadata: bool = Field(default=True, description="Write request metadata next to images")


class AppConfig(BaseModel):
    """Top-level configuration object consumed by the scripts and batch runner."""

    gemini: GeminiConfig
    sample: SampleImageConfig = Field(default_factory=SampleImageConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def _bool_from_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value: {value}") from exc


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    Parameters
    ----------
    dotenv_path:
        Optional override for the .env file location. Defaults to ``.env`` in the
        working directory.

    Raises
    ------
    RuntimeError
        If required configuration values are missing or invalid.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    data = {
        "gemini": {
            "api_key": os.getenv("GEMINI_API_KEY"),
            "model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash-image"),
            "api_url": os.getenv(
                "GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta"
            ),
            "timeout_seconds": _float_from_env(os.getenv("GEMINI_TIMEOUT_SECONDS"), 120.0),
            "max_attempts": _int_from_env(os.getenv("GEMINI_MAX_ATTEMPTS"), 3),
            "backoff_seconds": _float_from_env(os.getenv("GEMINI_BACKOFF_SECONDS"), 2.0),
        },
        "sample": {
            "url": os.getenv("SAMPLE_IMAGE_URL") or None,
            "timeout_seconds": _float_from_env(os.getenv("SAMPLE_IMAGE_TIMEOUT_SECONDS"), 15.0),
        },
        "output": {
            "root_dir": Path(os.getenv("OUTPUT_ROOT_DIR", "output")),
            "include_metadata": _bool_from_env(os.getenv("OUTPUT_INCLUDE_METADATA"), True),
        },
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        problems = {"/".join(str(part) for part in err["loc"]) for err in exc.errors()}
        problems_str = ", ".join(sorted(problems))
        raise RuntimeError(f"Missing or invalid configuration values: {problems_str}") from exc
