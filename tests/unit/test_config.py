"""Unit tests for environment-driven configuration."""

from pathlib import Path

import pytest

from pose_studio.config import AppConfig, GeminiConfig, load_config

_ENV_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_API_URL",
    "GEMINI_TIMEOUT_SECONDS",
    "GEMINI_MAX_ATTEMPTS",
    "GEMINI_BACKOFF_SECONDS",
    "SAMPLE_IMAGE_URL",
    "SAMPLE_IMAGE_TIMEOUT_SECONDS",
    "OUTPUT_ROOT_DIR",
    "OUTPUT_INCLUDE_METADATA",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def missing_dotenv(tmp_path: Path) -> Path:
    return tmp_path / "absent.env"


def test_defaults(monkeypatch, missing_dotenv):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    config = load_config(missing_dotenv)

    assert config.gemini.api_key == "secret"
    assert config.gemini.model == "gemini-2.5-flash-image"
    assert config.gemini.max_attempts == 3
    assert config.sample.url is None
    assert config.output.root_dir == Path("output")
    assert config.output.include_metadata is True
    assert config.log_level == "INFO"


def test_overrides(monkeypatch, missing_dotenv):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("GEMINI_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("SAMPLE_IMAGE_URL", "https://example.test/sample.jpg")
    monkeypatch.setenv("OUTPUT_INCLUDE_METADATA", "no")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config(missing_dotenv)

    assert config.gemini.timeout_seconds == 30.0
    assert config.gemini.max_attempts == 5
    assert config.sample.url == "https://example.test/sample.jpg"
    assert config.output.include_metadata is False
    assert config.log_level == "DEBUG"


def test_missing_api_key(missing_dotenv):
    with pytest.raises(RuntimeError, match="gemini/api_key"):
        load_config(missing_dotenv)


def test_invalid_number(monkeypatch, missing_dotenv):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_MAX_ATTEMPTS", "many")
    with pytest.raises(RuntimeError, match="Invalid integer value"):
        load_config(missing_dotenv)


def test_out_of_range_value(monkeypatch, missing_dotenv):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_TIMEOUT_SECONDS", "0")
    with pytest.raises(RuntimeError, match="gemini/timeout_seconds"):
        load_config(missing_dotenv)


def test_dotenv_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\n")
    assert load_config(env_file).gemini.api_key == "from-file"


def test_unknown_log_level_rejected():
    with pytest.raises(ValueError):
        AppConfig(gemini=GeminiConfig(api_key="secret"), log_level="chatty")
