"""Tests for environment-driven settings and application wiring."""

from __future__ import annotations

import pytest

from src.app import create_app
from src.config.settings import Settings, load_settings

_ENV_VARS = (
    "LOG_LEVEL",
    "NL_FORMULA_MAX_ALTERNATIVES",
    "NL_FORMULA_SUGGESTION_LIMIT",
    "NL_FORMULA_PREFER_CELL_REFERENCES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # No stray `.env` file from the working directory.
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.log_level == "INFO"
    assert settings.max_alternatives == 3
    assert settings.suggestion_limit == 5
    assert settings.prefer_cell_references is False


def test_values_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("NL_FORMULA_MAX_ALTERNATIVES", "2")
    monkeypatch.setenv("NL_FORMULA_PREFER_CELL_REFERENCES", "true")

    settings = Settings()

    assert settings.log_level == "DEBUG"
    assert settings.max_alternatives == 2
    assert settings.prefer_cell_references is True


def test_values_from_dotenv_file(tmp_path) -> None:
    (tmp_path / ".env").write_text("NL_FORMULA_SUGGESTION_LIMIT=7\n", encoding="utf-8")

    assert load_settings().suggestion_limit == 7


def test_invalid_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    with pytest.raises(RuntimeError):
        load_settings()


def test_invalid_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NL_FORMULA_MAX_ALTERNATIVES", "0")

    with pytest.raises(RuntimeError):
        load_settings()


def test_create_app_uses_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NL_FORMULA_SUGGESTION_LIMIT", "1")

    app = create_app(load_settings())

    assert app.converter.suggestion_limit == 1
    assert app.converter.max_alternatives == 3
