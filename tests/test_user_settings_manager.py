"""Tests for the user settings manager - settings persistence and defaults."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from unittest.mock import patch

from src.dockchat.models.session import ConversationMode
from src.dockchat.services.user_settings_manager import (
    API_KEY_ENV_VAR,
    get_current_mode,
    load_user_settings,
    resolve_api_key,
    save_user_settings,
    update_mode,
)


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Path:
    """Create a temporary settings file location."""
    return tmp_path / "user_settings.json"


def _mock_settings_file(settings_file: Path) -> Any:
    """Create a context manager that patches SETTINGS_FILE."""
    return patch("src.dockchat.services.user_settings_manager.SETTINGS_FILE", settings_file)


def test_load_user_settings_returns_defaults_when_file_missing(temp_settings_file: Path) -> None:
    with _mock_settings_file(temp_settings_file):
        settings = load_user_settings()

    assert settings == {
        "api_key": "",
        "api_url": "https://api.anthropic.com/v1/messages",
        "model_name": "claude-3-sonnet-20240229",
        "current_mode": "ask",
    }


def test_load_user_settings_reads_valid_file(temp_settings_file: Path) -> None:
    temp_settings_file.write_text(
        json.dumps(
            {
                "api_key": "  sk-ant-test  ",
                "api_url": "https://proxy.test/v1/messages",
                "model_name": "claude-3-opus-20240229",
                "current_mode": "composer",
            }
        ),
        encoding="utf-8",
    )

    with _mock_settings_file(temp_settings_file):
        settings = load_user_settings()

    assert settings["api_key"] == "sk-ant-test"
    assert settings["api_url"] == "https://proxy.test/v1/messages"
    assert settings["model_name"] == "claude-3-opus-20240229"
    assert settings["current_mode"] == "composer"


def test_load_user_settings_handles_corrupt_file(temp_settings_file: Path) -> None:
    temp_settings_file.write_text("{not json", encoding="utf-8")

    with _mock_settings_file(temp_settings_file):
        settings = load_user_settings()

    assert settings["current_mode"] == "ask"
    assert settings["api_key"] == ""


def test_load_user_settings_ignores_non_object_payload(temp_settings_file: Path) -> None:
    temp_settings_file.write_text("[]", encoding="utf-8")

    with _mock_settings_file(temp_settings_file):
        settings = load_user_settings()

    assert settings["model_name"] == "claude-3-sonnet-20240229"


@pytest.mark.parametrize(
    "stored, expected",
    [(0, ConversationMode.ASK), (1, ConversationMode.COMPOSER), ("Composer Mode", ConversationMode.COMPOSER), ("bogus", ConversationMode.ASK), (True, ConversationMode.ASK)],
)
def test_current_mode_accepts_legacy_values(temp_settings_file: Path, stored: Any, expected: ConversationMode) -> None:
    temp_settings_file.write_text(json.dumps({"current_mode": stored}), encoding="utf-8")

    with _mock_settings_file(temp_settings_file):
        assert get_current_mode() is expected


def test_update_mode_persists_and_keeps_other_settings(temp_settings_file: Path) -> None:
    with _mock_settings_file(temp_settings_file):
        save_user_settings({"api_key": "sk-keep", "model_name": "claude-custom"})
        update_mode(ConversationMode.COMPOSER)
        stored = json.loads(temp_settings_file.read_text(encoding="utf-8"))

    assert stored["current_mode"] == "composer"
    assert stored["api_key"] == "sk-keep"
    assert stored["model_name"] == "claude-custom"
    assert stored["api_url"] == "https://api.anthropic.com/v1/messages"


def test_resolve_api_key_prefers_stored_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(API_KEY_ENV_VAR, "sk-env")

    assert resolve_api_key({"api_key": "sk-stored"}) == "sk-stored"
    assert resolve_api_key({"api_key": ""}) == "sk-env"


def test_resolve_api_key_empty_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)

    assert resolve_api_key({"api_key": "   "}) == ""
