import json
import logging
import os
from typing import Any, Dict, Optional

from src.dockchat.config import DEFAULT_API_URL, DEFAULT_MODEL_NAME, SETTINGS_FILE
from src.dockchat.models.session import ConversationMode

logger = logging.getLogger(__name__)

# Environment variable consulted when no key is stored in the settings file.
API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"

# Integer values used by older settings files for the persisted mode.
_LEGACY_MODE_VALUES = {0: ConversationMode.ASK, 1: ConversationMode.COMPOSER}


def _default_settings() -> Dict[str, Any]:
    return {
        "api_key": "",
        "api_url": DEFAULT_API_URL,
        "model_name": DEFAULT_MODEL_NAME,
        "current_mode": ConversationMode.ASK.value,
    }


def _normalize_text(value: Any, fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    value = value.strip()
    return value or fallback


def _normalize_mode(value: Any, fallback: str = ConversationMode.ASK.value) -> str:
    if isinstance(value, ConversationMode):
        return value.value
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        mode = _LEGACY_MODE_VALUES.get(value)
        return mode.value if mode else fallback
    if isinstance(value, str):
        candidate = value.strip().lower()
        aliases = {
            "ask mode": ConversationMode.ASK.value,
            "composer mode": ConversationMode.COMPOSER.value,
        }
        candidate = aliases.get(candidate, candidate)
        if candidate in {mode.value for mode in ConversationMode}:
            return candidate
    return fallback


def load_user_settings() -> Dict[str, Any]:
    """
    Load settings from disk, falling back to defaults for anything missing or invalid.
    """
    settings = _default_settings()

    if not SETTINGS_FILE.exists():
        return settings

    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (IOError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read user settings from %s: %s", SETTINGS_FILE, exc)
        return settings

    if not isinstance(data, dict):
        logger.warning("User settings file %s does not contain a JSON object.", SETTINGS_FILE)
        return settings

    api_key = data.get("api_key")
    settings["api_key"] = api_key.strip() if isinstance(api_key, str) else ""
    settings["api_url"] = _normalize_text(data.get("api_url"), settings["api_url"])
    settings["model_name"] = _normalize_text(data.get("model_name"), settings["model_name"])
    settings["current_mode"] = _normalize_mode(data.get("current_mode"), settings["current_mode"])

    return settings


def save_user_settings(settings: Dict[str, Any]) -> None:
    """
    Persist the settings payload to disk.
    """
    defaults = _default_settings()
    payload: Dict[str, Any] = {
        "api_key": str(settings.get("api_key") or "").strip(),
        "api_url": _normalize_text(settings.get("api_url"), defaults["api_url"]),
        "model_name": _normalize_text(settings.get("model_name"), defaults["model_name"]),
        "current_mode": _normalize_mode(settings.get("current_mode"), defaults["current_mode"]),
    }

    SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_FILE, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=4)

    logger.info("User settings saved to %s", SETTINGS_FILE)


def update_mode(mode: ConversationMode) -> Dict[str, Any]:
    """
    Persist the conversation mode, keeping every other setting.
    """
    settings = load_user_settings()
    settings["current_mode"] = _normalize_mode(mode, settings["current_mode"])
    save_user_settings(settings)
    return settings


def get_current_mode(settings: Optional[Dict[str, Any]] = None) -> ConversationMode:
    if settings is None:
        settings = load_user_settings()
    return ConversationMode(_normalize_mode(settings.get("current_mode")))


def resolve_api_key(settings: Optional[Dict[str, Any]] = None) -> str:
    """
    Return the stored API key, or the environment key when none is stored.
    """
    if settings is None:
        settings = load_user_settings()
    stored = str(settings.get("api_key") or "").strip()
    if stored:
        return stored
    return os.environ.get(API_KEY_ENV_VAR, "").strip()
