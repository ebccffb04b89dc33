"""Persistent user preferences for github-secrets.

Stored as JSON in ~/.config/github-secrets/preferences.json. Known keys:
- config_path: absolute path of the config file to use
- last_selection: list of "owner/name" chosen in the previous run
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "github-secrets"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

CONFIG_PATH_KEY = "config_path"
LAST_SELECTION_KEY = "last_selection"


def _load_preferences() -> Dict[str, Any]:
    """Read preferences; a missing or corrupt file reads as empty."""
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        data = json.loads(PREFERENCES_FILE.read_text())
    except json.JSONDecodeError as e:
        logger.error(f"Ignoring corrupt preferences file {PREFERENCES_FILE}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _save_preferences(preferences: Dict[str, Any]) -> None:
    """Write preferences via a temp file so a crash never leaves half a file."""
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(PREFERENCES_DIR), prefix=".preferences-", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(preferences, f, indent=2)
        os.replace(tmp_name, PREFERENCES_FILE)
    except OSError:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}")
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def get_preference(key: str) -> Optional[Any]:
    return _load_preferences().get(key)


def set_preference(key: str, value: Any) -> None:
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' updated")


def clear_preference(key: str) -> None:
    """Remove a preference. Clearing an unset key is a no-op."""
    preferences = _load_preferences()
    if preferences.pop(key, None) is None:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()


def remember_selection(paths: List[str]) -> None:
    """Store the repositories chosen this run as "owner/name" strings."""
    set_preference(LAST_SELECTION_KEY, list(paths))


def last_selection() -> List[str]:
    value = get_preference(LAST_SELECTION_KEY)
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []
