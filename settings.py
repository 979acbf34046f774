"""Settings for Dice Duel.

Reads user preferences from ~/.dicegame_settings.json. The file is only
ever read: matches live for one session, so nothing is written back.
Values that fail validation fall back to their defaults one key at a time.
"""

import json
import logging
from pathlib import Path

from game_engine import DEFAULT_TARGET_SCORE, MIN_TARGET_SCORE

DEFAULTS = {
    "target_score": DEFAULT_TARGET_SCORE,
    "speed": "normal",
    "dark_mode": False,
    "log_level": "WARNING",
}

SPEED_NAMES = ["slow", "normal", "fast"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _default_path():
    """Return the default path for the settings file."""
    return Path.home() / ".dicegame_settings.json"


def _valid(key, value):
    if key == "target_score":
        return (isinstance(value, int) and not isinstance(value, bool)
                and value >= MIN_TARGET_SCORE)
    if key == "speed":
        return value in SPEED_NAMES
    if key == "dark_mode":
        return isinstance(value, bool)
    if key == "log_level":
        return isinstance(value, str) and value.upper() in LOG_LEVELS
    return False


def load_settings(path=None):
    """Load settings from JSON file. Returns DEFAULTS on missing/corrupt.

    Known keys with valid values override DEFAULTS; unknown keys and
    invalid values are dropped.
    """
    path = Path(path) if path is not None else _default_path()
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return dict(DEFAULTS)
    except (json.JSONDecodeError, OSError):
        logging.getLogger(__name__).warning("Ignoring unreadable settings file %s", path)
        return dict(DEFAULTS)

    result = dict(DEFAULTS)
    if not isinstance(data, dict):
        return result
    for key in DEFAULTS:
        if key in data and _valid(key, data[key]):
            result[key] = data[key]
    result["log_level"] = result["log_level"].upper()
    return result
