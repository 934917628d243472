from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from scorecard.db.database import APP_DIR_NAME, get_app_data_dir

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"
MAX_HOLES_LIMIT = 36


@dataclass(frozen=True)
class Settings:
    database_path: str | None = None
    default_max_holes: int = 18
    alert_capacity: int = 500
    rapid_window_seconds: int = 120
    rapid_threshold: int = 3
    provisional_threshold: int = 5


_ENV_KEYS = {
    "database_path": "SCORECARD_DB_PATH",
    "default_max_holes": "SCORECARD_MAX_HOLES",
    "alert_capacity": "SCORECARD_ALERT_CAPACITY",
    "rapid_window_seconds": "SCORECARD_RAPID_WINDOW_SECONDS",
    "rapid_threshold": "SCORECARD_RAPID_THRESHOLD",
    "provisional_threshold": "SCORECARD_PROVISIONAL_THRESHOLD",
}


def _get_app_settings_path() -> Path:
    return get_app_data_dir() / SETTINGS_FILENAME


def _read_settings() -> dict[str, object]:
    path = _get_app_settings_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Ignoring unreadable settings file %s", path)
        return {}
    if isinstance(data, dict):
        return data
    return {}


def _write_settings(data: dict[str, object]) -> None:
    path = _get_app_settings_path()
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _positive_int(key: str, value: object, default: int) -> int:
    try:
        parsed = int(str(value))
    except (TypeError, ValueError):
        logger.warning("Ignoring %s=%r (not an integer)", key, value)
        return default
    if parsed <= 0:
        logger.warning("Ignoring %s=%r (must be positive)", key, value)
        return default
    return parsed


def load_settings() -> Settings:
    """Merge environment variables over the settings file over defaults."""
    defaults = Settings()
    raw: dict[str, object] = dict(_read_settings())
    for key, env_name in _ENV_KEYS.items():
        env_value = os.environ.get(env_name)
        if env_value:
            raw[key] = env_value

    max_holes = _positive_int("default_max_holes", raw.get("default_max_holes", defaults.default_max_holes), defaults.default_max_holes)
    if max_holes > MAX_HOLES_LIMIT:
        logger.warning("Ignoring default_max_holes=%s (limit is %s)", max_holes, MAX_HOLES_LIMIT)
        max_holes = defaults.default_max_holes

    database_path = raw.get("database_path")
    return Settings(
        database_path=str(database_path) if database_path else None,
        default_max_holes=max_holes,
        alert_capacity=_positive_int("alert_capacity", raw.get("alert_capacity", defaults.alert_capacity), defaults.alert_capacity),
        rapid_window_seconds=_positive_int(
            "rapid_window_seconds",
            raw.get("rapid_window_seconds", defaults.rapid_window_seconds),
            defaults.rapid_window_seconds,
        ),
        rapid_threshold=_positive_int("rapid_threshold", raw.get("rapid_threshold", defaults.rapid_threshold), defaults.rapid_threshold),
        provisional_threshold=_positive_int(
            "provisional_threshold",
            raw.get("provisional_threshold", defaults.provisional_threshold),
            defaults.provisional_threshold,
        ),
    )


def save_setting(key: str, value: object) -> None:
    if key not in _ENV_KEYS:
        raise KeyError(f"Unknown setting {key!r} for {APP_DIR_NAME}.")
    settings = _read_settings()
    settings[key] = value
    _write_settings(settings)
