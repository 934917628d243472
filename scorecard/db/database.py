"""SQLite database helpers."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from scorecard.errors import StorageError

from .schema import initialize_schema

APP_DIR_NAME = "Scorecard"
DB_FILENAME = "scorecard.db"


def get_app_data_dir() -> Path:
    """Return the per-user application data directory, creating it if needed."""
    if os.name == "nt":
        base_dir = os.environ.get("APPDATA") or os.environ.get("LOCALAPPDATA")
        if base_dir:
            data_dir = Path(base_dir)
        else:
            data_dir = Path.home() / "AppData" / "Roaming"
    else:
        data_dir = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    app_dir = data_dir / APP_DIR_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_default_database_path() -> Path:
    """Return the default database path.

    ``SCORECARD_DB_PATH`` wins over the per-user data directory.
    """
    env_path = os.environ.get("SCORECARD_DB_PATH")
    if env_path:
        return Path(env_path)
    return get_app_data_dir() / DB_FILENAME


def _configure_connection(connection: sqlite3.Connection) -> None:
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Create a SQLite connection and ensure schema exists."""
    if db_path is None:
        db_path = get_default_database_path()

    try:
        connection = sqlite3.connect(str(db_path))
        _configure_connection(connection)
        initialize_schema(connection)
    except sqlite3.Error as exc:
        raise StorageError(f"Cannot open score database at {db_path}: {exc}") from exc
    return connection

