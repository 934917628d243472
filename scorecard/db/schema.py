"""Database schema definitions."""

from __future__ import annotations

import sqlite3

TOURNAMENT_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS tournaments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    room_code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    director_credential TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    is_started INTEGER NOT NULL DEFAULT 0,
    is_handicapped INTEGER NOT NULL DEFAULT 0,
    max_holes INTEGER NOT NULL DEFAULT 18,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    started_at TEXT,
    completed_at TEXT,
    CHECK (max_holes BETWEEN 1 AND 36)
);
"""

UNIVERSAL_PLAYER_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS universal_players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    unique_code TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    email TEXT,
    phone_number TEXT,
    contact_info TEXT,
    pin_hash TEXT,
    handicap REAL,
    is_provisional INTEGER NOT NULL DEFAULT 1,
    completed_tournaments INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (completed_tournaments >= 0)
);
"""

TOURNAMENT_PLAYER_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS tournament_players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_id INTEGER NOT NULL,
    player_name TEXT NOT NULL,
    device_id TEXT,
    group_name TEXT,
    legacy_code TEXT,
    universal_player_id INTEGER,
    is_dnf INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (tournament_id) REFERENCES tournaments(id) ON DELETE CASCADE,
    FOREIGN KEY (universal_player_id) REFERENCES universal_players(id) ON DELETE SET NULL
);
"""

HOLE_SCORE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS hole_scores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_player_id INTEGER NOT NULL,
    hole INTEGER NOT NULL,
    par INTEGER NOT NULL,
    strokes INTEGER NOT NULL,
    scratches INTEGER NOT NULL DEFAULT 0,
    penalties INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (tournament_player_id, hole),
    CHECK (hole >= 1),
    CHECK (par >= 0 AND strokes >= 0 AND scratches >= 0 AND penalties >= 0),
    FOREIGN KEY (tournament_player_id) REFERENCES tournament_players(id) ON DELETE CASCADE
);
"""

HISTORY_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS player_tournament_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    universal_player_id INTEGER NOT NULL,
    tournament_id INTEGER,
    tournament_name TEXT NOT NULL,
    course_name TEXT,
    total_strokes INTEGER NOT NULL,
    total_par INTEGER NOT NULL,
    holes_played INTEGER NOT NULL,
    relative_to_par INTEGER NOT NULL,
    total_scratches INTEGER NOT NULL DEFAULT 0,
    total_penalties INTEGER NOT NULL DEFAULT 0,
    completed_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    is_manual_entry INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (universal_player_id) REFERENCES universal_players(id) ON DELETE CASCADE
);
"""

AUDIT_LOG_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    title TEXT NOT NULL,
    details TEXT,
    level TEXT NOT NULL DEFAULT 'info',
    context_json TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_tournament_players_tournament ON tournament_players (tournament_id);",
    "CREATE INDEX IF NOT EXISTS idx_tournament_players_universal ON tournament_players (universal_player_id);",
    "CREATE INDEX IF NOT EXISTS idx_hole_scores_player ON hole_scores (tournament_player_id);",
    "CREATE INDEX IF NOT EXISTS idx_history_universal ON player_tournament_history (universal_player_id);",
    "CREATE INDEX IF NOT EXISTS idx_audit_log_event_type ON audit_log (event_type);",
]


SCHEMA_SQL = [
    TOURNAMENT_TABLE_SQL,
    UNIVERSAL_PLAYER_TABLE_SQL,
    TOURNAMENT_PLAYER_TABLE_SQL,
    HOLE_SCORE_TABLE_SQL,
    HISTORY_TABLE_SQL,
    AUDIT_LOG_TABLE_SQL,
    *INDEXES_SQL,
]


def initialize_schema(connection: sqlite3.Connection) -> None:
    """Initialize database schema if needed."""
    with connection:
        for statement in SCHEMA_SQL:
            connection.execute(statement)
