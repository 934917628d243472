"""SQLite repositories for core entities."""

from __future__ import annotations

import sqlite3
from typing import Any

from scorecard.errors import StorageError

UNIQUE_CODE_PREFIX = "PC"
UNIQUE_CODE_FLOOR = 7000
SEARCH_LIMIT = 20


def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return dict(row)


def _flag(value: Any) -> int:
    return 1 if value else 0


class TournamentRepository:
    """Repository for tournament data access."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, data: dict[str, Any]) -> int:
        cursor = self._connection.execute(
            """
            INSERT INTO tournaments (
                room_code,
                name,
                director_credential,
                is_handicapped,
                max_holes
            )
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                data.get("room_code"),
                data.get("name"),
                data.get("director_credential"),
                _flag(data.get("is_handicapped")),
                data.get("max_holes") or 18,
            ),
        )
        self._connection.commit()
        return int(cursor.lastrowid)

    def get(self, tournament_id: int) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM tournaments WHERE id = ?", (tournament_id,)
        ).fetchone()
        return _row_to_dict(row)

    def get_by_room_code(self, room_code: str) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM tournaments WHERE room_code = ?", (room_code.upper(),)
        ).fetchone()
        return _row_to_dict(row)

    def update(self, tournament_id: int, data: dict[str, Any]) -> None:
        self._connection.execute(
            """
            UPDATE tournaments
            SET name = ?,
                is_active = ?,
                is_started = ?,
                is_handicapped = ?,
                max_holes = ?,
                started_at = ?,
                completed_at = ?
            WHERE id = ?
            """,
            (
                data.get("name"),
                _flag(data.get("is_active")),
                _flag(data.get("is_started")),
                _flag(data.get("is_handicapped")),
                data.get("max_holes") or 18,
                data.get("started_at"),
                data.get("completed_at"),
                tournament_id,
            ),
        )
        self._connection.commit()

    def list(self) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            "SELECT * FROM tournaments ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [dict(row) for row in rows]


class TournamentPlayerRepository:
    """Repository for the per-tournament roster."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, data: dict[str, Any]) -> int:
        cursor = self._connection.execute(
            """
            INSERT INTO tournament_players (
                tournament_id,
                player_name,
                device_id,
                group_name,
                legacy_code,
                universal_player_id
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                data.get("tournament_id"),
                data.get("player_name"),
                data.get("device_id"),
                data.get("group_name"),
                data.get("legacy_code"),
                data.get("universal_player_id"),
            ),
        )
        self._connection.commit()
        return int(cursor.lastrowid)

    def get(self, player_id: int) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM tournament_players WHERE id = ?", (player_id,)
        ).fetchone()
        return _row_to_dict(row)

    def update(self, player_id: int, data: dict[str, Any]) -> None:
        self._connection.execute(
            """
            UPDATE tournament_players
            SET player_name = ?,
                device_id = ?,
                group_name = ?,
                legacy_code = ?,
                universal_player_id = ?,
                is_dnf = ?
            WHERE id = ?
            """,
            (
                data.get("player_name"),
                data.get("device_id"),
                data.get("group_name"),
                data.get("legacy_code"),
                data.get("universal_player_id"),
                _flag(data.get("is_dnf")),
                player_id,
            ),
        )
        self._connection.commit()

    def link_universal(self, player_id: int, universal_player_id: int) -> None:
        self._connection.execute(
            "UPDATE tournament_players SET universal_player_id = ? WHERE id = ?",
            (universal_player_id, player_id),
        )
        self._connection.commit()

    def list_for_tournament(self, tournament_id: int) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            "SELECT * FROM tournament_players WHERE tournament_id = ? ORDER BY id",
            (tournament_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_by_device(self, tournament_id: int, device_id: str) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            """
            SELECT * FROM tournament_players
            WHERE tournament_id = ? AND device_id = ?
            ORDER BY id
            """,
            (tournament_id, device_id),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_active_for_universal(self, universal_player_id: int) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            """
            SELECT tournament_players.*,
                   tournaments.name AS tournament_name,
                   tournaments.room_code
            FROM tournament_players
            JOIN tournaments ON tournaments.id = tournament_players.tournament_id
            WHERE tournament_players.universal_player_id = ?
              AND tournaments.is_active = 1
            ORDER BY tournaments.created_at DESC, tournaments.id DESC
            """,
            (universal_player_id,),
        ).fetchall()
        return [dict(row) for row in rows]


class HoleScoreRepository:
    """Repository for per-hole scores keyed by (tournament_player_id, hole)."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def upsert(self, data: dict[str, Any]) -> dict[str, Any]:
        self._connection.execute(
            """
            INSERT INTO hole_scores (
                tournament_player_id,
                hole,
                par,
                strokes,
                scratches,
                penalties
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (tournament_player_id, hole) DO UPDATE
                SET par = excluded.par,
                    strokes = excluded.strokes,
                    scratches = excluded.scratches,
                    penalties = excluded.penalties,
                    updated_at = CURRENT_TIMESTAMP
            """,
            (
                data.get("tournament_player_id"),
                data.get("hole"),
                data.get("par"),
                data.get("strokes"),
                data.get("scratches"),
                data.get("penalties"),
            ),
        )
        self._connection.commit()
        stored = self.get_for_hole(int(data["tournament_player_id"]), int(data["hole"]))
        if stored is None:
            raise StorageError(f"Score for hole {data['hole']} was not stored.")
        return stored

    def get_for_hole(self, tournament_player_id: int, hole: int) -> dict[str, Any] | None:
        row = self._connection.execute(
            """
            SELECT * FROM hole_scores
            WHERE tournament_player_id = ? AND hole = ?
            ORDER BY id DESC
            LIMIT 1
            """,
            (tournament_player_id, hole),
        ).fetchone()
        return _row_to_dict(row)

    def list_for_player(self, tournament_player_id: int) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            "SELECT * FROM hole_scores WHERE tournament_player_id = ? ORDER BY id",
            (tournament_player_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_for_tournament(self, tournament_id: int) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            """
            SELECT hole_scores.*
            FROM hole_scores
            JOIN tournament_players ON tournament_players.id = hole_scores.tournament_player_id
            WHERE tournament_players.tournament_id = ?
            ORDER BY hole_scores.id
            """,
            (tournament_id,),
        ).fetchall()
        return [dict(row) for row in rows]


class UniversalPlayerRepository:
    """Repository for persistent cross-tournament identities."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, data: dict[str, Any]) -> int:
        cursor = self._connection.execute(
            """
            INSERT INTO universal_players (
                unique_code,
                name,
                email,
                phone_number,
                contact_info
            )
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                (data.get("unique_code") or self.next_unique_code()).upper(),
                data.get("name"),
                data.get("email"),
                data.get("phone_number"),
                data.get("contact_info"),
            ),
        )
        self._connection.commit()
        return int(cursor.lastrowid)

    def get(self, universal_player_id: int) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM universal_players WHERE id = ?", (universal_player_id,)
        ).fetchone()
        return _row_to_dict(row)

    def get_by_code(self, unique_code: str) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM universal_players WHERE unique_code = ?",
            (unique_code.strip().upper(),),
        ).fetchone()
        return _row_to_dict(row)

    def update(self, universal_player_id: int, data: dict[str, Any]) -> None:
        self._connection.execute(
            """
            UPDATE universal_players
            SET name = ?,
                email = ?,
                phone_number = ?,
                contact_info = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (
                data.get("name"),
                data.get("email"),
                data.get("phone_number"),
                data.get("contact_info"),
                universal_player_id,
            ),
        )
        self._connection.commit()

    def set_rating(
        self,
        universal_player_id: int,
        *,
        handicap: float | None,
        is_provisional: bool,
        completed_tournaments: int,
    ) -> None:
        self._connection.execute(
            """
            UPDATE universal_players
            SET handicap = ?,
                is_provisional = ?,
                completed_tournaments = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (handicap, _flag(is_provisional), completed_tournaments, universal_player_id),
        )
        self._connection.commit()

    def set_pin_hash(self, universal_player_id: int, pin_hash: str | None) -> None:
        self._connection.execute(
            """
            UPDATE universal_players
            SET pin_hash = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (pin_hash, universal_player_id),
        )
        self._connection.commit()

    def list(self) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            "SELECT * FROM universal_players ORDER BY name, id"
        ).fetchall()
        return [dict(row) for row in rows]

    def search(self, term: str) -> list[dict[str, Any]]:
        like_term = f"%{term}%"
        rows = self._connection.execute(
            """
            SELECT * FROM universal_players
            WHERE name LIKE ?
               OR email LIKE ?
               OR unique_code LIKE ?
            ORDER BY name, id
            LIMIT ?
            """,
            (like_term, like_term, like_term, SEARCH_LIMIT),
        ).fetchall()
        return [dict(row) for row in rows]

    def next_unique_code(self) -> str:
        row = self._connection.execute(
            """
            SELECT MAX(CAST(SUBSTR(unique_code, 3) AS INTEGER))
            FROM universal_players
            WHERE unique_code LIKE ?
            """,
            (f"{UNIQUE_CODE_PREFIX}%",),
        ).fetchone()
        highest = row[0] if row and row[0] is not None else UNIQUE_CODE_FLOOR
        return f"{UNIQUE_CODE_PREFIX}{max(int(highest), UNIQUE_CODE_FLOOR) + 1}"


class HistoryRepository:
    """Repository for completed-tournament history rows."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, data: dict[str, Any]) -> int:
        columns = [
            "universal_player_id",
            "tournament_id",
            "tournament_name",
            "course_name",
            "total_strokes",
            "total_par",
            "holes_played",
            "relative_to_par",
            "total_scratches",
            "total_penalties",
            "is_manual_entry",
        ]
        values: list[Any] = [data.get(column) for column in columns]
        values[-1] = _flag(data.get("is_manual_entry"))
        if data.get("completed_at"):
            columns.append("completed_at")
            values.append(data["completed_at"])
        placeholders = ", ".join("?" for _ in columns)
        cursor = self._connection.execute(
            f"INSERT INTO player_tournament_history ({', '.join(columns)}) VALUES ({placeholders})",
            values,
        )
        self._connection.commit()
        return int(cursor.lastrowid)

    def get(self, history_id: int) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM player_tournament_history WHERE id = ?", (history_id,)
        ).fetchone()
        return _row_to_dict(row)

    def delete(self, history_id: int) -> None:
        self._connection.execute(
            "DELETE FROM player_tournament_history WHERE id = ?", (history_id,)
        )
        self._connection.commit()

    def list_for_player(self, universal_player_id: int, limit: int | None = None) -> list[dict[str, Any]]:
        query = """
            SELECT * FROM player_tournament_history
            WHERE universal_player_id = ?
            ORDER BY completed_at DESC, id DESC
        """
        params: tuple = (universal_player_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (universal_player_id, limit)
        rows = self._connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def exists_for_tournament(self, universal_player_id: int, tournament_id: int) -> bool:
        row = self._connection.execute(
            """
            SELECT 1 FROM player_tournament_history
            WHERE universal_player_id = ? AND tournament_id = ?
            LIMIT 1
            """,
            (universal_player_id, tournament_id),
        ).fetchone()
        return row is not None
