from __future__ import annotations

import sqlite3
from typing import Any

from scorecard.db.models import UniversalPlayer
from scorecard.db.repositories import UniversalPlayerRepository
from scorecard.errors import NotFoundError, ValidationError

CONTACT_FIELDS = ("name", "email", "phone_number", "contact_info")


class PlayerDirectory:
    """Create, find and maintain persistent player identities."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._players = UniversalPlayerRepository(connection)

    def create(self, data: dict[str, Any]) -> UniversalPlayer:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("Player name is required.")
        unique_code = data.get("unique_code")
        if unique_code and self._players.get_by_code(str(unique_code)):
            raise ValidationError(f"Code {str(unique_code).upper()} is already taken.")
        player_id = self._players.create({**data, "name": name})
        return self.get(player_id)

    def get(self, universal_player_id: int) -> UniversalPlayer:
        row = self._players.get(universal_player_id)
        if row is None:
            raise NotFoundError(f"Universal player {universal_player_id} not found.")
        return UniversalPlayer.from_row(row)

    def find_by_code(self, unique_code: str) -> UniversalPlayer | None:
        row = self._players.get_by_code(unique_code)
        return UniversalPlayer.from_row(row) if row else None

    def search(self, term: str) -> list[UniversalPlayer]:
        return [UniversalPlayer.from_row(row) for row in self._players.search(term.strip())]

    def list(self) -> list[UniversalPlayer]:
        return [UniversalPlayer.from_row(row) for row in self._players.list()]

    def update_contact(self, universal_player_id: int, changes: dict[str, Any]) -> UniversalPlayer:
        row = self._players.get(universal_player_id)
        if row is None:
            raise NotFoundError(f"Universal player {universal_player_id} not found.")
        unknown = set(changes) - set(CONTACT_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        patch = {field: changes.get(field, row.get(field)) for field in CONTACT_FIELDS}
        if not str(patch["name"] or "").strip():
            raise ValidationError("Player name is required.")
        self._players.update(universal_player_id, patch)
        return self.get(universal_player_id)

    def set_pin_hash(self, universal_player_id: int, pin_hash: str | None) -> None:
        self.get(universal_player_id)
        self._players.set_pin_hash(universal_player_id, pin_hash)

    def delete(self, universal_player_id: int) -> None:
        """Remove an identity, unlinking its entries and dropping its history."""
        self.get(universal_player_id)
        with self._connection:
            self._connection.execute(
                "UPDATE tournament_players SET universal_player_id = NULL WHERE universal_player_id = ?",
                (universal_player_id,),
            )
            self._connection.execute(
                "DELETE FROM player_tournament_history WHERE universal_player_id = ?",
                (universal_player_id,),
            )
            self._connection.execute("DELETE FROM universal_players WHERE id = ?", (universal_player_id,))
