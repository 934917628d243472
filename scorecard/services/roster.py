from __future__ import annotations

import logging
import sqlite3
from typing import Any

from scorecard.db.models import TournamentPlayer
from scorecard.db.repositories import TournamentPlayerRepository, TournamentRepository, UniversalPlayerRepository
from scorecard.errors import NotFoundError, ValidationError
from scorecard.services import events

logger = logging.getLogger(__name__)


class RosterService:
    """Tournament entrants and their device claims.

    A device claim is exclusive only by convention: the latest assignment
    wins and nothing locks a player to a device.
    """

    def __init__(self, connection: sqlite3.Connection, event_sink: events.EventSink | None = None) -> None:
        self._connection = connection
        self._players = TournamentPlayerRepository(connection)
        self._tournaments = TournamentRepository(connection)
        self._identities = UniversalPlayerRepository(connection)
        self._events = event_sink or events.LoggingEventSink()

    def _require_tournament(self, tournament_id: int) -> dict[str, Any]:
        row = self._tournaments.get(tournament_id)
        if row is None:
            raise NotFoundError(f"Tournament {tournament_id} not found.")
        return row

    def _require_player(self, player_id: int) -> dict[str, Any]:
        row = self._players.get(player_id)
        if row is None:
            raise NotFoundError(f"Player {player_id} not found.")
        return row

    def get(self, player_id: int) -> TournamentPlayer:
        return TournamentPlayer.from_row(self._require_player(player_id))

    def list_players(self, tournament_id: int) -> list[TournamentPlayer]:
        return [TournamentPlayer.from_row(row) for row in self._players.list_for_tournament(tournament_id)]

    def players_by_device(self, tournament_id: int, device_id: str) -> list[TournamentPlayer]:
        return [TournamentPlayer.from_row(row) for row in self._players.list_by_device(tournament_id, device_id)]

    def add_player(
        self,
        tournament_id: int,
        player_name: str,
        *,
        group_name: str | None = None,
        device_id: str | None = None,
        legacy_code: str | None = None,
        universal_player_id: int | None = None,
    ) -> TournamentPlayer:
        self._require_tournament(tournament_id)
        player_name = player_name.strip()
        if not player_name:
            raise ValidationError("Player name is required.")
        if universal_player_id is not None and self._identities.get(universal_player_id) is None:
            raise NotFoundError(f"Universal player {universal_player_id} not found.")
        if universal_player_id is None and legacy_code:
            identity = self._identities.get_by_code(legacy_code)
            if identity is not None:
                universal_player_id = int(identity["id"])
        player_id = self._players.create(
            {
                "tournament_id": tournament_id,
                "player_name": player_name,
                "device_id": device_id,
                "group_name": group_name,
                "legacy_code": legacy_code,
                "universal_player_id": universal_player_id,
            }
        )
        return self.get(player_id)

    def remove_player(self, player_id: int) -> None:
        self._require_player(player_id)
        with self._connection:
            self._connection.execute("DELETE FROM hole_scores WHERE tournament_player_id = ?", (player_id,))
            self._connection.execute("DELETE FROM tournament_players WHERE id = ?", (player_id,))

    def mark_dnf(self, player_id: int) -> TournamentPlayer:
        """Permanently withdraw a player; the device claim is released too."""
        row = self._require_player(player_id)
        self._players.update(player_id, {**row, "is_dnf": True, "device_id": None})
        logger.info("Player %s (%s) marked DNF", player_id, row["player_name"])
        return self.get(player_id)

    def link_universal(self, player_id: int, universal_player_id: int) -> TournamentPlayer:
        self._require_player(player_id)
        if self._identities.get(universal_player_id) is None:
            raise NotFoundError(f"Universal player {universal_player_id} not found.")
        self._players.link_universal(player_id, universal_player_id)
        return self.get(player_id)

    def assign_device(self, player_id: int, device_id: str) -> TournamentPlayer:
        if not device_id:
            raise ValidationError("deviceId is required")
        row = self._require_player(player_id)
        tournament_id = int(row["tournament_id"])
        before = self._players.list_for_tournament(tournament_id)
        all_assigned_before = bool(before) and all(player["device_id"] for player in before)
        was_unassigned = not row["device_id"]

        self._players.update(player_id, {**row, "device_id": device_id})

        if was_unassigned and not all_assigned_before:
            after = self._players.list_for_tournament(tournament_id)
            if after and all(player["device_id"] for player in after):
                tournament = self._require_tournament(tournament_id)
                self._events.emit(
                    events.ALL_PLAYERS_ASSIGNED,
                    {
                        "tournament_id": tournament_id,
                        "room_code": tournament["room_code"],
                        "name": tournament["name"],
                    },
                )
        return self.get(player_id)

    def unassign_device(self, player_id: int) -> TournamentPlayer:
        row = self._require_player(player_id)
        self._players.update(player_id, {**row, "device_id": None})
        return self.get(player_id)

    def leave(self, tournament_id: int, device_id: str) -> list[TournamentPlayer]:
        """Release every player claimed by ``device_id``; returns the released players."""
        if not device_id:
            raise ValidationError("deviceId is required")
        self._require_tournament(tournament_id)
        released = []
        for row in self._players.list_by_device(tournament_id, device_id):
            self._players.update(int(row["id"]), {**row, "device_id": None})
            released.append(self.get(int(row["id"])))
        return released
