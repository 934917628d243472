from __future__ import annotations

import logging
import sqlite3
from typing import Any, Mapping

from scorecard.db.models import HistoryRecord, UniversalPlayer
from scorecard.db.repositories import HistoryRepository, UniversalPlayerRepository
from scorecard.domain.handicap import PROVISIONAL_THRESHOLD, compute_handicap
from scorecard.domain.submissions import ManualHistoryEntry, parse_model
from scorecard.errors import NotFoundError, StorageError, ValidationError
from scorecard.services.audit_log import (
    HANDICAP_OVERRIDE,
    HISTORY_ADDED,
    HISTORY_DELETED,
    MERGE_PLAYERS,
    AuditLogService,
)
from scorecard.timeutil import Clock, utc_isoformat, utc_now

logger = logging.getLogger(__name__)


class HandicapEngine:
    """Persistent ratings derived from completed-tournament history.

    A handicap is always recomputed from history, with one exception:
    ``set_override`` pins an explicit value and clears the provisional flag.
    That value stays until the next recalculation trigger (a completed
    tournament, a manual history change or a merge) replaces it.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        provisional_threshold: int = PROVISIONAL_THRESHOLD,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._players = UniversalPlayerRepository(connection)
        self._history = HistoryRepository(connection)
        self._audit_log = AuditLogService(connection)
        self._provisional_threshold = provisional_threshold
        self._clock = clock

    def _require_player(self, universal_player_id: int) -> dict[str, Any]:
        player = self._players.get(universal_player_id)
        if player is None:
            raise NotFoundError(f"Universal player {universal_player_id} not found.")
        return player

    def get_history(self, universal_player_id: int, limit: int | None = None) -> list[HistoryRecord]:
        return [HistoryRecord.from_row(row) for row in self._history.list_for_player(universal_player_id, limit)]

    def recalculate(self, universal_player_id: int) -> UniversalPlayer:
        self._require_player(universal_player_id)
        history = self._history.list_for_player(universal_player_id)
        rating = compute_handicap(
            [int(row["relative_to_par"]) for row in history],
            self._provisional_threshold,
        )
        self._players.set_rating(
            universal_player_id,
            handicap=rating.handicap,
            is_provisional=rating.is_provisional,
            completed_tournaments=rating.completed_tournaments,
        )
        logger.info(
            "Recalculated handicap for universal player %s: %s over %s tournaments",
            universal_player_id,
            rating.handicap,
            rating.completed_tournaments,
        )
        return UniversalPlayer.from_row(self._require_player(universal_player_id))

    def set_override(self, universal_player_id: int, handicap: float) -> UniversalPlayer:
        player = self._require_player(universal_player_id)
        self._players.set_rating(
            universal_player_id,
            handicap=float(handicap),
            is_provisional=False,
            completed_tournaments=int(player["completed_tournaments"] or 0),
        )
        self._audit_log.log_event(
            HANDICAP_OVERRIDE,
            "Handicap override",
            f"Set handicap of {player['unique_code']} to {handicap} (was {player['handicap']}).",
            context={"universal_player_id": universal_player_id, "previous": player["handicap"], "handicap": handicap},
        )
        return UniversalPlayer.from_row(self._require_player(universal_player_id))

    def add_manual_history(self, universal_player_id: int, data: Mapping[str, Any]) -> HistoryRecord:
        player = self._require_player(universal_player_id)
        entry = parse_model(ManualHistoryEntry, data)
        history_id = self._history.create(
            {
                "universal_player_id": universal_player_id,
                "tournament_id": None,
                "tournament_name": entry.tournament_name,
                "course_name": entry.course_name,
                "total_strokes": entry.total_strokes,
                "total_par": entry.total_par,
                "holes_played": entry.holes_played,
                "relative_to_par": entry.relative_to_par,
                "total_scratches": entry.total_scratches,
                "total_penalties": entry.total_penalties,
                "completed_at": utc_isoformat(entry.completed_at or self._clock()),
                "is_manual_entry": True,
            }
        )
        self.recalculate(universal_player_id)
        self._audit_log.log_event(
            HISTORY_ADDED,
            "Manual history entry",
            f"Added {entry.tournament_name} ({entry.relative_to_par:+d}) for {player['unique_code']}.",
            context={"universal_player_id": universal_player_id, "history_id": history_id},
        )
        row = self._history.get(history_id)
        if row is None:
            raise StorageError(f"History entry {history_id} was not stored.")
        return HistoryRecord.from_row(row)

    def delete_history(self, history_id: int) -> UniversalPlayer:
        row = self._history.get(history_id)
        if row is None:
            raise NotFoundError(f"History entry {history_id} not found.")
        universal_player_id = int(row["universal_player_id"])
        self._history.delete(history_id)
        self._audit_log.log_event(
            HISTORY_DELETED,
            "History entry removed",
            f"Removed {row['tournament_name']} from universal player #{universal_player_id}.",
            level="warning",
            context={"universal_player_id": universal_player_id, "history_id": history_id},
        )
        return self.recalculate(universal_player_id)

    def merge(self, source_id: int, target_id: int) -> UniversalPlayer:
        """Fold ``source_id`` into ``target_id`` by repointing links and history."""
        if source_id == target_id:
            raise ValidationError("Cannot merge a player into itself.")

        source = self._players.get(source_id)
        target = self._players.get(target_id)
        if source is None:
            raise NotFoundError(f"Source player {source_id} not found.")
        if target is None:
            raise NotFoundError(f"Target player {target_id} not found.")

        with self._connection:
            links = self._connection.execute(
                "UPDATE tournament_players SET universal_player_id = ? WHERE universal_player_id = ?",
                (target_id, source_id),
            ).rowcount
            history = self._connection.execute(
                "UPDATE player_tournament_history SET universal_player_id = ? WHERE universal_player_id = ?",
                (target_id, source_id),
            ).rowcount
            self._connection.execute("DELETE FROM universal_players WHERE id = ?", (source_id,))

        merged = self.recalculate(target_id)
        self._audit_log.log_event(
            MERGE_PLAYERS,
            "Merge universal players",
            f"Merged {source['unique_code']} into {target['unique_code']}. "
            f"Links moved: {links}. History rows moved: {history}.",
            context={
                "source_id": source_id,
                "target_id": target_id,
                "links_moved": links,
                "history_moved": history,
            },
        )
        logger.info("Merged universal player %s into %s", source_id, target_id)
        return merged
