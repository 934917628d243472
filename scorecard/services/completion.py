from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field

from scorecard.db.models import TournamentPlayer
from scorecard.db.repositories import HistoryRepository, UniversalPlayerRepository
from scorecard.domain.leaderboard import LeaderboardEntry, compute_leaderboard
from scorecard.services import events
from scorecard.services.audit_log import COMPLETE_TOURNAMENT, AuditLogService
from scorecard.services.handicap_engine import HandicapEngine
from scorecard.services.lifecycle import TournamentLifecycleManager
from scorecard.services.roster import RosterService
from scorecard.services.score_ledger import ScoreLedger
from scorecard.timeutil import Clock, utc_isoformat, utc_now

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    saved: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    already_recorded: list[str] = field(default_factory=list)


class CompletionReconciler:
    """Commit a finished tournament's standings into player history.

    Each player's write is guarded by a per-identity check for an existing
    history row tagged with the tournament, so a run that died half way is
    recovered by simply running it again. There is no transaction around
    the whole loop.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        *,
        ledger: ScoreLedger,
        roster: RosterService,
        lifecycle: TournamentLifecycleManager,
        handicaps: HandicapEngine,
        event_sink: events.EventSink | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._ledger = ledger
        self._roster = roster
        self._lifecycle = lifecycle
        self._handicaps = handicaps
        self._history = HistoryRepository(connection)
        self._identities = UniversalPlayerRepository(connection)
        self._audit_log = AuditLogService(connection)
        self._events = event_sink or events.LoggingEventSink()
        self._clock = clock

    def _resolve_identity(self, player: TournamentPlayer | None) -> int | None:
        if player is None:
            return None
        if player.universal_player_id is not None:
            return player.universal_player_id
        if not player.legacy_code:
            return None
        identity = self._identities.get_by_code(player.legacy_code)
        if identity is None:
            logger.info("    Could not resolve code %s to any universal player", player.legacy_code)
            return None
        universal_player_id = int(identity["id"])
        self._roster.link_universal(player.id, universal_player_id)
        logger.info("    Resolved code %s -> universal player %s", player.legacy_code, universal_player_id)
        return universal_player_id

    def _record(self, tournament_id: int, tournament_name: str, universal_player_id: int, entry: LeaderboardEntry) -> None:
        self._history.create(
            {
                "universal_player_id": universal_player_id,
                "tournament_id": tournament_id,
                "tournament_name": tournament_name,
                "total_strokes": entry.total_strokes,
                "total_par": entry.total_par,
                "holes_played": entry.holes_completed,
                "relative_to_par": entry.relative_to_par,
                "total_scratches": entry.total_scratches,
                "total_penalties": entry.total_penalties,
                "completed_at": utc_isoformat(self._clock()),
                "is_manual_entry": False,
            }
        )
        self._handicaps.recalculate(universal_player_id)

    def complete(self, tournament_id: int) -> CompletionResult:
        tournament = self._lifecycle.get(tournament_id)
        players = {player.id: player for player in self._roster.list_players(tournament_id)}
        leaderboard = compute_leaderboard(list(players.values()), self._ledger.scores_for_tournament(tournament_id))
        logger.info(
            "Completing tournament %s (%s): %s players, %s leaderboard entries",
            tournament.name,
            tournament.room_code,
            len(players),
            len(leaderboard),
        )

        result = CompletionResult()
        for entry in leaderboard:
            universal_player_id = self._resolve_identity(players.get(entry.player_id))

            if universal_player_id is None or entry.holes_completed == 0:
                reason = "no universal ID" if universal_player_id is None else "no scores"
                result.skipped.append(f"{entry.player_name} ({reason})")
                logger.info("  %s SKIPPED: %s", entry.player_name, reason)
                continue

            if self._history.exists_for_tournament(universal_player_id, tournament_id):
                result.already_recorded.append(entry.player_name)
                logger.info("  %s ALREADY RECORDED", entry.player_name)
                continue

            self._record(tournament_id, tournament.name, universal_player_id, entry)
            result.saved.append(entry.player_name)
            logger.info("  %s SAVED to history", entry.player_name)

        if tournament.is_active:
            tournament = self._lifecycle.archive(tournament_id)
            self._events.emit(
                events.TOURNAMENT_COMPLETED,
                {"tournament_id": tournament_id, "room_code": tournament.room_code, "name": tournament.name},
            )

        self._audit_log.log_event(
            COMPLETE_TOURNAMENT,
            "Tournament completed",
            f"{tournament.name}: saved={len(result.saved)} skipped={len(result.skipped)} "
            f"already_recorded={len(result.already_recorded)}",
            context={
                "tournament_id": tournament_id,
                "saved": result.saved,
                "skipped": result.skipped,
                "already_recorded": result.already_recorded,
            },
        )
        logger.info(
            "Tournament complete: saved=%s skipped=%s already_recorded=%s",
            len(result.saved),
            len(result.skipped),
            len(result.already_recorded),
        )
        return result
