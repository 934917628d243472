"""Operations offered to the transport layer.

Expected business outcomes (bad input, missing records) come back as
``Ok``/``Err`` values for the mutating operations; storage failures are not
business outcomes and propagate as exceptions.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterable, Mapping

from scorecard.db.database import get_connection
from scorecard.db.models import HistoryRecord, HoleScore, Tournament, UniversalPlayer
from scorecard.db.repositories import TournamentPlayerRepository
from scorecard.domain.leaderboard import (
    LeaderboardEntry,
    TournamentStats,
    compute_aggregate_stats,
    compute_leaderboard,
    summarize_scores,
)
from scorecard.errors import Err, NotFoundError, Ok, Result, ValidationError
from scorecard.services import events
from scorecard.services.cheat_detector import (
    AlertStore,
    CheatAlert,
    CheatDetector,
    InMemoryAlertStore,
    InMemorySubmissionWindowTracker,
    SubmissionWindowTracker,
)
from scorecard.services.completion import CompletionReconciler, CompletionResult
from scorecard.services.handicap_engine import HandicapEngine
from scorecard.services.lifecycle import TournamentLifecycleManager
from scorecard.services.player_directory import PlayerDirectory
from scorecard.services.roster import RosterService
from scorecard.services.score_ledger import ScoreLedger
from scorecard.settings import Settings, load_settings
from scorecard.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveTournamentStat:
    tournament_id: int
    tournament_name: str
    room_code: str
    player_name: str
    holes_played: int
    total_strokes: int
    total_par: int
    relative_to_par: int
    total_scratches: int
    total_penalties: int


@dataclass(frozen=True)
class PlayerProfile:
    player: UniversalPlayer
    history: list[HistoryRecord]
    live_tournaments: list[LiveTournamentStat]


class ScoringEngine:
    def __init__(
        self,
        connection: sqlite3.Connection | None = None,
        *,
        settings: Settings | None = None,
        db_path: str | Path | None = None,
        event_sink: events.EventSink | None = None,
        alert_store: AlertStore | None = None,
        window_tracker: SubmissionWindowTracker | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings or load_settings()
        self.connection = connection or get_connection(db_path or self.settings.database_path)
        self.events = event_sink or events.LoggingEventSink()
        rapid_window = timedelta(seconds=self.settings.rapid_window_seconds)

        self.detector = CheatDetector(
            alert_store if alert_store is not None else InMemoryAlertStore(self.settings.alert_capacity),
            window_tracker if window_tracker is not None else InMemorySubmissionWindowTracker(window=rapid_window),
            clock=clock,
            rapid_window=rapid_window,
            rapid_threshold=self.settings.rapid_threshold,
        )
        self.ledger = ScoreLedger(self.connection, submission_listener=self.detector)
        self.lifecycle = TournamentLifecycleManager(
            self.connection,
            self.events,
            clock=clock,
            default_max_holes=self.settings.default_max_holes,
        )
        self.roster = RosterService(self.connection, self.events)
        self._entries = TournamentPlayerRepository(self.connection)
        self.directory = PlayerDirectory(self.connection)
        self.handicaps = HandicapEngine(self.connection, self.settings.provisional_threshold, clock=clock)
        self.reconciler = CompletionReconciler(
            self.connection,
            ledger=self.ledger,
            roster=self.roster,
            lifecycle=self.lifecycle,
            handicaps=self.handicaps,
            event_sink=self.events,
            clock=clock,
        )

    def close(self) -> None:
        self.connection.close()

    # Scores

    def upsert_score(
        self,
        player_id: int,
        hole: int,
        par: int,
        strokes: int,
        scratches: int = 0,
        penalties: int = 0,
    ) -> Result[HoleScore]:
        try:
            submission, player, tournament = self.ledger.validate(player_id, hole, par, strokes, scratches, penalties)
        except (ValidationError, NotFoundError) as exc:
            return Err(exc)

        previous = self.ledger.get_score(submission.tournament_player_id, submission.hole)
        try:
            self.detector.inspect(
                room_code=str(tournament["room_code"]),
                tournament_player_id=submission.tournament_player_id,
                player_name=str(player["player_name"]),
                hole=submission.hole,
                par=submission.par,
                strokes=submission.strokes,
                scratches=submission.scratches,
                previous=previous,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Cheat inspection failed for player %s hole %s", player_id, hole)

        return Ok(
            self.ledger.upsert(
                submission.tournament_player_id,
                submission.hole,
                submission.par,
                submission.strokes,
                submission.scratches,
                submission.penalties,
            )
        )

    def upsert_scores_batch(self, submissions: Iterable[Mapping[str, Any]]) -> list[Result[HoleScore]]:
        results: list[Result[HoleScore]] = []
        for item in submissions:
            results.append(
                self.upsert_score(
                    item.get("tournament_player_id"),
                    item.get("hole"),
                    item.get("par"),
                    item.get("strokes"),
                    item.get("scratches") or 0,
                    item.get("penalties") or 0,
                )
            )
        return results

    def get_box_score(self, player_id: int) -> list[HoleScore]:
        self.roster.get(player_id)
        return self.ledger.get_scores(player_id)

    # Standings

    def get_leaderboard(self, tournament_id: int) -> list[LeaderboardEntry]:
        self.lifecycle.get(tournament_id)
        return compute_leaderboard(
            self.roster.list_players(tournament_id),
            self.ledger.scores_for_tournament(tournament_id),
        )

    def get_aggregate_stats(self, tournament_id: int) -> TournamentStats:
        self.lifecycle.get(tournament_id)
        return compute_aggregate_stats(
            self.roster.list_players(tournament_id),
            self.ledger.scores_for_tournament(tournament_id),
        )

    def list_tournaments_with_stats(self) -> list[tuple[Tournament, TournamentStats]]:
        return [(tournament, self.get_aggregate_stats(tournament.id)) for tournament in self.lifecycle.list()]

    # Lifecycle

    def start_tournament(self, tournament_id: int) -> Result[Tournament]:
        try:
            return Ok(self.lifecycle.start(tournament_id))
        except (ValidationError, NotFoundError) as exc:
            return Err(exc)

    def create_tournament(
        self,
        name: str,
        director_credential: str,
        *,
        is_handicapped: bool = False,
        max_holes: int | None = None,
    ) -> Tournament:
        return self.lifecycle.create(
            name, director_credential, is_handicapped=is_handicapped, max_holes=max_holes
        )

    def complete_tournament(self, tournament_id: int) -> CompletionResult:
        return self.reconciler.complete(tournament_id)

    def archive_tournament(self, tournament_id: int) -> Tournament:
        return self.lifecycle.archive(tournament_id)

    def reopen_tournament(self, tournament_id: int) -> Tournament:
        return self.lifecycle.reopen(tournament_id)

    def delete_tournament(self, tournament_id: int) -> None:
        self.lifecycle.delete(tournament_id)

    # Identities and handicaps

    def recalculate_handicap(self, universal_player_id: int) -> UniversalPlayer:
        return self.handicaps.recalculate(universal_player_id)

    def merge_identities(self, source_id: int, target_id: int) -> Result[UniversalPlayer]:
        try:
            return Ok(self.handicaps.merge(source_id, target_id))
        except (ValidationError, NotFoundError) as exc:
            return Err(exc)

    def set_handicap_override(self, universal_player_id: int, handicap: float) -> UniversalPlayer:
        return self.handicaps.set_override(universal_player_id, handicap)

    def add_manual_history(self, universal_player_id: int, data: Mapping[str, Any]) -> Result[HistoryRecord]:
        try:
            return Ok(self.handicaps.add_manual_history(universal_player_id, data))
        except (ValidationError, NotFoundError) as exc:
            return Err(exc)

    def delete_history(self, history_id: int) -> UniversalPlayer:
        return self.handicaps.delete_history(history_id)

    def live_tournament_stats(self, universal_player_id: int) -> list[LiveTournamentStat]:
        stats = []
        for row in self._entries.list_active_for_universal(universal_player_id):
            totals = summarize_scores(self.ledger.get_scores(int(row["id"])))
            if totals.holes_completed == 0:
                continue
            stats.append(
                LiveTournamentStat(
                    tournament_id=int(row["tournament_id"]),
                    tournament_name=str(row["tournament_name"]),
                    room_code=str(row["room_code"]),
                    player_name=str(row["player_name"]),
                    holes_played=totals.holes_completed,
                    total_strokes=totals.total_strokes,
                    total_par=totals.total_par,
                    relative_to_par=totals.relative_to_par,
                    total_scratches=totals.total_scratches,
                    total_penalties=totals.total_penalties,
                )
            )
        return stats

    def get_player_profile(self, universal_player_id: int) -> PlayerProfile:
        return PlayerProfile(
            player=self.directory.get(universal_player_id),
            history=self.handicaps.get_history(universal_player_id),
            live_tournaments=self.live_tournament_stats(universal_player_id),
        )

    # Alerts

    def list_alerts(self, room_code: str | None = None) -> list[CheatAlert]:
        return self.detector.list_alerts(room_code)

    def dismiss_alert(self, alert_id: int) -> None:
        self.detector.dismiss(alert_id)
