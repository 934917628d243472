from __future__ import annotations

import logging
import sqlite3
from typing import Any, Iterable, Protocol

from scorecard.db.models import HoleScore
from scorecard.db.repositories import HoleScoreRepository, TournamentPlayerRepository, TournamentRepository
from scorecard.domain.submissions import ScoreSubmission, parse_model
from scorecard.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class SubmissionListener(Protocol):
    def record_submission(
        self,
        *,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        scratches: int,
    ) -> Any: ...


def collapse_legacy_duplicates(rows: Iterable[dict[str, Any]]) -> list[HoleScore]:
    """Legacy compatibility: keep the most recently written row per hole.

    The hole_scores table enforces one row per (player, hole); stores
    migrated from older schemas may still hold several. Rows must arrive in
    write order (ascending id).
    """
    latest: dict[int, dict[str, Any]] = {}
    for row in rows:
        latest[int(row["hole"])] = row
    return [HoleScore.from_row(latest[hole]) for hole in sorted(latest)]


class ScoreLedger:
    """Current per-hole scores, one record per (player, hole), last write wins.

    There is no concurrency token: two near-simultaneous writes to the same
    key resolve by arrival order. A director's retroactive edit racing a
    live submission is not detected.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        submission_listener: SubmissionListener | None = None,
    ) -> None:
        self._connection = connection
        self._scores = HoleScoreRepository(connection)
        self._players = TournamentPlayerRepository(connection)
        self._tournaments = TournamentRepository(connection)
        self._listener = submission_listener

    def validate(
        self,
        player_id: int,
        hole: int,
        par: int,
        strokes: int,
        scratches: int = 0,
        penalties: int = 0,
    ) -> tuple[ScoreSubmission, dict[str, Any], dict[str, Any]]:
        """Check a submission and return it with its player and tournament rows."""
        submission = parse_model(
            ScoreSubmission,
            {
                "tournament_player_id": player_id,
                "hole": hole,
                "par": par,
                "strokes": strokes,
                "scratches": scratches,
                "penalties": penalties,
            },
        )
        player = self._players.get(submission.tournament_player_id)
        if player is None:
            raise NotFoundError(f"Player {submission.tournament_player_id} not found.")
        tournament = self._tournaments.get(int(player["tournament_id"]))
        if tournament is None:
            raise NotFoundError(f"Tournament {player['tournament_id']} not found.")
        max_holes = int(tournament["max_holes"])
        if submission.hole > max_holes:
            raise ValidationError(f"Maximum of {max_holes} holes allowed")
        return submission, player, tournament

    def upsert(
        self,
        player_id: int,
        hole: int,
        par: int,
        strokes: int,
        scratches: int = 0,
        penalties: int = 0,
    ) -> HoleScore:
        submission, player, tournament = self.validate(player_id, hole, par, strokes, scratches, penalties)
        row = self._scores.upsert(submission.model_dump())
        score = HoleScore.from_row(row)

        if self._listener is not None:
            try:
                self._listener.record_submission(
                    room_code=str(tournament["room_code"]),
                    tournament_player_id=score.tournament_player_id,
                    player_name=str(player["player_name"]),
                    hole=score.hole,
                    par=score.par,
                    scratches=score.scratches,
                )
            except Exception:  # noqa: BLE001
                logger.exception("Submission tracking failed for player %s hole %s", player_id, hole)
        return score

    def get_score(self, player_id: int, hole: int) -> HoleScore | None:
        row = self._scores.get_for_hole(player_id, hole)
        return HoleScore.from_row(row) if row else None

    def get_scores(self, player_id: int) -> list[HoleScore]:
        return collapse_legacy_duplicates(self._scores.list_for_player(player_id))

    def scores_for_tournament(self, tournament_id: int) -> dict[int, list[HoleScore]]:
        grouped: dict[int, list[dict[str, Any]]] = {}
        for row in self._scores.list_for_tournament(tournament_id):
            grouped.setdefault(int(row["tournament_player_id"]), []).append(row)
        return {player_id: collapse_legacy_duplicates(rows) for player_id, rows in grouped.items()}
