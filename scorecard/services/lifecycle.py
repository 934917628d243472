"""Tournament state machine.

Two flags compose into the effective state: setup (active, not started),
in progress (active, started), archived (inactive, completed_at set).
Reopening an archived tournament keeps ``is_started`` untouched.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
import string
from typing import Any, Callable

from scorecard.db.models import Tournament
from scorecard.db.repositories import TournamentPlayerRepository, TournamentRepository
from scorecard.errors import NotFoundError, ValidationError
from scorecard.services import events
from scorecard.services.audit_log import (
    TOURNAMENT_ARCHIVED,
    TOURNAMENT_DELETED,
    TOURNAMENT_REOPENED,
    TOURNAMENT_STARTED,
    AuditLogService,
)
from scorecard.settings import MAX_HOLES_LIMIT
from scorecard.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

SETUP = "setup"
IN_PROGRESS = "in_progress"
ARCHIVED = "archived"


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def effective_state(tournament: Tournament) -> str:
    if not tournament.is_active:
        return ARCHIVED
    if tournament.is_started:
        return IN_PROGRESS
    return SETUP


class TournamentLifecycleManager:
    def __init__(
        self,
        connection: sqlite3.Connection,
        event_sink: events.EventSink | None = None,
        *,
        clock: Clock = utc_now,
        default_max_holes: int = 18,
        room_code_factory: Callable[[], str] = generate_room_code,
    ) -> None:
        self._connection = connection
        self._tournaments = TournamentRepository(connection)
        self._players = TournamentPlayerRepository(connection)
        self._audit_log = AuditLogService(connection)
        self._events = event_sink or events.LoggingEventSink()
        self._clock = clock
        self._default_max_holes = default_max_holes
        self._room_code_factory = room_code_factory

    def _now(self) -> str:
        return self._clock().isoformat()

    def _require(self, tournament_id: int) -> dict[str, Any]:
        row = self._tournaments.get(tournament_id)
        if row is None:
            raise NotFoundError(f"Tournament {tournament_id} not found.")
        return row

    def _unused_room_code(self) -> str:
        for _ in range(100):
            code = self._room_code_factory().upper()
            if self._tournaments.get_by_room_code(code) is None:
                return code
        raise RuntimeError("Could not allocate a free room code.")

    def create(
        self,
        name: str,
        director_credential: str,
        *,
        is_handicapped: bool = False,
        max_holes: int | None = None,
    ) -> Tournament:
        name = name.strip()
        if not name:
            raise ValidationError("Tournament name is required.")
        holes = self._default_max_holes if max_holes is None else int(max_holes)
        if not 1 <= holes <= MAX_HOLES_LIMIT:
            raise ValidationError(f"Hole count must be between 1 and {MAX_HOLES_LIMIT}.")
        tournament_id = self._tournaments.create(
            {
                "room_code": self._unused_room_code(),
                "name": name,
                "director_credential": director_credential,
                "is_handicapped": is_handicapped,
                "max_holes": holes,
            }
        )
        return self.get(tournament_id)

    def get(self, tournament_id: int) -> Tournament:
        return Tournament.from_row(self._require(tournament_id))

    def get_by_room_code(self, room_code: str) -> Tournament:
        row = self._tournaments.get_by_room_code(room_code)
        if row is None:
            raise NotFoundError(f"Tournament {room_code.upper()} not found.")
        return Tournament.from_row(row)

    def list(self) -> list[Tournament]:
        return [Tournament.from_row(row) for row in self._tournaments.list()]

    def start(self, tournament_id: int) -> Tournament:
        # Starting again overwrites started_at; the first start time is lost.
        row = self._require(tournament_id)
        if not row["is_active"]:
            raise ValidationError("Cannot start an archived tournament.")
        if not self._players.list_for_tournament(tournament_id):
            raise ValidationError("Add at least one player before starting.")
        self._tournaments.update(tournament_id, {**row, "is_started": True, "started_at": self._now()})
        tournament = self.get(tournament_id)
        self._audit_log.log_event(
            TOURNAMENT_STARTED,
            "Tournament started",
            f"{tournament.name} ({tournament.room_code}) started at {tournament.started_at}.",
            context={"tournament_id": tournament_id},
        )
        self._events.emit(
            events.TOURNAMENT_STARTED,
            {"tournament_id": tournament_id, "room_code": tournament.room_code, "name": tournament.name},
        )
        logger.info("Tournament %s started", tournament.room_code)
        return tournament

    def archive(self, tournament_id: int) -> Tournament:
        row = self._require(tournament_id)
        self._tournaments.update(tournament_id, {**row, "is_active": False, "completed_at": self._now()})
        tournament = self.get(tournament_id)
        self._audit_log.log_event(
            TOURNAMENT_ARCHIVED,
            "Tournament archived",
            f"{tournament.name} ({tournament.room_code}) closed at {tournament.completed_at}.",
            context={"tournament_id": tournament_id},
        )
        logger.info("Tournament %s archived", tournament.room_code)
        return tournament

    def reopen(self, tournament_id: int) -> Tournament:
        row = self._require(tournament_id)
        self._tournaments.update(tournament_id, {**row, "is_active": True, "completed_at": None})
        tournament = self.get(tournament_id)
        self._audit_log.log_event(
            TOURNAMENT_REOPENED,
            "Tournament reopened",
            f"{tournament.name} ({tournament.room_code}) is live again.",
            context={"tournament_id": tournament_id},
        )
        logger.info("Tournament %s reopened", tournament.room_code)
        return tournament

    def delete(self, tournament_id: int) -> None:
        """Irreversibly remove a tournament with its roster and scores."""
        row = self._require(tournament_id)
        with self._connection:
            self._connection.execute(
                """
                DELETE FROM hole_scores
                WHERE tournament_player_id IN (
                    SELECT id FROM tournament_players WHERE tournament_id = ?
                )
                """,
                (tournament_id,),
            )
            self._connection.execute("DELETE FROM tournament_players WHERE tournament_id = ?", (tournament_id,))
            self._connection.execute("DELETE FROM tournaments WHERE id = ?", (tournament_id,))
        self._audit_log.log_event(
            TOURNAMENT_DELETED,
            "Tournament deleted",
            f"{row['name']} ({row['room_code']}) deleted with its players and scores.",
            level="warning",
            context={"tournament_id": tournament_id},
        )
        logger.info("Tournament %s deleted", row["room_code"])
