from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any

from scorecard.db.repositories import (
    HoleScoreRepository,
    TournamentPlayerRepository,
    TournamentRepository,
    UniversalPlayerRepository,
)


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class ManualClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def seed_tournament(
    connection: sqlite3.Connection,
    *,
    name: str = "Spring Open",
    room_code: str = "ABC123",
    max_holes: int = 18,
) -> int:
    return TournamentRepository(connection).create(
        {
            "room_code": room_code,
            "name": name,
            "director_credential": "secret",
            "is_handicapped": False,
            "max_holes": max_holes,
        }
    )


def seed_player(
    connection: sqlite3.Connection,
    tournament_id: int,
    player_name: str,
    *,
    universal_player_id: int | None = None,
    legacy_code: str | None = None,
    device_id: str | None = None,
) -> int:
    return TournamentPlayerRepository(connection).create(
        {
            "tournament_id": tournament_id,
            "player_name": player_name,
            "device_id": device_id,
            "group_name": None,
            "legacy_code": legacy_code,
            "universal_player_id": universal_player_id,
        }
    )


def seed_identity(connection: sqlite3.Connection, name: str, unique_code: str | None = None) -> int:
    return UniversalPlayerRepository(connection).create({"name": name, "unique_code": unique_code})


def seed_scores(connection: sqlite3.Connection, player_id: int, holes: list[tuple[int, int, int]]) -> None:
    """Write (hole, par, strokes) rows without scratches or penalties."""
    scores = HoleScoreRepository(connection)
    for hole, par, strokes in holes:
        scores.upsert(
            {
                "tournament_player_id": player_id,
                "hole": hole,
                "par": par,
                "strokes": strokes,
                "scratches": 0,
                "penalties": 0,
            }
        )
