"""Typed views over repository rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Tournament:
    id: int
    room_code: str
    name: str
    is_active: bool
    is_started: bool
    is_handicapped: bool
    max_holes: int
    created_at: str
    started_at: str | None
    completed_at: str | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Tournament":
        return cls(
            id=int(row["id"]),
            room_code=str(row["room_code"]),
            name=str(row["name"]),
            is_active=bool(row["is_active"]),
            is_started=bool(row["is_started"]),
            is_handicapped=bool(row["is_handicapped"]),
            max_holes=int(row["max_holes"]),
            created_at=str(row["created_at"]),
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
        )


@dataclass(frozen=True)
class TournamentPlayer:
    id: int
    tournament_id: int
    player_name: str
    device_id: str | None
    group_name: str | None
    legacy_code: str | None
    universal_player_id: int | None
    is_dnf: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TournamentPlayer":
        universal_player_id = row.get("universal_player_id")
        return cls(
            id=int(row["id"]),
            tournament_id=int(row["tournament_id"]),
            player_name=str(row["player_name"]),
            device_id=row.get("device_id"),
            group_name=row.get("group_name"),
            legacy_code=row.get("legacy_code"),
            universal_player_id=int(universal_player_id) if universal_player_id is not None else None,
            is_dnf=bool(row.get("is_dnf")),
        )


@dataclass(frozen=True)
class HoleScore:
    tournament_player_id: int
    hole: int
    par: int
    strokes: int
    scratches: int = 0
    penalties: int = 0

    @property
    def total(self) -> int:
        """Strokes charged for the hole, scratches and penalties included."""
        return self.strokes + self.scratches + self.penalties

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HoleScore":
        return cls(
            tournament_player_id=int(row["tournament_player_id"]),
            hole=int(row["hole"]),
            par=int(row["par"]),
            strokes=int(row["strokes"]),
            scratches=int(row["scratches"] or 0),
            penalties=int(row["penalties"] or 0),
        )


@dataclass(frozen=True)
class UniversalPlayer:
    id: int
    unique_code: str
    name: str
    email: str | None
    phone_number: str | None
    contact_info: str | None
    has_pin: bool
    handicap: float | None
    is_provisional: bool
    completed_tournaments: int

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UniversalPlayer":
        handicap = row.get("handicap")
        return cls(
            id=int(row["id"]),
            unique_code=str(row["unique_code"]),
            name=str(row["name"]),
            email=row.get("email"),
            phone_number=row.get("phone_number"),
            contact_info=row.get("contact_info"),
            has_pin=bool(row.get("pin_hash")),
            handicap=float(handicap) if handicap is not None else None,
            is_provisional=bool(row["is_provisional"]),
            completed_tournaments=int(row["completed_tournaments"] or 0),
        )


@dataclass(frozen=True)
class HistoryRecord:
    id: int
    universal_player_id: int
    tournament_id: int | None
    tournament_name: str
    course_name: str | None
    total_strokes: int
    total_par: int
    holes_played: int
    relative_to_par: int
    total_scratches: int
    total_penalties: int
    completed_at: str
    is_manual_entry: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HistoryRecord":
        tournament_id = row.get("tournament_id")
        return cls(
            id=int(row["id"]),
            universal_player_id=int(row["universal_player_id"]),
            tournament_id=int(tournament_id) if tournament_id is not None else None,
            tournament_name=str(row["tournament_name"]),
            course_name=row.get("course_name"),
            total_strokes=int(row["total_strokes"]),
            total_par=int(row["total_par"]),
            holes_played=int(row["holes_played"]),
            relative_to_par=int(row["relative_to_par"]),
            total_scratches=int(row["total_scratches"] or 0),
            total_penalties=int(row["total_penalties"] or 0),
            completed_at=str(row["completed_at"]),
            is_manual_entry=bool(row["is_manual_entry"]),
        )
