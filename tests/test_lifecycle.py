from __future__ import annotations

from pathlib import Path

import pytest

from scorecard.db.database import get_connection
from scorecard.db.repositories import HistoryRepository, HoleScoreRepository, TournamentPlayerRepository
from scorecard.errors import NotFoundError, ValidationError
from scorecard.services import events
from scorecard.services.audit_log import TOURNAMENT_DELETED, AuditLogService
from scorecard.services.lifecycle import (
    ARCHIVED,
    IN_PROGRESS,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    SETUP,
    TournamentLifecycleManager,
    effective_state,
    generate_room_code,
)
from tests.helpers.factory import ManualClock, RecordingEventSink, seed_identity, seed_player, seed_scores


def _manager(connection, sink=None, clock=None, **kwargs) -> TournamentLifecycleManager:
    return TournamentLifecycleManager(connection, sink or RecordingEventSink(), clock=clock or ManualClock(), **kwargs)


def test_generated_room_codes_use_code_alphabet() -> None:
    code = generate_room_code()

    assert len(code) == ROOM_CODE_LENGTH
    assert set(code) <= set(ROOM_CODE_ALPHABET)


def test_create_uses_default_hole_limit_and_checks_bounds(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    manager = _manager(connection, default_max_holes=18, room_code_factory=lambda: "abc123")

    tournament = manager.create("  Spring Open ", "pw")

    assert tournament.name == "Spring Open"
    assert tournament.room_code == "ABC123"
    assert tournament.max_holes == 18
    assert effective_state(tournament) == SETUP
    assert manager.get_by_room_code("abc123").id == tournament.id

    with pytest.raises(ValidationError):
        manager.create("Too long", "pw", max_holes=37)
    with pytest.raises(ValidationError):
        manager.create("   ", "pw")


def test_room_code_collisions_are_retried(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    codes = iter(["SAME01", "SAME01", "OTHER1"])
    manager = _manager(connection, room_code_factory=lambda: next(codes))

    first = manager.create("One", "pw")
    second = manager.create("Two", "pw")

    assert (first.room_code, second.room_code) == ("SAME01", "OTHER1")


def test_start_requires_a_player_and_emits_event(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    sink = RecordingEventSink()
    clock = ManualClock()
    manager = _manager(connection, sink, clock)
    tournament = manager.create("Spring Open", "pw")

    with pytest.raises(ValidationError):
        manager.start(tournament.id)

    seed_player(connection, tournament.id, "Ann")
    started = manager.start(tournament.id)

    assert started.is_started
    assert started.started_at == clock.now.isoformat()
    assert effective_state(started) == IN_PROGRESS
    assert sink.names() == [events.TOURNAMENT_STARTED]
    assert sink.events[0][1]["room_code"] == tournament.room_code


def test_restart_overwrites_start_time(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    clock = ManualClock()
    manager = _manager(connection, clock=clock)
    tournament = manager.create("Spring Open", "pw")
    seed_player(connection, tournament.id, "Ann")

    manager.start(tournament.id)
    clock.advance(hours=1)
    restarted = manager.start(tournament.id)

    assert restarted.started_at == clock.now.isoformat()


def test_archive_and_reopen_keep_started_flag(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    manager = _manager(connection)
    tournament = manager.create("Spring Open", "pw")
    seed_player(connection, tournament.id, "Ann")
    manager.start(tournament.id)

    archived = manager.archive(tournament.id)
    assert effective_state(archived) == ARCHIVED
    assert archived.completed_at is not None
    with pytest.raises(ValidationError):
        manager.start(tournament.id)

    reopened = manager.reopen(tournament.id)
    assert reopened.is_active
    assert reopened.is_started
    assert reopened.completed_at is None
    assert effective_state(reopened) == IN_PROGRESS


def test_delete_cascades_roster_and_scores_but_keeps_history(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    manager = _manager(connection)
    tournament = manager.create("Spring Open", "pw")
    identity_id = seed_identity(connection, "Ann")
    player_id = seed_player(connection, tournament.id, "Ann", universal_player_id=identity_id)
    seed_scores(connection, player_id, [(1, 3, 3), (2, 3, 4)])
    HistoryRepository(connection).create(
        {
            "universal_player_id": identity_id,
            "tournament_id": tournament.id,
            "tournament_name": "Spring Open",
            "total_strokes": 7,
            "total_par": 6,
            "holes_played": 2,
            "relative_to_par": 1,
        }
    )

    manager.delete(tournament.id)

    with pytest.raises(NotFoundError):
        manager.get(tournament.id)
    assert TournamentPlayerRepository(connection).get(player_id) is None
    assert HoleScoreRepository(connection).list_for_player(player_id) == []
    assert len(HistoryRepository(connection).list_for_player(identity_id)) == 1
    assert len(AuditLogService(connection).list_events(event_type=TOURNAMENT_DELETED)) == 1


def test_unknown_tournament_raises_not_found(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    manager = _manager(connection)

    with pytest.raises(NotFoundError):
        manager.start(42)
    with pytest.raises(NotFoundError):
        manager.get_by_room_code("NOPE00")
