import unittest
from pathlib import Path

import pytest

from scorecard.db.database import get_connection
from scorecard.domain.handicap import compute_handicap, round_tenth
from scorecard.errors import NotFoundError, StorageError, ValidationError
from scorecard.services.audit_log import HANDICAP_OVERRIDE, HISTORY_ADDED, AuditLogService
from scorecard.services.handicap_engine import HandicapEngine
from tests.helpers.factory import ManualClock, seed_identity


class HandicapComputationTests(unittest.TestCase):
    def test_mean_rounded_to_one_decimal(self) -> None:
        rating = compute_handicap([2, -1, 3])
        self.assertEqual(rating.handicap, 1.3)
        self.assertTrue(rating.is_provisional)
        self.assertEqual(rating.completed_tournaments, 3)

    def test_empty_history_has_no_handicap(self) -> None:
        rating = compute_handicap([])
        self.assertIsNone(rating.handicap)
        self.assertTrue(rating.is_provisional)
        self.assertEqual(rating.completed_tournaments, 0)

    def test_provisional_clears_at_threshold(self) -> None:
        self.assertTrue(compute_handicap([1, 1, 1, 1]).is_provisional)
        self.assertFalse(compute_handicap([1, 1, 1, 1, 1]).is_provisional)
        self.assertFalse(compute_handicap([0, 0], provisional_threshold=2).is_provisional)

    def test_halves_round_up(self) -> None:
        self.assertEqual(round_tenth(0.25), 0.3)
        self.assertEqual(round_tenth(-0.25), -0.2)
        self.assertEqual(compute_handicap([-1, -2]).handicap, -1.5)


def _manual(relative: int, name: str = "Winter League") -> dict:
    return {
        "tournament_name": name,
        "total_strokes": 54 + relative,
        "total_par": 54,
        "holes_played": 18,
    }


def test_manual_history_recalculates_rating(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)
    identity_id = seed_identity(connection, "Ann")

    for relative in (2, -1, 3):
        record = engine.add_manual_history(identity_id, _manual(relative))
        assert record.is_manual_entry

    player = engine.recalculate(identity_id)
    assert player.handicap == 1.3
    assert player.is_provisional
    assert player.completed_tournaments == 3
    assert len(AuditLogService(connection).list_events(event_type=HISTORY_ADDED)) == 3


def test_deleting_history_recalculates_rating(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)
    identity_id = seed_identity(connection, "Ann")
    only = engine.add_manual_history(identity_id, _manual(4))

    player = engine.delete_history(only.id)

    assert player.handicap is None
    assert player.completed_tournaments == 0
    with pytest.raises(NotFoundError):
        engine.delete_history(only.id)


def test_invalid_manual_history_is_rejected(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)
    identity_id = seed_identity(connection, "Ann")

    with pytest.raises(ValidationError):
        engine.add_manual_history(identity_id, {**_manual(1), "holes_played": 0})
    with pytest.raises(ValidationError):
        engine.add_manual_history(identity_id, {**_manual(1), "tournament_name": ""})
    assert engine.get_history(identity_id) == []


def test_override_pins_value_until_next_recalculation(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)
    identity_id = seed_identity(connection, "Ann")
    engine.add_manual_history(identity_id, _manual(6))

    overridden = engine.set_override(identity_id, -2.5)
    assert overridden.handicap == -2.5
    assert not overridden.is_provisional
    assert len(AuditLogService(connection).list_events(event_type=HANDICAP_OVERRIDE)) == 1

    recalculated = engine.recalculate(identity_id)
    assert recalculated.handicap == 6.0
    assert recalculated.is_provisional


def test_recalculate_unknown_identity_raises(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)

    with pytest.raises(NotFoundError):
        engine.recalculate(404)


def test_manual_history_timestamps_use_clock_and_utc_iso_format(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    clock = ManualClock()
    engine = HandicapEngine(connection, clock=clock)
    identity_id = seed_identity(connection, "Ann")

    undated = engine.add_manual_history(identity_id, _manual(1, "Undated"))
    offset = engine.add_manual_history(
        identity_id, {**_manual(2, "Offset"), "completed_at": "2026-04-01T12:00:00+02:00"}
    )
    naive = engine.add_manual_history(identity_id, {**_manual(3, "Naive"), "completed_at": "2026-03-01T08:30:00"})

    assert undated.completed_at == clock.now.isoformat()
    assert offset.completed_at == "2026-04-01T10:00:00+00:00"
    assert naive.completed_at == "2026-03-01T08:30:00+00:00"
    assert [record.tournament_name for record in engine.get_history(identity_id)] == ["Undated", "Offset", "Naive"]


def test_manual_history_raises_when_entry_cannot_be_read_back(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    connection = get_connection(tmp_path / "app.db")
    engine = HandicapEngine(connection)
    identity_id = seed_identity(connection, "Ann")
    monkeypatch.setattr(engine._history, "get", lambda history_id: None)

    with pytest.raises(StorageError):
        engine.add_manual_history(identity_id, _manual(1))
