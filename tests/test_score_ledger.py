from __future__ import annotations

from pathlib import Path

import pytest

from scorecard.db.database import get_connection
from scorecard.errors import NotFoundError, ValidationError
from scorecard.services.score_ledger import ScoreLedger, collapse_legacy_duplicates
from tests.helpers.factory import seed_player, seed_tournament


class RecordingListener:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[dict] = []
        self.fail = fail

    def record_submission(self, **kwargs) -> None:
        self.calls.append(kwargs)
        if self.fail:
            raise RuntimeError("tracker down")


def test_upsert_twice_keeps_single_record_with_latest_values(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    player_id = seed_player(connection, seed_tournament(connection), "Ann")
    ledger = ScoreLedger(connection)

    ledger.upsert(player_id, 3, par=3, strokes=5)
    score = ledger.upsert(player_id, 3, par=3, strokes=4, scratches=1, penalties=2)

    scores = ledger.get_scores(player_id)
    assert len(scores) == 1
    assert scores[0] == score
    assert score.strokes == 4
    assert score.total == 7


def test_get_scores_is_ordered_by_hole(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    player_id = seed_player(connection, seed_tournament(connection), "Ann")
    ledger = ScoreLedger(connection)

    for hole in (5, 1, 3):
        ledger.upsert(player_id, hole, par=3, strokes=3)

    assert [score.hole for score in ledger.get_scores(player_id)] == [1, 3, 5]
    assert ledger.get_score(player_id, 2) is None


@pytest.mark.parametrize(
    "changes",
    [
        {"hole": 0},
        {"strokes": -1},
        {"par": -3},
        {"scratches": -1},
        {"penalties": -2},
    ],
)
def test_invalid_submissions_are_rejected(tmp_path: Path, changes: dict) -> None:
    connection = get_connection(tmp_path / "app.db")
    player_id = seed_player(connection, seed_tournament(connection), "Ann")
    ledger = ScoreLedger(connection)
    payload = {"hole": 1, "par": 3, "strokes": 3, "scratches": 0, "penalties": 0, **changes}

    with pytest.raises(ValidationError) as excinfo:
        ledger.upsert(player_id, **payload)

    assert excinfo.value.details
    assert ledger.get_scores(player_id) == []


def test_hole_above_tournament_limit_is_rejected(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    player_id = seed_player(connection, seed_tournament(connection, max_holes=9), "Ann")
    ledger = ScoreLedger(connection)

    ledger.upsert(player_id, 9, par=3, strokes=3)
    with pytest.raises(ValidationError, match="Maximum of 9 holes allowed"):
        ledger.upsert(player_id, 10, par=3, strokes=3)


def test_unknown_player_is_not_found(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    ledger = ScoreLedger(connection)

    with pytest.raises(NotFoundError):
        ledger.upsert(999, 1, par=3, strokes=3)


def test_listener_sees_each_write_and_failures_do_not_block(tmp_path: Path) -> None:
    connection = get_connection(tmp_path / "app.db")
    player_id = seed_player(connection, seed_tournament(connection, room_code="ROOM42"), "Ann")
    listener = RecordingListener(fail=True)
    ledger = ScoreLedger(connection, submission_listener=listener)

    score = ledger.upsert(player_id, 1, par=4, strokes=4)

    assert score.strokes == 4
    assert listener.calls == [
        {
            "room_code": "ROOM42",
            "tournament_player_id": player_id,
            "player_name": "Ann",
            "hole": 1,
            "par": 4,
            "scratches": 0,
        }
    ]


def test_legacy_duplicates_collapse_to_latest_row_per_hole() -> None:
    rows = [
        {"id": 1, "tournament_player_id": 7, "hole": 2, "par": 3, "strokes": 6, "scratches": 0, "penalties": 0},
        {"id": 2, "tournament_player_id": 7, "hole": 1, "par": 3, "strokes": 3, "scratches": 0, "penalties": 0},
        {"id": 3, "tournament_player_id": 7, "hole": 2, "par": 3, "strokes": 4, "scratches": 1, "penalties": 0},
    ]

    scores = collapse_legacy_duplicates(rows)

    assert [(score.hole, score.strokes) for score in scores] == [(1, 3), (2, 4)]
