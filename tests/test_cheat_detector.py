from __future__ import annotations

from datetime import timedelta

import pytest

from scorecard.db.models import HoleScore
from scorecard.domain.anomalies import (
    BELOW_PAR_WITH_SCRATCH,
    PAR_WITH_SCRATCH,
    RAPID_SCORING,
    SCORE_REDUCTION,
    inspect_hole,
)
from scorecard.services.cheat_detector import CheatDetector, InMemoryAlertStore
from tests.helpers.factory import ManualClock


def _inspect(detector: CheatDetector, **kwargs):
    submission = {
        "room_code": "ROOM01",
        "tournament_player_id": 1,
        "player_name": "Ann",
        "hole": 4,
        "par": 3,
        "strokes": 3,
        "scratches": 0,
        "previous": None,
        **kwargs,
    }
    return detector.inspect(**submission)


def _record(detector: CheatDetector, player_id: int = 1, room_code: str = "ROOM01"):
    return detector.record_submission(
        room_code=room_code,
        tournament_player_id=player_id,
        player_name="Ann",
        hole=1,
        par=3,
        scratches=0,
    )


def test_par_with_scratch_is_medium() -> None:
    detector = CheatDetector(clock=ManualClock())

    alerts = _inspect(detector, strokes=2, scratches=1)

    assert [alert.alert_type for alert in alerts] == [PAR_WITH_SCRATCH]
    assert alerts[0].severity == "medium"
    assert alerts[0].message == "Scored par (3) with 1 scratch. Please verify."


def test_below_par_with_scratches_is_high() -> None:
    detector = CheatDetector(clock=ManualClock())

    alerts = _inspect(detector, par=4, strokes=1, scratches=2)

    assert [alert.alert_type for alert in alerts] == [BELOW_PAR_WITH_SCRATCH]
    assert alerts[0].severity == "high"
    assert alerts[0].message == "Scored 3 (below par 4) with 2 scratches. Highly suspicious."


@pytest.mark.parametrize(
    ("par", "strokes", "scratches"),
    [
        (3, 2, 0),
        (3, 4, 1),
        (0, 0, 1),
    ],
)
def test_clean_submissions_raise_nothing(par: int, strokes: int, scratches: int) -> None:
    assert inspect_hole(hole=1, par=par, strokes=strokes, scratches=scratches, previous=None) == []


def test_score_reduction_compares_strokes_plus_scratches() -> None:
    previous = HoleScore(1, 4, par=3, strokes=5, scratches=1, penalties=3)

    findings = inspect_hole(hole=4, par=3, strokes=4, scratches=1, previous=previous)
    assert [finding.alert_type for finding in findings] == [SCORE_REDUCTION]
    assert findings[0].message == "Reduced hole 4 score from 6 to 5. Was this a legitimate correction?"

    assert inspect_hole(hole=4, par=3, strokes=5, scratches=1, previous=previous) == []


def test_scratch_and_reduction_can_fire_together() -> None:
    previous = HoleScore(1, 4, par=3, strokes=5)

    findings = inspect_hole(hole=4, par=3, strokes=2, scratches=1, previous=previous)

    assert [finding.alert_type for finding in findings] == [PAR_WITH_SCRATCH, SCORE_REDUCTION]


def test_rapid_scoring_alerts_once_per_window() -> None:
    clock = ManualClock()
    detector = CheatDetector(clock=clock)

    assert _record(detector) is None
    clock.advance(seconds=10)
    assert _record(detector) is None
    clock.advance(seconds=10)
    alert = _record(detector)
    clock.advance(seconds=10)
    assert _record(detector) is None

    assert alert is not None
    assert alert.alert_type == RAPID_SCORING
    assert alert.message == (
        "Submitted 3+ hole scores within 2 minutes. Possible bulk entry or suspicious pace."
    )
    assert [item.alert_type for item in detector.list_alerts("room01")] == [RAPID_SCORING]


def test_rapid_scoring_window_slides() -> None:
    clock = ManualClock()
    detector = CheatDetector(clock=clock, rapid_window=timedelta(minutes=2))

    _record(detector)
    clock.advance(minutes=1)
    _record(detector)
    clock.advance(minutes=2)
    assert _record(detector) is None
    assert detector.list_alerts() == []


def test_rapid_scoring_is_tracked_per_player() -> None:
    detector = CheatDetector(clock=ManualClock())

    for player_id in (1, 2, 3):
        assert _record(detector, player_id=player_id) is None


def test_dismiss_hides_alert_and_is_idempotent() -> None:
    detector = CheatDetector(clock=ManualClock())
    alert = _inspect(detector, strokes=2, scratches=1)[0]

    detector.dismiss(alert.id)
    detector.dismiss(alert.id)
    detector.dismiss(12345)

    assert detector.list_alerts() == []


def test_alert_store_keeps_most_recent_entries() -> None:
    store = InMemoryAlertStore(capacity=500)
    detector = CheatDetector(store, clock=ManualClock())

    for index in range(505):
        _inspect(detector, tournament_player_id=index, strokes=2, scratches=1)

    alerts = detector.list_alerts()
    assert len(store) == 500
    assert len(alerts) == 500
    assert alerts[0].tournament_player_id == 5
    assert alerts[-1].tournament_player_id == 504


def test_alerts_filter_by_room_code() -> None:
    detector = CheatDetector(clock=ManualClock())
    _inspect(detector, room_code="AAA111", strokes=2, scratches=1)
    _inspect(detector, room_code="BBB222", strokes=2, scratches=1)

    assert [alert.room_code for alert in detector.list_alerts("bbb222")] == ["BBB222"]
    assert len(detector.list_alerts()) == 2
