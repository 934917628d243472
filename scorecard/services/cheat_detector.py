"""Heuristic anomaly detection on the live score submission stream.

Alerts are advisory: nothing here blocks or alters a score write. The alert
store and the submission-timing windows are injectable so a deployment with
several service instances can back them with a shared cache; the in-memory
versions below are process-local and are lost on restart.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

from scorecard.db.models import HoleScore
from scorecard.domain.anomalies import RAPID_SCORING, SEVERITY, Finding, inspect_hole
from scorecard.timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_ALERT_CAPACITY = 500
DEFAULT_RAPID_WINDOW = timedelta(minutes=2)
DEFAULT_RAPID_THRESHOLD = 3


@dataclass
class CheatAlert:
    id: int
    room_code: str
    tournament_player_id: int
    player_name: str
    hole: int
    par: int
    scratches: int
    alert_type: str
    message: str
    timestamp: datetime
    dismissed: bool = False

    @property
    def severity(self) -> str:
        return SEVERITY[self.alert_type]


class AlertStore(Protocol):
    def add(
        self,
        *,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        scratches: int,
        alert_type: str,
        message: str,
        timestamp: datetime,
    ) -> CheatAlert: ...

    def dismiss(self, alert_id: int) -> None: ...

    def list_active(self, room_code: str | None = None) -> list[CheatAlert]: ...

    def has_active_since(
        self, room_code: str, tournament_player_id: int, alert_type: str, since: datetime
    ) -> bool: ...


class SubmissionWindowTracker(Protocol):
    def record(self, key: tuple[str, int], at: datetime) -> int: ...


class InMemoryAlertStore:
    """Append-only alert list keeping only the most recent ``capacity`` entries."""

    def __init__(self, capacity: int = DEFAULT_ALERT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Alert capacity must be a positive integer.")
        self._alerts: deque[CheatAlert] = deque(maxlen=capacity)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(
        self,
        *,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        scratches: int,
        alert_type: str,
        message: str,
        timestamp: datetime,
    ) -> CheatAlert:
        with self._lock:
            alert = CheatAlert(
                id=next(self._ids),
                room_code=room_code,
                tournament_player_id=tournament_player_id,
                player_name=player_name,
                hole=hole,
                par=par,
                scratches=scratches,
                alert_type=alert_type,
                message=message,
                timestamp=timestamp,
            )
            self._alerts.append(alert)
        return alert

    def dismiss(self, alert_id: int) -> None:
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    alert.dismissed = True
                    return

    def list_active(self, room_code: str | None = None) -> list[CheatAlert]:
        with self._lock:
            return [
                alert
                for alert in self._alerts
                if not alert.dismissed and (room_code is None or alert.room_code == room_code)
            ]

    def has_active_since(
        self, room_code: str, tournament_player_id: int, alert_type: str, since: datetime
    ) -> bool:
        with self._lock:
            return any(
                not alert.dismissed
                and alert.alert_type == alert_type
                and alert.room_code == room_code
                and alert.tournament_player_id == tournament_player_id
                and alert.timestamp > since
                for alert in self._alerts
            )

    def __len__(self) -> int:
        return len(self._alerts)


@dataclass
class InMemorySubmissionWindowTracker:
    """Sliding window of submission timestamps per (room code, player)."""

    window: timedelta = DEFAULT_RAPID_WINDOW
    _timestamps: dict[tuple[str, int], list[datetime]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record(self, key: tuple[str, int], at: datetime) -> int:
        cutoff = at - self.window
        with self._lock:
            recent = [stamp for stamp in self._timestamps.get(key, []) if stamp > cutoff]
            recent.append(at)
            self._timestamps[key] = recent
            return len(recent)


class CheatDetector:
    def __init__(
        self,
        alert_store: AlertStore | None = None,
        window_tracker: SubmissionWindowTracker | None = None,
        *,
        clock: Clock = utc_now,
        rapid_window: timedelta = DEFAULT_RAPID_WINDOW,
        rapid_threshold: int = DEFAULT_RAPID_THRESHOLD,
    ) -> None:
        self._alerts = alert_store if alert_store is not None else InMemoryAlertStore()
        self._windows = (
            window_tracker if window_tracker is not None else InMemorySubmissionWindowTracker(window=rapid_window)
        )
        self._clock = clock
        self._rapid_window = rapid_window
        self._rapid_threshold = rapid_threshold

    def inspect(
        self,
        *,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        strokes: int,
        scratches: int,
        previous: HoleScore | None,
    ) -> list[CheatAlert]:
        """Run the content checks for a submission before it is written."""
        findings = inspect_hole(hole=hole, par=par, strokes=strokes, scratches=scratches, previous=previous)
        return [
            self._raise(finding, room_code, tournament_player_id, player_name, hole, par, scratches)
            for finding in findings
        ]

    def record_submission(
        self,
        *,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        scratches: int,
    ) -> CheatAlert | None:
        """Track a written score and flag a burst of submissions."""
        now = self._clock()
        count = self._windows.record((room_code, tournament_player_id), now)
        if count < self._rapid_threshold:
            return None
        if self._alerts.has_active_since(room_code, tournament_player_id, RAPID_SCORING, now - self._rapid_window):
            return None
        finding = Finding(
            RAPID_SCORING,
            f"Submitted {self._rapid_threshold}+ hole scores within "
            f"{int(self._rapid_window.total_seconds() // 60)} minutes. Possible bulk entry or suspicious pace.",
        )
        return self._raise(finding, room_code, tournament_player_id, player_name, hole, par, scratches)

    def list_alerts(self, room_code: str | None = None) -> list[CheatAlert]:
        return self._alerts.list_active(room_code.upper() if room_code else None)

    def dismiss(self, alert_id: int) -> None:
        self._alerts.dismiss(alert_id)

    def _raise(
        self,
        finding: Finding,
        room_code: str,
        tournament_player_id: int,
        player_name: str,
        hole: int,
        par: int,
        scratches: int,
    ) -> CheatAlert:
        alert = self._alerts.add(
            room_code=room_code,
            tournament_player_id=tournament_player_id,
            player_name=player_name,
            hole=hole,
            par=par,
            scratches=scratches,
            alert_type=finding.alert_type,
            message=finding.message,
            timestamp=self._clock(),
        )
        logger.warning(
            "Cheat alert %s (%s) in %s for %s on hole %s: %s",
            alert.alert_type,
            alert.severity,
            room_code,
            player_name,
            hole,
            alert.message,
        )
        return alert
