from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

TOURNAMENT_STARTED = "tournament_started"
TOURNAMENT_COMPLETED = "tournament_completed"
ALL_PLAYERS_ASSIGNED = "all_players_assigned"

EVENT_NAMES = [
    TOURNAMENT_STARTED,
    TOURNAMENT_COMPLETED,
    ALL_PLAYERS_ASSIGNED,
]


class EventSink(Protocol):
    """Receives notification intents; delivery belongs to the notifier."""

    def emit(self, name: str, payload: dict[str, Any]) -> None: ...


class LoggingEventSink:
    def emit(self, name: str, payload: dict[str, Any]) -> None:
        logger.info("Event %s: %s", name, payload)
