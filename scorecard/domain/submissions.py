"""Input models for score submissions and manually entered results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from scorecard.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class ScoreSubmission(BaseModel):
    tournament_player_id: int
    hole: int = Field(ge=1)
    par: int = Field(ge=0)
    strokes: int = Field(ge=0)
    scratches: int = Field(default=0, ge=0)
    penalties: int = Field(default=0, ge=0)


class ManualHistoryEntry(BaseModel):
    tournament_name: str = Field(min_length=1)
    course_name: str | None = None
    total_strokes: int = Field(ge=0)
    total_par: int = Field(ge=0)
    holes_played: int = Field(ge=1)
    total_scratches: int = Field(default=0, ge=0)
    total_penalties: int = Field(default=0, ge=0)
    completed_at: datetime | None = None

    @property
    def relative_to_par(self) -> int:
        return self.total_strokes - self.total_par


def _describe(exc: PydanticValidationError) -> list[str]:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        details.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return details


def parse_model(model: type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Validate ``data`` into ``model`` or raise the core ValidationError."""
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as exc:
        details = _describe(exc)
        raise ValidationError(details[0] if details else "Invalid request", details) from exc
