from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from .data_models import LedgerModel


class MatchInput(BaseModel):
    """Raw match entry as handed to the engine, validated before settlement."""

    model_config = ConfigDict(frozen=True)

    home_id: StrictInt
    away_id: StrictInt
    date: date
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)

    @field_validator("date", mode="before")
    @classmethod
    def date_only(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def reject_bool_scores(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("Score must be a number, not a boolean")
        if isinstance(value, str):
            value = value.strip()
        return value


class Match(LedgerModel):
    """A settled match, with the holder snapshot taken around its settlement."""

    id: int
    home_id: int
    away_id: int
    date: date
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)
    winner_id: Optional[int] = None
    pre_match_holder: Optional[int] = None
    post_match_holder: Optional[int] = None
    # Set once the match's effects have been undone; it no longer counts
    reversed: bool = False

    @property
    def holder_changed(self) -> bool:
        return self.pre_match_holder != self.post_match_holder

    @property
    def is_draw(self) -> bool:
        """Equal scores; the title still goes to the incumbent, this is display only."""
        return self.home_score == self.away_score

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_id, self.away_id)

    def winner_is_participant(self) -> bool:
        return self.winner_id is not None and self.involves(self.winner_id)
