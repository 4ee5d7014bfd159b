import math
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from pydantic import Field, field_validator

from .data_models import LedgerModel, as_utc

SECONDS_PER_DAY = 24 * 60 * 60


def day_start(value: date) -> datetime:
    """Midnight UTC of a calendar date; reigns opened or closed by a match use it."""
    if isinstance(value, datetime):
        return as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def whole_days(start: datetime, end: datetime) -> int:
    """Duration between two instants rounded to the nearest whole day, halves up."""
    return math.floor((end - start).total_seconds() / SECONDS_PER_DAY + 0.5)


class Reign(LedgerModel):
    """A continuous interval during which one team held the title."""

    start: datetime
    end: Optional[datetime] = None
    days: int = Field(0, ge=0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def accept_plain_dates(cls, value: Any) -> Any:
        # Reigns opened by a match are stored with the bare match date
        if isinstance(value, str) and len(value) == 10:
            return day_start(date.fromisoformat(value))
        if isinstance(value, date) and not isinstance(value, datetime):
            return day_start(value)
        return value

    @field_validator("start", "end")
    @classmethod
    def normalise_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def close(self, end: datetime) -> None:
        """Ends the reign and records its length in whole days."""
        self.end = as_utc(end)
        # Out-of-order match dates can end a reign before it started
        self.days = max(0, whole_days(self.start, self.end))

    def days_held(self, as_of: datetime) -> int:
        """Days held so far for an open reign, or the recorded length once closed."""
        if self.end is not None:
            return self.days
        return max(0, whole_days(self.start, as_utc(as_of)))
