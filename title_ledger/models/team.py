from typing import List, Optional

from pydantic import Field

from .data_models import LedgerModel
from .reign import Reign
from .streak import StreakRecord


class Team(LedgerModel):
    """A team with its record, streaks and title reigns."""

    id: int
    name: str
    wins: int = Field(0, ge=0)
    losses: int = Field(0, ge=0)
    streaks: StreakRecord = Field(default_factory=StreakRecord)
    is_holder: bool = False
    # Chronological: the order in which the team acquired the title
    reigns: List[Reign] = []

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"

    @property
    def current_reign(self) -> Optional[Reign]:
        if self.reigns and self.reigns[-1].is_open:
            return self.reigns[-1]
        return None

    @property
    def longest_reign_days(self) -> int:
        return max((r.days for r in self.reigns), default=0)

    def open_reign(self, reign: Reign) -> None:
        """Appends a new open reign, closing any reign still left open at its start."""
        if self.current_reign is not None:
            self.current_reign.close(reign.start)
        self.reigns.append(reign)

    def __str__(self) -> str:
        return self.name
