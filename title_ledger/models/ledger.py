from datetime import datetime
from typing import List, Optional

from pydantic import field_validator, model_validator

from .data_models import LedgerModel, as_utc
from .match import Match
from .team import Team


class Ledger(LedgerModel):
    """The whole championship state: teams, the match log and the current holder."""

    teams: List[Team] = []
    # Recording order, which is also settlement order
    matches: List[Match] = []
    current_holder: Optional[int] = None
    last_updated: Optional[datetime] = None

    # Monotonic id counters
    next_team_id: int = 1
    next_match_id: int = 1

    @field_validator("last_updated")
    @classmethod
    def normalise_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def advance_counters(self) -> "Ledger":
        # Documents written before counters existed carry only the entity ids
        if self.teams:
            self.next_team_id = max(self.next_team_id, max(t.id for t in self.teams) + 1)
        if self.matches:
            self.next_match_id = max(
                self.next_match_id, max(m.id for m in self.matches) + 1
            )
        return self

    def allocate_team_id(self) -> int:
        team_id = self.next_team_id
        self.next_team_id += 1
        return team_id

    def allocate_match_id(self) -> int:
        match_id = self.next_match_id
        self.next_match_id += 1
        return match_id

    def find_team(self, team_id: Optional[int]) -> Optional[Team]:
        if team_id is None:
            return None
        return next((t for t in self.teams if t.id == team_id), None)

    def find_match(self, match_id: int) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id), None)

    def find_team_by_name(self, name: str) -> Optional[Team]:
        wanted = name.strip().casefold()
        return next((t for t in self.teams if t.name.casefold() == wanted), None)

    def holder(self) -> Optional[Team]:
        return self.find_team(self.current_holder)

    def set_holder(self, team_id: Optional[int]) -> None:
        """Points the title at one team (or none) and keeps every is_holder flag in step."""
        self.current_holder = team_id
        for team in self.teams:
            team.is_holder = team.id == team_id

    def to_document(self) -> dict:
        """JSON-ready document in the persisted camelCase layout."""
        return self.model_dump(mode="json", by_alias=True)
