import re
from typing import Any

from pydantic import ConfigDict, Field, model_validator

from .data_models import LedgerModel
from .enums import StreakKind

# Legacy documents store the current streak as a token such as "W3" or "L1"
_TOKEN_PATTERN = re.compile(r"^([WL])([1-9]\d*)$")


class Streak(LedgerModel):
    """A run of consecutive wins or losses, or no run at all."""

    model_config = ConfigDict(frozen=True)

    kind: StreakKind = StreakKind.NONE
    magnitude: int = Field(0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def parse_legacy_token(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, str):
            token = data.strip().upper()
            if not token:
                return {}
            match = _TOKEN_PATTERN.match(token)
            if not match:
                raise ValueError(f"Invalid streak token: {data!r}")
            return {"kind": match.group(1), "magnitude": int(match.group(2))}
        return data

    @model_validator(mode="after")
    def check_magnitude(self) -> "Streak":
        if self.kind == StreakKind.NONE and self.magnitude != 0:
            raise ValueError("A streak with no kind cannot have a magnitude")
        if self.kind != StreakKind.NONE and self.magnitude < 1:
            raise ValueError(f"A {self.kind.name} streak needs a magnitude of at least 1")
        return self

    @classmethod
    def win(cls, magnitude: int = 1) -> "Streak":
        return cls(kind=StreakKind.WIN, magnitude=magnitude)

    @classmethod
    def loss(cls, magnitude: int = 1) -> "Streak":
        return cls(kind=StreakKind.LOSS, magnitude=magnitude)

    @property
    def token(self) -> str:
        """Short display form: "W3", "L1", or "" for no streak."""
        if self.kind == StreakKind.NONE:
            return ""
        return f"{self.kind.value}{self.magnitude}"

    def __str__(self) -> str:
        return self.token


class StreakRecord(LedgerModel):
    """Current streak plus the longest win and loss runs ever observed."""

    current: Streak = Field(default_factory=Streak)
    longest_win: int = Field(0, ge=0)
    longest_loss: int = Field(0, ge=0)
