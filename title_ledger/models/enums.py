from enum import Enum


class StreakKind(str, Enum):
    WIN = "W"
    LOSS = "L"
    NONE = ""


class MatchOutcome(str, Enum):
    """Result of a match from one participant's point of view."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
