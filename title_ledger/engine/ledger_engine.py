from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Callable, Iterator, List, Optional, Union

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from title_ledger.errors import NotFoundError, PersistenceError, ValidationError
from title_ledger.models.data_models import as_utc
from title_ledger.models.ledger import Ledger
from title_ledger.models.match import Match, MatchInput
from title_ledger.models.reign import Reign
from title_ledger.models.team import Team
from title_ledger.storage.base_store import BaseStore

from . import settlement

Listener = Callable[[], None]
Clock = Callable[[], datetime]
MatchDate = Union[date, datetime, str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEngine:
    """Owns the ledger and applies every change to it.

    Each mutating operation works on a deep copy of the current ledger. The
    copy is saved through the store and only then becomes the engine's state,
    after which listeners are notified. If validation or the save fails, the
    exception propagates and the state is left exactly as it was.
    """

    def __init__(
        self,
        store: BaseStore,
        ledger: Optional[Ledger] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self._ledger = ledger if ledger is not None else Ledger()
        self._clock = clock or utc_now
        self._listeners: List[Listener] = []

    @classmethod
    def open(cls, store: BaseStore, clock: Optional[Clock] = None) -> "LedgerEngine":
        """Loads the ledger from ``store``, initialising an empty one if none is stored."""
        ledger = store.load()
        if ledger is not None:
            logger.info(
                f"Ledger loaded: {len(ledger.teams)} teams, {len(ledger.matches)} matches."
            )
            return cls(store, ledger, clock)

        logger.info("No stored ledger, starting a new one.")
        engine = cls(store, Ledger(), clock)
        engine._commit(Ledger())
        return engine

    @property
    def ledger(self) -> Ledger:
        """Current committed state. Treat as read-only; change it through the operations."""
        return self._ledger

    # --- Change notification ---

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception(f"Change listener {listener!r} failed.")

    # --- Commit machinery ---

    def _now(self) -> datetime:
        return as_utc(self._clock())

    @contextmanager
    def _mutate(self) -> Iterator[Ledger]:
        draft = self._ledger.model_copy(deep=True)
        yield draft
        self._commit(draft)

    def _commit(self, draft: Ledger) -> None:
        draft.last_updated = self._now()
        try:
            self.store.save(draft)
        except PersistenceError:
            logger.error("Save failed, ledger change discarded.")
            raise
        self._ledger = draft
        self._notify()

    # --- Validation helpers ---

    @staticmethod
    def _clean_name(name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Team name must not be empty")
        return name.strip()

    @staticmethod
    def _check_unique_name(ledger: Ledger, name: str, team_id: Optional[int] = None) -> None:
        existing = ledger.find_team_by_name(name)
        if existing is not None and existing.id != team_id:
            raise ValidationError(f"A team named '{existing.name}' already exists")

    @staticmethod
    def _match_input(
        home_id: int,
        away_id: int,
        match_date: MatchDate,
        home_score: int,
        away_score: int,
    ) -> MatchInput:
        try:
            return MatchInput(
                home_id=home_id,
                away_id=away_id,
                date=match_date,
                home_score=home_score,
                away_score=away_score,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid match: {e}") from e

    @staticmethod
    def _check_participants(ledger: Ledger, entry: MatchInput) -> None:
        if entry.home_id == entry.away_id:
            raise ValidationError("Home and away teams cannot be the same")
        for team_id in (entry.home_id, entry.away_id):
            if ledger.find_team(team_id) is None:
                raise ValidationError(f"Unknown team id {team_id}")

    @staticmethod
    def _require_team(ledger: Ledger, team_id: int) -> Team:
        team = ledger.find_team(team_id)
        if team is None:
            raise NotFoundError(f"No team with id {team_id}")
        return team

    @staticmethod
    def _require_match(ledger: Ledger, match_id: int) -> Match:
        match = ledger.find_match(match_id)
        if match is None:
            raise NotFoundError(f"No match with id {match_id}")
        return match

    # --- Teams ---

    def create_team(self, name: str, mark_as_holder: bool = False) -> Team:
        """Adds a team, optionally handing it the title from now on."""
        clean_name = self._clean_name(name)
        with self._mutate() as draft:
            self._check_unique_name(draft, clean_name)
            team = Team(id=draft.allocate_team_id(), name=clean_name)
            draft.teams.append(team)

            if mark_as_holder:
                now = self._now()
                previous = draft.holder()
                if previous is not None and previous.current_reign is not None:
                    previous.current_reign.close(now)
                draft.set_holder(team.id)
                team.open_reign(Reign(start=now))

        logger.info(
            f"Created team {team.name} (id {team.id})"
            + (" as title holder." if mark_as_holder else ".")
        )
        return team

    def rename_team(self, team_id: int, name: str) -> Team:
        clean_name = self._clean_name(name)
        with self._mutate() as draft:
            team = self._require_team(draft, team_id)
            self._check_unique_name(draft, clean_name, team_id=team.id)
            old_name, team.name = team.name, clean_name

        logger.info(f"Renamed team {team.id}: {old_name} -> {team.name}")
        return team

    def delete_team(self, team_id: int) -> None:
        """Removes a team and every match it played, reversing those matches first.

        Deleting the title holder leaves the title vacant.
        """
        with self._mutate() as draft:
            team = self._require_team(draft, team_id)
            was_holder = draft.current_holder == team.id

            played = [m for m in draft.matches if m.involves(team.id)]
            for match in reversed(played):
                settlement.reverse_match(draft, match)

            draft.matches = [m for m in draft.matches if not m.involves(team.id)]
            draft.teams = [t for t in draft.teams if t.id != team.id]

            if was_holder or draft.holder() is None:
                restored = draft.holder()
                if restored is not None and restored.current_reign is not None:
                    restored.current_reign.close(self._now())
                draft.set_holder(None)

        logger.info(
            f"Deleted team {team.name} (id {team.id}) and {len(played)} of its matches."
        )

    # --- Matches ---

    def record_match(
        self,
        home_id: int,
        away_id: int,
        match_date: MatchDate,
        home_score: int,
        away_score: int,
    ) -> Match:
        """Settles a new match result and appends it to the log."""
        entry = self._match_input(home_id, away_id, match_date, home_score, away_score)
        with self._mutate() as draft:
            self._check_participants(draft, entry)
            match = settlement.settle_match(draft, entry, draft.allocate_match_id())

        if match.holder_changed:
            logger.info(
                f"Match {match.id} on {match.date}: title passes from "
                f"{match.pre_match_holder} to {match.post_match_holder}."
            )
        else:
            logger.info(f"Match {match.id} on {match.date} recorded, holder unchanged.")
        return match

    def reverse_match(self, match_id: int) -> Match:
        """Undoes a match's effects on the teams and the title, keeping the record.

        The record is flagged as reversed; reversing it again is rejected.
        """
        with self._mutate() as draft:
            match = self._require_match(draft, match_id)
            if match.reversed:
                raise ValidationError(f"Match {match_id} has already been reversed")
            settlement.reverse_match(draft, match)

        logger.info(f"Reversed match {match.id}.")
        return match

    def delete_match(self, match_id: int) -> None:
        with self._mutate() as draft:
            match = self._require_match(draft, match_id)
            settlement.reverse_match(draft, match)
            draft.matches = [m for m in draft.matches if m.id != match.id]

        logger.info(f"Deleted match {match.id}.")

    def edit_match(
        self,
        match_id: int,
        home_id: int,
        away_id: int,
        match_date: MatchDate,
        home_score: int,
        away_score: int,
    ) -> Match:
        """Replaces a match's details.

        The old result is reversed (unless that already happened) and the new
        one settled against the current holder, so the edited match moves to
        the end of the settlement order while keeping its id.
        """
        entry = self._match_input(home_id, away_id, match_date, home_score, away_score)
        with self._mutate() as draft:
            existing = self._require_match(draft, match_id)
            settlement.reverse_match(draft, existing)
            draft.matches = [m for m in draft.matches if m.id != existing.id]
            self._check_participants(draft, entry)
            match = settlement.settle_match(draft, entry, existing.id)

        logger.info(f"Edited match {match.id}.")
        return match

    def reset(self) -> None:
        """Discards every team and match."""
        self._commit(Ledger())
        logger.warning("Ledger reset, all teams and matches removed.")

    # --- Queries ---

    def get_team(self, team_id: int) -> Team:
        return self._require_team(self._ledger, team_id)

    def get_match(self, match_id: int) -> Match:
        return self._require_match(self._ledger, match_id)

    def find_team_by_name(self, name: str) -> Optional[Team]:
        return self._ledger.find_team_by_name(name)

    def holder(self) -> Optional[Team]:
        return self._ledger.holder()

    def holder_days(self, as_of: Optional[datetime] = None) -> int:
        """Whole days the current holder has held the title, 0 when vacant."""
        holder = self.holder()
        if holder is None or holder.current_reign is None:
            return 0
        return holder.current_reign.days_held(as_of or self._now())

    def matches_by_date(self, limit: Optional[int] = None) -> List[Match]:
        """Matches newest first by match date; ties keep the later-recorded one first."""
        ordered = sorted(
            reversed(self._ledger.matches), key=lambda m: m.date, reverse=True
        )
        return ordered[:limit] if limit is not None else ordered
