"""Settlement of match results against the ledger, and its inverse.

These functions mutate the ``Ledger`` they are given and do no I/O. The engine
calls them on a draft copy of its state and only commits the draft once it has
been saved, so a failure half way through never leaks into the live ledger.
"""

from typing import Optional

from loguru import logger

from title_ledger.models.enums import MatchOutcome, StreakKind
from title_ledger.models.ledger import Ledger
from title_ledger.models.match import Match, MatchInput
from title_ledger.models.reign import Reign, day_start
from title_ledger.models.streak import Streak
from title_ledger.models.team import Team


def determine_winner(
    home_id: int,
    away_id: int,
    home_score: int,
    away_score: int,
    incumbent: Optional[int],
) -> Optional[int]:
    """Higher score wins; a tie goes to the incumbent, or to nobody when the title is vacant."""
    if home_score > away_score:
        return home_id
    if away_score > home_score:
        return away_id
    return incumbent


def outcome_for(team_id: int, match: Match) -> MatchOutcome:
    """Result of ``match`` as seen by one of its participants."""
    if match.winner_id == team_id:
        return MatchOutcome.WIN
    if match.winner_is_participant():
        return MatchOutcome.LOSS
    # Nobody won, or a non-participant incumbent kept the title on a tie
    return MatchOutcome.DRAW


def update_streak(team: Team, outcome: MatchOutcome) -> None:
    """Extends or restarts the team's current streak and raises its watermarks."""
    streaks = team.streaks
    current = streaks.current

    if outcome == MatchOutcome.WIN:
        magnitude = current.magnitude + 1 if current.kind == StreakKind.WIN else 1
        streaks.current = Streak.win(magnitude)
        streaks.longest_win = max(streaks.longest_win, magnitude)
    elif outcome == MatchOutcome.LOSS:
        magnitude = current.magnitude + 1 if current.kind == StreakKind.LOSS else 1
        streaks.current = Streak.loss(magnitude)
        streaks.longest_loss = max(streaks.longest_loss, magnitude)
    else:
        streaks.current = Streak()

    logger.debug(
        f"Streak for {team.name}: {current.token or '-'} -> "
        f"{streaks.current.token or '-'} ({outcome.value})"
    )


def settle_match(ledger: Ledger, entry: MatchInput, match_id: int) -> Match:
    """Applies a match result to the ledger and appends the settled match.

    Participants are expected to exist and to be distinct; the engine checks
    that before calling.
    """
    pre_holder = ledger.current_holder
    winner_id = determine_winner(
        entry.home_id, entry.away_id, entry.home_score, entry.away_score, pre_holder
    )
    post_holder = winner_id if winner_id is not None else pre_holder

    match = Match(
        id=match_id,
        home_id=entry.home_id,
        away_id=entry.away_id,
        date=entry.date,
        home_score=entry.home_score,
        away_score=entry.away_score,
        winner_id=winner_id,
        pre_match_holder=pre_holder,
        post_match_holder=post_holder,
    )

    home = ledger.find_team(match.home_id)
    away = ledger.find_team(match.away_id)

    # A tie kept by a non-participant incumbent must not touch anyone's record
    if match.winner_is_participant():
        winner, loser = (home, away) if winner_id == home.id else (away, home)
        winner.wins += 1
        loser.losses += 1

    for team in (home, away):
        update_streak(team, outcome_for(team.id, match))

    if match.holder_changed:
        _transfer_title(ledger, match)

    ledger.matches.append(match)
    logger.debug(
        f"Settled match {match.id}: {home.name} {match.home_score}-{match.away_score} "
        f"{away.name}, holder {pre_holder} -> {post_holder}"
    )
    return match


def _transfer_title(ledger: Ledger, match: Match) -> None:
    changed_on = day_start(match.date)

    previous = ledger.find_team(match.pre_match_holder)
    if previous is not None and previous.current_reign is not None:
        previous.current_reign.close(changed_on)

    ledger.set_holder(match.post_match_holder)
    new_holder = ledger.find_team(match.post_match_holder)
    if new_holder is not None:
        new_holder.open_reign(Reign(start=changed_on))


def reverse_match(ledger: Ledger, match: Match) -> None:
    """Undoes the effects ``match`` had when it was settled.

    Counters are decremented exactly. Streaks are not recomputed from the log:
    both participants' current streak is reset to none and the longest-streak
    watermarks are kept. The reign history can only be rolled back while the
    match's new holder still holds the title; once a later match has moved the
    title on, the reigns are left as they are.

    A match that has already been reversed is left untouched.
    """
    if match.reversed:
        logger.debug(f"Match {match.id} already reversed, nothing to undo.")
        return
    match.reversed = True

    home = ledger.find_team(match.home_id)
    away = ledger.find_team(match.away_id)

    if match.winner_is_participant():
        winner, loser = (home, away) if match.winner_id == match.home_id else (away, home)
        if winner is not None:
            winner.wins = max(0, winner.wins - 1)
        if loser is not None:
            loser.losses = max(0, loser.losses - 1)

    for team in (home, away):
        if team is not None:
            team.streaks.current = Streak()

    if not match.holder_changed:
        return

    if ledger.current_holder != match.post_match_holder:
        logger.warning(
            f"Match {match.id} handed the title to {match.post_match_holder}, but the "
            f"holder has since moved to {ledger.current_holder}. Reign history left unchanged."
        )
        return

    new_holder = ledger.find_team(match.post_match_holder)
    if new_holder is not None and new_holder.reigns:
        new_holder.reigns.pop()

    previous = ledger.find_team(match.pre_match_holder)
    if previous is not None:
        previous.open_reign(Reign(start=day_start(match.date)))
    ledger.set_holder(previous.id if previous is not None else None)
