from datetime import date, datetime, timezone

import pytest

from title_ledger.engine.settlement import determine_winner, outcome_for
from title_ledger.models.enums import MatchOutcome
from title_ledger.models.match import Match

from conftest import D1, D2, D3, assert_ledger_invariants


@pytest.mark.parametrize(
    "home_score, away_score, incumbent, expected",
    [
        (3, 1, None, 1),
        (0, 2, 1, 2),
        (2, 2, 1, 1),
        (2, 2, 7, 7),
        (0, 0, None, None),
    ],
)
def test_determine_winner(home_score, away_score, incumbent, expected):
    assert determine_winner(1, 2, home_score, away_score, incumbent) == expected


def test_outcome_for_non_participant_incumbent_is_a_draw():
    match = Match(
        id=1, home_id=2, away_id=3, date=D1, home_score=1, away_score=1,
        winner_id=1, pre_match_holder=1, post_match_holder=1,
    )
    assert outcome_for(2, match) == MatchOutcome.DRAW
    assert outcome_for(3, match) == MatchOutcome.DRAW


def test_holder_defends_title(engine, two_teams):
    match = engine.record_match(1, 2, D1, 3, 1)

    assert match.winner_id == 1
    assert match.pre_match_holder == 1
    assert match.post_match_holder == 1
    a, b = engine.get_team(1), engine.get_team(2)
    assert a.wins == 1 and a.losses == 0
    assert b.wins == 0 and b.losses == 1
    assert a.streaks.current.token == "W1"
    assert b.streaks.current.token == "L1"
    assert engine.ledger.current_holder == 1
    assert len(a.reigns) == 1 and a.reigns[0].end is None
    assert_ledger_invariants(engine.ledger)


def test_challenger_takes_title(engine, two_teams):
    engine.record_match(1, 2, D1, 3, 1)
    match = engine.record_match(2, 1, D2, 2, 0)

    assert match.winner_id == 2
    assert match.holder_changed
    ledger = engine.ledger
    a, b = engine.get_team(1), engine.get_team(2)
    assert ledger.current_holder == 2
    assert b.is_holder and not a.is_holder

    # A took the title on 2024-01-01 12:00 and lost it at midnight on 2024-02-09
    closed = a.reigns[-1]
    assert closed.end == datetime(2024, 2, 9, tzinfo=timezone.utc)
    assert closed.days == 39

    assert len(b.reigns) == 1
    assert b.reigns[0].start == datetime(2024, 2, 9, tzinfo=timezone.utc)
    assert b.reigns[0].end is None and b.reigns[0].days == 0
    assert b.wins == 1 and a.losses == 1
    assert a.streaks.current.token == "L1"
    assert a.streaks.longest_win == 1
    assert_ledger_invariants(ledger)


def test_tie_goes_to_the_incumbent(engine, two_teams):
    match = engine.record_match(1, 2, D3, 2, 2)

    assert match.is_draw
    assert match.winner_id == 1
    assert match.post_match_holder == 1
    assert engine.get_team(1).wins == 1
    assert engine.get_team(2).losses == 1
    assert engine.ledger.current_holder == 1


def test_tie_without_incumbent_leaves_title_vacant(engine):
    engine.create_team("Team A")
    engine.create_team("Team B")
    engine.record_match(1, 2, D1, 1, 0)
    engine.delete_team(1)
    engine.create_team("Team C")

    match = engine.record_match(2, 3, D2, 1, 1)

    assert match.winner_id is None
    assert match.post_match_holder is None
    ledger = engine.ledger
    assert ledger.current_holder is None
    b, c = engine.get_team(2), engine.get_team(3)
    assert (b.wins, b.losses, c.wins, c.losses) == (0, 0, 0, 0)
    assert b.streaks.current.token == ""
    assert c.streaks.current.token == ""
    assert_ledger_invariants(ledger)


def test_first_decisive_match_crowns_a_holder(engine):
    engine.create_team("Team A")
    engine.create_team("Team B")

    match = engine.record_match(1, 2, D1, 0, 1)

    assert match.pre_match_holder is None
    assert match.post_match_holder == 2
    b = engine.get_team(2)
    assert b.is_holder
    assert [r.start.date() for r in b.reigns] == [D1]
    assert engine.get_team(1).reigns == []


def test_tie_kept_by_non_participant_does_not_touch_records(engine, two_teams):
    engine.create_team("Team C")

    match = engine.record_match(2, 3, D1, 1, 1)

    assert match.winner_id == 1
    assert not match.winner_is_participant()
    a, b, c = (engine.get_team(i) for i in (1, 2, 3))
    assert (a.wins, a.losses) == (0, 0)
    assert (b.wins, b.losses, c.wins, c.losses) == (0, 0, 0, 0)
    assert engine.ledger.current_holder == 1


def test_back_dated_matches_settle_in_recording_order(engine, two_teams):
    # A holds from 2024-01-01 12:00; both matches are dated before that
    taken = engine.record_match(2, 1, date(2023, 12, 20), 1, 0)
    retaken = engine.record_match(1, 2, date(2023, 12, 10), 1, 0)

    ledger = engine.ledger
    assert taken.pre_match_holder == 1 and taken.post_match_holder == 2
    assert retaken.pre_match_holder == 2 and retaken.post_match_holder == 1
    # The later-recorded match decides the holder, whatever its date
    assert ledger.current_holder == 1

    a, b = engine.get_team(1), engine.get_team(2)
    assert a.reigns[0].end == datetime(2023, 12, 20, tzinfo=timezone.utc)
    assert a.reigns[0].days == 0
    assert b.reigns[0].end == datetime(2023, 12, 10, tzinfo=timezone.utc)
    assert b.reigns[0].days == 0
    assert a.current_reign.start == datetime(2023, 12, 10, tzinfo=timezone.utc)
    assert [m.id for m in engine.matches_by_date()] == [taken.id, retaken.id]
    # Reigns follow recording order, so their dates run backwards here
    assert_ledger_invariants(ledger, chronological=False)


def test_title_passes_around_keeps_invariants(engine, two_teams):
    engine.create_team("Team C")
    results = [
        (1, 2, 1, 0),
        (2, 1, 3, 2),
        (3, 2, 1, 1),
        (3, 2, 4, 0),
        (1, 3, 2, 2),
        (1, 3, 5, 1),
    ]
    for day, (home, away, hs, as_) in enumerate(results, start=1):
        engine.record_match(home, away, datetime(2024, 4, day).date(), hs, as_)
        ledger = engine.ledger
        assert ledger.current_holder == ledger.matches[-1].post_match_holder
        assert_ledger_invariants(ledger)

    a = engine.get_team(1)
    assert a.is_holder
    assert len(a.reigns) == 2
    assert a.streaks.longest_win == 1
    assert engine.get_team(3).reigns[0].days == 2
