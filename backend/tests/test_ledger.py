"""
Tests for the Ledger persistence boundary.
"""

import pytest

from boxleague.errors import LeagueNotFound
from boxleague.models.league import League
from boxleague.models.week import BoxWeek


def test_get_or_raise(ledger, make_league):
    league = make_league()
    assert ledger.get_or_raise(League, league.id, LeagueNotFound).name == "Tuesday Box League"
    with pytest.raises(LeagueNotFound, match="League 404 not found"):
        ledger.get_or_raise(League, 404, LeagueNotFound)


def test_batch_commits_together(ledger, session):
    with ledger.batch():
        ledger.add(League(name="One"))
        ledger.add(League(name="Two"))
    session.expunge_all()
    assert [league.name for league in ledger.query(League, order_by=League.name)] == ["One", "Two"]


def test_batch_rolls_back_on_error(ledger):
    with pytest.raises(RuntimeError):
        with ledger.batch():
            ledger.add(League(name="Doomed"))
            ledger.flush()
            raise RuntimeError("boom")
    assert ledger.query(League) == []


def test_nested_batch_joins_outer(ledger):
    with pytest.raises(RuntimeError):
        with ledger.batch():
            with ledger.batch():
                ledger.add(League(name="Inner"))
            raise RuntimeError("outer fails after inner finished")
    assert ledger.query(League) == []


def test_increment_is_server_side(ledger, make_league):
    league = make_league()
    with ledger.batch():
        week = ledger.add(BoxWeek(league_id=league.id, week_number=1, total_matches=3))
    week_id = week.id

    with ledger.batch():
        ledger.increment(BoxWeek, week_id, "completed_matches")
        ledger.increment(BoxWeek, week_id, "completed_matches", by=2)

    assert ledger.get(BoxWeek, week_id).completed_matches == 3


def test_update_and_set(ledger, make_league):
    league = make_league()
    with ledger.batch():
        ledger.update(league, name="Renamed", box_size=4)
    assert ledger.get(League, league.id).name == "Renamed"

    with ledger.batch():
        merged = ledger.set(League(id=league.id, name="Replaced", box_size=6))
    assert merged is ledger.get(League, league.id)
    assert ledger.get(League, league.id).box_size == 6


def test_first_with_filters(ledger, make_league):
    make_league(name="Alpha")
    make_league(name="Beta")
    assert ledger.first(League, League.name == "Beta").name == "Beta"
    assert ledger.first(League, League.name == "Gamma") is None


def test_increment_many_applies_every_delta(ledger, make_league):
    league = make_league()
    with ledger.batch():
        week = ledger.add(BoxWeek(league_id=league.id, week_number=1, total_matches=3, completed_matches=1))
    week_id = week.id

    with ledger.batch():
        ledger.increment_many(BoxWeek, week_id, completed_matches=2, total_matches=-1)

    stored = ledger.get(BoxWeek, week_id)
    assert (stored.completed_matches, stored.total_matches) == (3, 2)


def test_locked_read_refreshes_identity_map(ledger, session, make_league):
    league = make_league(name="Before")
    assert ledger.get(League, league.id).name == "Before"
    # Core statement on the table: the loaded League object is not touched
    table = League.__table__
    session.connection().execute(table.update().where(table.c.id == league.id).values(name="After"))

    assert ledger.first(League, League.id == league.id).name == "Before"
    assert ledger.first(League, League.id == league.id, for_update=True).name == "After"
