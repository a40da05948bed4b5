"""
Tests for league creation and schedule bootstrap (seed + week 1).
"""

from datetime import datetime

import pytest

from boxleague.errors import InvalidRoster, InvalidSettings, LeagueNotFound, WeekExists
from boxleague.models.league import DEFAULT_TIEBREAKERS, SeedingMethod
from boxleague.models.week import WEEK_UPCOMING, BoxWeek
from boxleague.services.league_schedule import LeagueSchedule
from boxleague.services.roster_manager import RosterManager


def test_create_league_defaults(ledger):
    league = LeagueSchedule(ledger).create_league("Thursday Ladder")
    assert league.id is not None
    assert league.box_size == 5
    assert league.games_to == 11
    assert league.win_by == 2
    assert league.tiebreakers == DEFAULT_TIEBREAKERS
    assert league.seeding_method == SeedingMethod.rating


@pytest.mark.parametrize(
    "settings",
    [
        {"box_size": 7},
        {"games_to": 12},
        {"win_by": 3},
        {"promotion_count": 3},
        {"tiebreakers": ["wins", "coin_flip"]},
        {"tiebreakers": ["wins", "wins"]},
    ],
)
def test_create_league_rejects_unsupported_settings(ledger, settings):
    with pytest.raises(InvalidSettings):
        LeagueSchedule(ledger).create_league("Bad", **settings)


def test_generate_schedule_seeds_and_creates_week_one(ledger, session, make_league, make_players):
    league = make_league(box_size=5)
    make_players(league, [100 - i for i in range(10)])
    start = datetime(2026, 9, 1, 18, 30)

    result = LeagueSchedule(ledger).generate_league_schedule(league.id, start_date=start)

    assert result.week_number == 1
    assert result.total_matches == 10
    assert [len(a.player_ids) for a in result.assignments] == [5, 5]

    week = ledger.first(BoxWeek, BoxWeek.league_id == league.id, BoxWeek.week_number == 1)
    assert week.status == WEEK_UPCOMING
    assert week.week_start_date == start
    assert week.total_matches == 10
    assert len(week.box_assignments) == 2

    players = RosterManager(ledger).get_players(league.id)
    assert [p.ladder_position for p in players] == list(range(1, 11))


def test_generate_schedule_manual_seeding(ledger, make_league, session):
    from boxleague.models.player import BoxPlayer

    league = make_league(box_size=4, seeding_method=SeedingMethod.manual)
    for seed, name in [(3, "C"), (1, "A"), (4, "D"), (2, "B")]:
        session.add(BoxPlayer(league_id=league.id, display_name=name, manual_seed=seed))
    session.commit()

    result = LeagueSchedule(ledger).generate_league_schedule(league.id)

    assert result.assignments[0].player_names == ["A", "B", "C", "D"]


def test_generate_schedule_twice_rejected(ledger, make_league, make_players):
    league = make_league(box_size=4)
    make_players(league, [4, 3, 2, 1])
    schedule = LeagueSchedule(ledger)
    schedule.generate_league_schedule(league.id)

    with pytest.raises(WeekExists):
        schedule.generate_league_schedule(league.id)


def test_generate_schedule_needs_four_players(ledger, make_league, make_players):
    league = make_league(box_size=4)
    make_players(league, [3, 2, 1])
    with pytest.raises(InvalidRoster):
        LeagueSchedule(ledger).generate_league_schedule(league.id)
    assert ledger.query(BoxWeek) == []


def test_generate_schedule_unknown_league(ledger):
    with pytest.raises(LeagueNotFound):
        LeagueSchedule(ledger).generate_league_schedule(12345)
