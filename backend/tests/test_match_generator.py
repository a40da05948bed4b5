"""
Tests for weekly match generation.
"""

from collections import Counter

from sqlmodel import select

from boxleague.models.league import SeedingMethod
from boxleague.models.match import MATCH_COMPLETED, MATCH_SCHEDULED, BoxMatch
from boxleague.models.player import BoxPlayer
from boxleague.services.match_generator import MatchGenerator, build_box_matches, pattern_for_box
from boxleague.services.roster_manager import BoxAssignment, RosterManager


def _seed(ledger, make_league, make_players, ratings, box_size):
    league = make_league(box_size=box_size)
    players = make_players(league, ratings)
    assignments = RosterManager(ledger).seed(players, SeedingMethod.rating, box_size)
    return league, players, assignments


def test_pattern_for_box_prefers_actual_size():
    assert pattern_for_box(4, 5).box_size == 4
    assert pattern_for_box(6, 5).box_size == 6
    assert pattern_for_box(7, 5).box_size == 5


def test_build_box_matches_skips_small_box():
    players = [BoxPlayer(id=i, league_id=1, display_name=f"P{i}") for i in range(1, 4)]
    assert build_box_matches(1, 1, 3, players, 4) == []


def test_build_box_matches_five_player_box():
    players = [BoxPlayer(id=i, league_id=1, display_name=f"P{i}") for i in range(1, 6)]
    matches = build_box_matches(7, 2, 1, players, 5)

    assert [m.id for m in matches] == [f"7_w2_b1_m{n}" for n in range(1, 6)]
    assert matches[0].team1_player_ids == [1, 2]
    assert matches[0].team2_player_ids == [3, 4]
    assert matches[0].bye_player_ids == [5]
    assert matches[0].team1_player1_name == "P1"

    plays = Counter(pid for m in matches for pid in m.player_ids)
    byes = Counter(pid for m in matches for pid in m.bye_player_ids)
    assert set(plays.values()) == {4}
    assert set(byes.values()) == {1}


def test_generate_week_for_every_box(ledger, session, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(10)], 5)

    matches = MatchGenerator(ledger).generate_week(league.id, 1, assignments, players, 5)

    assert len(matches) == 10
    assert all(m.status == MATCH_SCHEDULED for m in matches)
    assert [(m.box_number, m.match_number_in_box) for m in matches][:3] == [(1, 1), (1, 2), (1, 3)]
    stored = session.exec(select(BoxMatch)).all()
    assert len(stored) == 10
    # every player of a 5-box sits out exactly one match
    assert all(p.week_had_bye for p in players)


def test_four_player_boxes_have_no_byes(ledger, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(8)], 4)

    matches = MatchGenerator(ledger).generate_week(league.id, 1, assignments, players, 4)

    assert len(matches) == 6
    assert all(m.bye_player_ids == [] for m in matches)
    assert not any(p.week_had_bye for p in players)


def test_small_trailing_box_is_skipped(ledger, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(11)], 5)
    assert len(assignments[-1].player_ids) == 1

    matches = MatchGenerator(ledger).generate_week(league.id, 1, assignments, players, 5)

    assert len(matches) == 10
    assert {m.box_number for m in matches} == {1, 2}


def test_box_of_four_in_five_league_uses_four_pattern(ledger, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(9)], 5)

    matches = MatchGenerator(ledger).generate_week(league.id, 1, assignments, players, 5)

    assert len([m for m in matches if m.box_number == 1]) == 5
    assert len([m for m in matches if m.box_number == 2]) == 3


def test_regenerating_a_week_upserts(ledger, session, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(8)], 4)
    generator = MatchGenerator(ledger)

    generator.generate_week(league.id, 1, assignments, players, 4)
    generator.generate_week(league.id, 1, assignments, players, 4)

    assert len(session.exec(select(BoxMatch)).all()) == 6


def test_regenerating_keeps_completed_scores(ledger, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(4)], 4)
    generator = MatchGenerator(ledger)
    first = generator.generate_week(league.id, 1, assignments, players, 4)[0]
    with ledger.batch():
        ledger.update(first, status=MATCH_COMPLETED, team1_score=11, team2_score=4, winning_team=1)

    generator.generate_week(league.id, 1, assignments, players, 4)

    stored = generator.get_match(first.id)
    assert stored.status == MATCH_COMPLETED
    assert stored.team1_score == 11


def test_unknown_player_ids_are_dropped(ledger, make_league, make_players):
    league = make_league(box_size=4)
    players = make_players(league, [1, 2, 3, 4])
    assignment = BoxAssignment(box_number=1, player_ids=[p.id for p in players] + [999])

    matches = MatchGenerator(ledger).generate_week(league.id, 1, [assignment], players, 4)

    assert len(matches) == 3


def test_readers(ledger, make_league, make_players):
    league, players, assignments = _seed(ledger, make_league, make_players, [100 - i for i in range(8)], 4)
    generator = MatchGenerator(ledger)
    generator.generate_week(league.id, 1, assignments, players, 4)

    assert len(generator.get_matches_for_week(league.id, 1)) == 6
    box_two = generator.get_matches_for_box(league.id, 1, 2)
    assert [m.match_number_in_box for m in box_two] == [1, 2, 3]
    assert generator.get_matches_for_week(league.id, 2) == []
