"""
Tests for box standings and the tiebreaker chain.
"""

import random

import pytest

from boxleague.models.match import MATCH_COMPLETED, MATCH_SCHEDULED, BoxMatch
from boxleague.models.player import BoxPlayer
from boxleague.services.standings import calculate_box_standings, head_to_head, standings_comparator


def _player(pid, box=1, won=0, lost=0, pf=0, pa=0, bye=False):
    return BoxPlayer(
        id=pid,
        league_id=1,
        display_name=f"P{pid}",
        current_box_number=box,
        position_in_box=pid,
        week_matches_played=won + lost,
        week_matches_won=won,
        week_matches_lost=lost,
        week_points_for=pf,
        week_points_against=pa,
        week_points_diff=pf - pa,
        week_had_bye=bye,
    )


def _match(n, team1, team2, winner, box=1, status=MATCH_COMPLETED):
    return BoxMatch(
        id=f"1_w1_b{box}_m{n}",
        league_id=1,
        week_number=1,
        box_number=box,
        match_number_in_box=n,
        team1_player1_id=team1[0],
        team1_player1_name=f"P{team1[0]}",
        team1_player2_id=team1[1],
        team1_player2_name=f"P{team1[1]}",
        team2_player1_id=team2[0],
        team2_player1_name=f"P{team2[0]}",
        team2_player2_id=team2[1],
        team2_player2_name=f"P{team2[1]}",
        status=status,
        winning_team=winner if status == MATCH_COMPLETED else None,
    )


def _ids(rows):
    return [row.player_id for row in rows]


def test_wins_rank_first():
    players = [_player(1, won=1, lost=2), _player(2, won=3), _player(3, won=2, lost=1)]
    rows = calculate_box_standings(1, players, [])
    assert _ids(rows) == [2, 3, 1]
    assert [row.rank for row in rows] == [1, 2, 3]


def test_head_to_head_breaks_win_tie_before_points_diff():
    players = [_player(1, won=2, pf=40, pa=20), _player(2, won=2, pf=30, pa=28)]
    # P2 beat P1 directly even though P1 has the better points diff
    matches = [_match(1, (2, 3), (1, 4), winner=1)]
    rows = calculate_box_standings(1, players, matches)
    assert _ids(rows) == [2, 1]


def test_head_to_head_ignores_partners_and_unplayed_matches():
    matches = [
        _match(1, (1, 2), (3, 4), winner=1),
        _match(2, (1, 3), (2, 4), winner=2, status=MATCH_SCHEDULED),
    ]
    assert head_to_head(1, 2, matches) == 0
    assert head_to_head(1, 3, matches) == -1
    assert head_to_head(3, 1, matches) == 1


def test_points_chain_after_head_to_head():
    players = [
        _player(1, won=1, pf=20, pa=20),
        _player(2, won=1, pf=25, pa=20),
        _player(3, won=1, pf=30, pa=25),
        _player(4, won=1, pf=30, pa=22),
    ]
    rows = calculate_box_standings(1, players, [])
    # diff: P4 +8, P2 +5 / P3 +5 -> P3 more points for, P1 0
    assert _ids(rows) == [4, 3, 2, 1]


def test_points_against_is_last_resort():
    players = [_player(1, won=1, pf=20, pa=18), _player(2, won=1, pf=18, pa=16)]
    rows = calculate_box_standings(1, players, [], tiebreakers=["wins", "points_against"])
    assert _ids(rows) == [2, 1]


def test_unresolved_ties_keep_input_order():
    players = [_player(pid, won=1, pf=11, pa=9) for pid in (5, 3, 4)]
    rows = calculate_box_standings(1, players, [])
    assert _ids(rows) == [5, 3, 4]


def test_standings_are_deterministic_for_any_input_order():
    players = [_player(pid, won=pid % 3, pf=10 + pid, pa=pid) for pid in range(1, 7)]
    expected = _ids(calculate_box_standings(1, players, []))
    for seed in range(5):
        shuffled = list(players)
        random.Random(seed).shuffle(shuffled)
        assert _ids(calculate_box_standings(1, shuffled, [])) == expected


def test_only_the_requested_box_is_ranked():
    players = [_player(1, box=1), _player(2, box=2), _player(3, box=1)]
    assert _ids(calculate_box_standings(1, players, [])) == [1, 3]


def test_middle_box_promotes_and_relegates():
    players = [_player(pid, won=5 - pid) for pid in range(1, 6)]
    rows = calculate_box_standings(1, players, [], promotion_count=1, relegation_count=2)
    assert [r.will_promote for r in rows] == [True, False, False, False, False]
    assert [r.will_relegate for r in rows] == [False, False, False, True, True]
    assert [r.will_stay for r in rows] == [False, True, True, False, False]


def test_top_box_never_promotes_and_bottom_box_never_relegates():
    players = [_player(pid, won=5 - pid) for pid in range(1, 5)]
    top = calculate_box_standings(1, players, [], is_top_box=True)
    assert not any(r.will_promote for r in top)
    assert top[-1].will_relegate

    bottom = calculate_box_standings(1, players, [], is_bottom_box=True)
    assert not any(r.will_relegate for r in bottom)
    assert bottom[0].will_promote

    single = calculate_box_standings(1, players, [], is_top_box=True, is_bottom_box=True)
    assert all(r.will_stay for r in single)


def test_promotion_slot_is_never_also_relegated():
    players = [_player(pid) for pid in range(1, 5)]
    rows = calculate_box_standings(1, players, [], promotion_count=2, relegation_count=2)
    assert all(r.will_promote != r.will_relegate for r in rows)


def test_standing_carries_bye_flag():
    rows = calculate_box_standings(1, [_player(1, bye=True)], [])
    assert rows[0].had_bye is True
    assert rows[0].to_dict()["had_bye"] is True


def test_unknown_tiebreaker():
    with pytest.raises(ValueError, match="Unknown tiebreaker"):
        standings_comparator(["coin_flip"], [])
