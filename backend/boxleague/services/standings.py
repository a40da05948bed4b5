"""
Box standings: pure ranking of one box for one week.

Rows come from each player's week stats and are ordered by the league's
tiebreaker chain, each criterion only consulted when every earlier one ties.
The sort is stable: players still level after the whole chain keep the order
they were passed in (box order when called by the week processor).
"""

from dataclasses import asdict, dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from boxleague.models.league import DEFAULT_TIEBREAKERS, Tiebreaker
from boxleague.models.match import MATCH_COMPLETED, BoxMatch
from boxleague.models.player import BoxPlayer


@dataclass
class Standing:
    player_id: int
    player_name: str
    box_number: int
    rank: int = 0
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    points_for: int = 0
    points_against: int = 0
    points_diff: int = 0
    had_bye: bool = False
    will_promote: bool = False
    will_relegate: bool = False
    will_stay: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_player(cls, player: BoxPlayer, box_number: int) -> "Standing":
        return cls(
            player_id=player.id,
            player_name=player.display_name,
            box_number=box_number,
            matches_played=player.week_matches_played or 0,
            matches_won=player.week_matches_won or 0,
            matches_lost=player.week_matches_lost or 0,
            points_for=player.week_points_for or 0,
            points_against=player.week_points_against or 0,
            points_diff=(player.week_points_for or 0) - (player.week_points_against or 0),
            had_bye=bool(player.week_had_bye),
        )


def head_to_head(player_a_id: int, player_b_id: int, matches: Iterable[BoxMatch]) -> int:
    """
    Compare two players on direct results.

    Counts completed matches in which they were on opposite teams.
    Returns negative if A beat B more often, positive if B beat A more often,
    0 if they never met or split their meetings.
    """
    a_wins = 0
    b_wins = 0
    for match in matches:
        if match.status != MATCH_COMPLETED or match.winning_team not in (1, 2):
            continue
        team1 = match.team1_player_ids
        team2 = match.team2_player_ids
        if player_a_id in team1 and player_b_id in team2:
            a_team = 1
        elif player_a_id in team2 and player_b_id in team1:
            a_team = 2
        else:
            continue
        if match.winning_team == a_team:
            a_wins += 1
        else:
            b_wins += 1
    return b_wins - a_wins


def _criterion(tiebreaker: str, matches: Sequence[BoxMatch]) -> Callable[[Standing, Standing], int]:
    try:
        tiebreaker = Tiebreaker(tiebreaker)
    except ValueError:
        raise ValueError(f"Unknown tiebreaker: {tiebreaker}") from None

    criteria: Dict[Tiebreaker, Callable[[Standing, Standing], int]] = {
        Tiebreaker.wins: lambda a, b: b.matches_won - a.matches_won,
        Tiebreaker.head_to_head: lambda a, b: head_to_head(a.player_id, b.player_id, matches),
        Tiebreaker.points_diff: lambda a, b: b.points_diff - a.points_diff,
        Tiebreaker.points_for: lambda a, b: b.points_for - a.points_for,
        # fewer conceded ranks higher
        Tiebreaker.points_against: lambda a, b: a.points_against - b.points_against,
    }
    return criteria[tiebreaker]


def standings_comparator(
    tiebreakers: Sequence[str], matches: Sequence[BoxMatch]
) -> Callable[[Standing, Standing], int]:
    """cmp-style comparator: negative when a ranks above b, 0 when tied on every criterion."""
    criteria = [_criterion(t, matches) for t in tiebreakers]

    def compare(a: Standing, b: Standing) -> int:
        for criterion in criteria:
            diff = criterion(a, b)
            if diff != 0:
                return diff
        return 0

    return compare


def calculate_box_standings(
    box_number: int,
    players: Iterable[BoxPlayer],
    matches: Iterable[BoxMatch],
    tiebreakers: Optional[Sequence[str]] = None,
    promotion_count: int = 1,
    relegation_count: int = 1,
    is_top_box: bool = False,
    is_bottom_box: bool = False,
) -> List[Standing]:
    """
    Rank the players of one box and flag who moves.

    Top promotion_count ranks promote unless this is the top box; bottom
    relegation_count ranks relegate unless this is the bottom box. A player
    in a promotion slot is never also relegated. Everyone else stays.
    """
    chain = list(tiebreakers) if tiebreakers else list(DEFAULT_TIEBREAKERS)
    box_matches = [m for m in matches if m.box_number == box_number]
    rows = [Standing.from_player(p, box_number) for p in players if p.current_box_number == box_number]

    rows.sort(key=cmp_to_key(standings_comparator(chain, box_matches)))

    count = len(rows)
    for index, row in enumerate(rows):
        row.rank = index + 1
        if not is_top_box and index < promotion_count:
            row.will_promote = True
        elif not is_bottom_box and index >= count - relegation_count:
            row.will_relegate = True
        else:
            row.will_stay = True
    return rows
