"""
Score Recorder: validates and applies a single match result.

A recorded score touches the match, the four players' week and career stats
and the week's completed counter. All of it is written in one batch; every
validation runs before the batch opens, and the match row is read again under
lock once it does.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from boxleague.errors import InvalidScore, LeagueNotFound, MatchAlreadyCompleted, MatchNotFound
from boxleague.ledger import Ledger
from boxleague.models.league import League
from boxleague.models.match import MATCH_COMPLETED, BoxMatch
from boxleague.models.player import BoxPlayer
from boxleague.models.week import WEEK_IN_PROGRESS, WEEK_UPCOMING, BoxWeek

logger = logging.getLogger(__name__)


@dataclass
class ScoreResult:
    match_id: str
    team1_score: int
    team2_score: int
    winning_team: int
    player_updates: List[Dict[str, Any]] = field(default_factory=list)
    already_recorded: bool = False


# =============================================================================
# Validation
# =============================================================================


def check_score_values(team1_score: Any, team2_score: Any) -> None:
    """Rules that apply to every box league score regardless of game format."""
    for score in (team1_score, team2_score):
        if isinstance(score, bool) or not isinstance(score, int):
            raise InvalidScore("Scores must be whole numbers")
    if team1_score < 0 or team2_score < 0:
        raise InvalidScore("Scores cannot be negative")
    if team1_score == team2_score:
        raise InvalidScore("Tie not permitted: a match must have a winner")


def validate_game_score(team1_score: int, team2_score: int, games_to: int, win_by: int) -> None:
    """
    Check a score is reachable in a game to games_to, win by win_by.

    Win by 2: a winner on exactly games_to needs a 2 point margin; past
    games_to (deuce) the margin must be exactly 2. Win by 1: the game ends at
    games_to, so nobody can score more.
    """
    check_score_values(team1_score, team2_score)

    high = max(team1_score, team2_score)
    low = min(team1_score, team2_score)
    margin = high - low

    if high < games_to:
        raise InvalidScore(f"Winner must reach at least {games_to} points")

    if win_by >= 2:
        if high == games_to and margin < win_by:
            raise InvalidScore(
                f"Score {high}-{low} invalid. At {games_to} points, must win by {win_by} "
                f"(e.g. {games_to}-{games_to - win_by})"
            )
        if high > games_to and margin != win_by:
            raise InvalidScore(
                f"Score {high}-{low} invalid. Past {games_to}, must win by exactly {win_by}. "
                f"Valid: {low + win_by}-{low} or {high}-{high - win_by}"
            )
    elif high > games_to:
        raise InvalidScore(f"Game should have ended at {games_to} with win-by-1")


def build_player_results(match: BoxMatch, team1_score: int, team2_score: int) -> List[Dict[str, Any]]:
    winning_team = 1 if team1_score > team2_score else 2
    results = []
    for team, ids, scored, conceded in (
        (1, match.team1_player_ids, team1_score, team2_score),
        (2, match.team2_player_ids, team2_score, team1_score),
    ):
        for player_id in ids:
            results.append(
                {
                    "player_id": player_id,
                    "player_name": match.player_name(player_id),
                    "won": team == winning_team,
                    "points_for": scored,
                    "points_against": conceded,
                }
            )
    return results


def _completed_result(match: BoxMatch, team1_score: int, team2_score: int) -> ScoreResult:
    """Identical re-entry of a completed match is a no-op; anything else is rejected."""
    if match.team1_score == team1_score and match.team2_score == team2_score:
        logger.info("Score for match %s already recorded - nothing to do", match.id)
        return ScoreResult(
            match_id=match.id,
            team1_score=match.team1_score,
            team2_score=match.team2_score,
            winning_team=match.winning_team,
            player_updates=list(match.player_results or []),
            already_recorded=True,
        )
    raise MatchAlreadyCompleted(
        f"Match {match.id} is already completed "
        f"({match.team1_score}-{match.team2_score}); scores cannot be changed"
    )


# =============================================================================
# Score Recorder
# =============================================================================


class ScoreRecorder:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def enter_score(
        self,
        match_id: str,
        team1_score: int,
        team2_score: int,
        entered_by: str,
        played_at: Optional[datetime] = None,
    ) -> ScoreResult:
        """
        Record a match score.

        Raises:
            MatchNotFound: unknown match id
            InvalidScore: malformed score, tie, or a score the league's game
                format cannot produce
            MatchAlreadyCompleted: the match already has a different score
        """
        match = self.ledger.get_or_raise(BoxMatch, match_id, MatchNotFound)
        check_score_values(team1_score, team2_score)
        if match.status == MATCH_COMPLETED:
            return _completed_result(match, team1_score, team2_score)

        league = self.ledger.get_or_raise(League, match.league_id, LeagueNotFound)
        if league.validate_game_scores:
            validate_game_score(team1_score, team2_score, league.games_to, league.win_by)

        players: Dict[int, BoxPlayer] = {}
        for player_id in match.player_ids:
            player = self.ledger.get(BoxPlayer, player_id)
            if player is None:
                raise InvalidScore(f"Match {match_id} references missing player {player_id}")
            players[player_id] = player

        week = self.ledger.first(
            BoxWeek, BoxWeek.league_id == match.league_id, BoxWeek.week_number == match.week_number
        )

        winning_team = 1 if team1_score > team2_score else 2
        results = build_player_results(match, team1_score, team2_score)
        now = datetime.utcnow()

        with self.ledger.batch():
            # Another request may have scored this match since the first read
            match = self.ledger.first(BoxMatch, BoxMatch.id == match_id, for_update=True)
            if match.status == MATCH_COMPLETED:
                return _completed_result(match, team1_score, team2_score)

            self.ledger.update(
                match,
                status=MATCH_COMPLETED,
                team1_score=team1_score,
                team2_score=team2_score,
                winning_team=winning_team,
                player_results=results,
                entered_by=entered_by,
                entered_at=now,
                played_at=played_at or now,
            )

            # Deltas are applied in SQL; other matches in the box share these players
            for result in results:
                won = 1 if result["won"] else 0
                diff = result["points_for"] - result["points_against"]
                self.ledger.increment_many(
                    BoxPlayer,
                    result["player_id"],
                    week_matches_played=1,
                    week_matches_won=won,
                    week_matches_lost=1 - won,
                    week_points_for=result["points_for"],
                    week_points_against=result["points_against"],
                    week_points_diff=diff,
                    total_matches_played=1,
                    total_matches_won=won,
                    total_matches_lost=1 - won,
                    total_points_for=result["points_for"],
                    total_points_against=result["points_against"],
                    total_points_diff=diff,
                )
                self.ledger.update(players[result["player_id"]], last_active_at=now)

            if week is None:
                logger.warning("No week %s for league %s; completed counter not updated", match.week_number, match.league_id)
            else:
                if week.status == WEEK_UPCOMING:
                    self.ledger.update(week, status=WEEK_IN_PROGRESS)
                self.ledger.increment(BoxWeek, week.id, "completed_matches")

        logger.info(
            "Recorded %s-%s for match %s (team %s wins), entered by %s",
            team1_score,
            team2_score,
            match_id,
            winning_team,
            entered_by,
        )
        return ScoreResult(
            match_id=match_id,
            team1_score=team1_score,
            team2_score=team2_score,
            winning_team=winning_team,
            player_updates=results,
        )
