"""
League Schedule: creating a league and starting its first week.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from boxleague.errors import InvalidRoster, InvalidSettings, LeagueNotFound, WeekExists
from boxleague.ledger import Ledger
from boxleague.models.league import DEFAULT_TIEBREAKERS, League, SeedingMethod, Tiebreaker
from boxleague.models.week import BoxWeek
from boxleague.services.box_patterns import MIN_BOX_SIZE, supported_box_sizes
from boxleague.services.roster_manager import BoxAssignment, RosterManager
from boxleague.services.week_processor import WeekProcessor

logger = logging.getLogger(__name__)

SUPPORTED_GAMES_TO = (11, 15, 21)
SUPPORTED_WIN_BY = (1, 2)


@dataclass
class ScheduleResult:
    league_id: int
    week_number: int
    assignments: List[BoxAssignment] = field(default_factory=list)
    total_matches: int = 0


def validate_league_settings(
    box_size: int,
    games_to: int,
    win_by: int,
    promotion_count: int,
    relegation_count: int,
    tiebreakers: Sequence[str],
) -> None:
    if box_size not in supported_box_sizes():
        raise InvalidSettings(f"box_size must be one of {supported_box_sizes()}, got {box_size}")
    if games_to not in SUPPORTED_GAMES_TO:
        raise InvalidSettings(f"games_to must be one of {list(SUPPORTED_GAMES_TO)}, got {games_to}")
    if win_by not in SUPPORTED_WIN_BY:
        raise InvalidSettings(f"win_by must be one of {list(SUPPORTED_WIN_BY)}, got {win_by}")
    for name, count in (("promotion_count", promotion_count), ("relegation_count", relegation_count)):
        if count not in (1, 2):
            raise InvalidSettings(f"{name} must be 1 or 2, got {count}")
    # Promotion and relegation slots must not overlap in the smallest playable box
    if promotion_count + relegation_count > MIN_BOX_SIZE:
        raise InvalidSettings("promotion_count + relegation_count cannot exceed the minimum box size")
    valid = {t.value for t in Tiebreaker}
    unknown = [t for t in tiebreakers if t not in valid]
    if unknown:
        raise InvalidSettings(f"Unknown tiebreakers: {unknown}")
    if len(set(tiebreakers)) != len(tiebreakers):
        raise InvalidSettings("Tiebreakers must not repeat")


class LeagueSchedule:
    def __init__(self, ledger: Ledger, roster: Optional[RosterManager] = None, processor: Optional[WeekProcessor] = None):
        self.ledger = ledger
        self.roster = roster or RosterManager(ledger)
        self.processor = processor or WeekProcessor(ledger, roster=self.roster)

    def get_league(self, league_id: int) -> League:
        return self.ledger.get_or_raise(League, league_id, LeagueNotFound)

    def create_league(
        self,
        name: str,
        box_size: int = 5,
        games_to: int = 11,
        win_by: int = 2,
        validate_game_scores: bool = True,
        promotion_count: int = 1,
        relegation_count: int = 1,
        seeding_method: SeedingMethod = SeedingMethod.rating,
        tiebreakers: Optional[Sequence[str]] = None,
    ) -> League:
        chain = [Tiebreaker(t).value if isinstance(t, Tiebreaker) else t for t in (tiebreakers or DEFAULT_TIEBREAKERS)]
        validate_league_settings(box_size, games_to, win_by, promotion_count, relegation_count, chain)

        league = League(
            name=name,
            box_size=box_size,
            games_to=games_to,
            win_by=win_by,
            validate_game_scores=validate_game_scores,
            promotion_count=promotion_count,
            relegation_count=relegation_count,
            seeding_method=SeedingMethod(seeding_method),
            tiebreakers=chain,
        )
        with self.ledger.batch():
            self.ledger.add(league)
        self.ledger.refresh(league)
        logger.info("Created league %s (%s), box size %s", league.id, name, box_size)
        return league

    def generate_league_schedule(self, league_id: int, start_date: Optional[datetime] = None) -> ScheduleResult:
        """
        Seed every active player and create week 1 with its matches.

        Raises:
            LeagueNotFound
            WeekExists: week 1 has already been generated
            InvalidRoster: fewer than 4 active players
        """
        league = self.get_league(league_id)
        existing = self.ledger.first(BoxWeek, BoxWeek.league_id == league_id, BoxWeek.week_number == 1)
        if existing is not None:
            raise WeekExists(f"League {league_id} already has a schedule (week 1 exists)")

        players = self.roster.get_players(league_id)
        if len(players) < MIN_BOX_SIZE:
            raise InvalidRoster(f"Need at least {MIN_BOX_SIZE} active players to start a league, got {len(players)}")

        start = start_date or datetime.utcnow()
        with self.ledger.batch():
            assignments = self.roster.seed(players, league.seeding_method, league.box_size)
            total = self.processor.open_week(league, 1, players, start)

        logger.info(
            "Generated schedule for league %s: %s players, %s boxes, %s matches in week 1",
            league_id,
            len(players),
            len(assignments),
            total,
        )
        return ScheduleResult(league_id=league_id, week_number=1, assignments=assignments, total_matches=total)
