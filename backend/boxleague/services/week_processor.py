"""
Week Processor: closes a fully scored week and opens the next one.

Status flow per week: upcoming -> in_progress (first score) -> completed
(processed). Processing ranks every box, applies promotion and relegation,
rolls week stats into career stats, renumbers the ladder and generates the
following week. The whole transition is a single batch.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from boxleague.errors import IncompleteWeek, LeagueNotFound, WeekAlreadyProcessed, WeekNotFound
from boxleague.ledger import Ledger
from boxleague.models.league import League
from boxleague.models.match import MATCH_COMPLETED
from boxleague.models.player import BoxPlayer
from boxleague.models.week import WEEK_COMPLETED, WEEK_UPCOMING, BoxWeek
from boxleague.services.match_generator import MatchGenerator
from boxleague.services.roster_manager import RosterManager, box_assignments_from_players
from boxleague.services.standings import Standing, calculate_box_standings

logger = logging.getLogger(__name__)

PROMOTION = "promotion"
RELEGATION = "relegation"
STAYED = "stayed"

WEEK_LENGTH = timedelta(days=7)


@dataclass
class PlayerMovement:
    player_id: int
    player_name: str
    from_box: int
    to_box: int
    from_position: int
    new_position: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessResult:
    league_id: int
    week_number: int
    standings: List[Standing] = field(default_factory=list)
    movements: List[PlayerMovement] = field(default_factory=list)
    next_week_number: Optional[int] = None
    next_week_matches: int = 0


def format_movements(movements: List[PlayerMovement]) -> str:
    """Human readable promotion/relegation report; players who stayed are omitted."""
    lines: List[str] = []
    promotions = [m for m in movements if m.reason == PROMOTION]
    relegations = [m for m in movements if m.reason == RELEGATION]
    if promotions:
        lines.append("Promotions:")
        lines.extend(f"  {m.player_name}: Box {m.from_box} -> Box {m.to_box}" for m in promotions)
    if relegations:
        lines.append("Relegations:")
        lines.extend(f"  {m.player_name}: Box {m.from_box} -> Box {m.to_box}" for m in relegations)
    return "\n".join(lines)


def movement_summary(movements: List[PlayerMovement]) -> Dict[str, int]:
    return {
        "promotions": sum(1 for m in movements if m.reason == PROMOTION),
        "relegations": sum(1 for m in movements if m.reason == RELEGATION),
        "stayed": sum(1 for m in movements if m.reason == STAYED),
    }


def _placement_key(group: int, standing: Standing) -> Tuple[int, int, int]:
    # group 0: relegated in from above, 1: stayed, 2: promoted in from below
    return group, standing.box_number, standing.rank


class WeekProcessor:
    def __init__(
        self,
        ledger: Ledger,
        generator: Optional[MatchGenerator] = None,
        roster: Optional[RosterManager] = None,
    ):
        self.ledger = ledger
        self.generator = generator or MatchGenerator(ledger)
        self.roster = roster or RosterManager(ledger)

    def get_week(self, league_id: int, week_number: int) -> BoxWeek:
        week = self.ledger.first(BoxWeek, BoxWeek.league_id == league_id, BoxWeek.week_number == week_number)
        if week is None:
            raise WeekNotFound(week_number, f"Week {week_number} not found for league {league_id}")
        return week

    def get_weeks(self, league_id: int) -> List[BoxWeek]:
        return self.ledger.query(BoxWeek, BoxWeek.league_id == league_id, order_by=BoxWeek.week_number)

    def preview_standings(self, league_id: int, week_number: int) -> List[Standing]:
        """Current standings for a week without changing anything."""
        league = self.ledger.get_or_raise(League, league_id, LeagueNotFound)
        self.get_week(league_id, week_number)
        return self._standings(league, week_number, self.roster.get_players(league_id))

    def _standings(self, league: League, week_number: int, players: List[BoxPlayer]) -> List[Standing]:
        matches = self.generator.get_matches_for_week(league.id, week_number)
        box_numbers = sorted({p.current_box_number for p in players if p.current_box_number > 0})
        if not box_numbers:
            return []
        top_box, bottom_box = box_numbers[0], box_numbers[-1]

        standings: List[Standing] = []
        for box_number in box_numbers:
            standings.extend(
                calculate_box_standings(
                    box_number,
                    players,
                    matches,
                    tiebreakers=league.tiebreakers,
                    promotion_count=league.promotion_count,
                    relegation_count=league.relegation_count,
                    is_top_box=box_number == top_box,
                    is_bottom_box=box_number == bottom_box,
                )
            )
        return standings

    def process_week(self, league_id: int, week_number: int, processed_by: str) -> ProcessResult:
        """
        Close week_number and create week_number + 1.

        Raises:
            LeagueNotFound / WeekNotFound
            WeekAlreadyProcessed: the week is already completed
            IncompleteWeek: some of the week's matches have no score yet
        """
        league = self.ledger.get_or_raise(League, league_id, LeagueNotFound)

        with self.ledger.batch():
            week = self.ledger.first(
                BoxWeek, BoxWeek.league_id == league_id, BoxWeek.week_number == week_number, for_update=True
            )
            if week is None:
                raise WeekNotFound(week_number, f"Week {week_number} not found for league {league_id}")
            if week.status == WEEK_COMPLETED:
                raise WeekAlreadyProcessed(f"Week {week_number} of league {league_id} has already been processed")

            matches = self.generator.get_matches_for_week(league_id, week_number)
            outstanding = [m for m in matches if m.status != MATCH_COMPLETED]
            if outstanding:
                raise IncompleteWeek(week_number, len(outstanding))

            players = self.roster.get_players(league_id)
            by_id: Dict[int, BoxPlayer] = {p.id: p for p in players}
            standings = self._standings(league, week_number, players)

            # Promotion / relegation
            new_boxes: Dict[int, List[Tuple[Tuple[int, int, int], BoxPlayer]]] = {}
            movements: List[PlayerMovement] = []
            for row in standings:
                player = by_id[row.player_id]
                if row.will_promote:
                    to_box, group, reason = row.box_number - 1, 2, PROMOTION
                    player.total_promotion_count += 1
                elif row.will_relegate:
                    to_box, group, reason = row.box_number + 1, 0, RELEGATION
                    player.total_relegation_count += 1
                else:
                    to_box, group, reason = row.box_number, 1, STAYED
                new_boxes.setdefault(to_box, []).append((_placement_key(group, row), player))
                movements.append(
                    PlayerMovement(
                        player_id=player.id,
                        player_name=player.display_name,
                        from_box=row.box_number,
                        to_box=to_box,
                        from_position=player.position_in_box,
                        new_position=0,
                        reason=reason,
                    )
                )

            for box_number, entries in new_boxes.items():
                entries.sort(key=lambda entry: entry[0])
                for index, (_, player) in enumerate(entries):
                    player.current_box_number = box_number
                    player.position_in_box = index + 1

            # Roll the week into career stats
            for player in players:
                player.total_weeks_played += 1
                if player.week_had_bye:
                    player.total_bye_count += 1
                player.reset_week_stats()
                self.ledger.update(player)

            now = datetime.utcnow()
            self.ledger.update(
                week,
                status=WEEK_COMPLETED,
                standings=[row.to_dict() for row in standings],
                processed_at=now,
                processed_by=processed_by,
            )

            self.roster.apply_ladder(players)
            for movement in movements:
                movement.new_position = by_id[movement.player_id].position_in_box
            self.ledger.update(week, movements=[m.to_dict() for m in movements])

            # Next week
            next_number = week_number + 1
            start_date = week.week_start_date + WEEK_LENGTH if week.week_start_date else now
            next_matches = self.open_week(league, next_number, players, start_date)

        logger.info(
            "Processed league %s week %s by %s: %s",
            league_id,
            week_number,
            processed_by,
            movement_summary(movements),
        )
        return ProcessResult(
            league_id=league_id,
            week_number=week_number,
            standings=standings,
            movements=movements,
            next_week_number=next_number,
            next_week_matches=next_matches,
        )

    def open_week(self, league: League, week_number: int, players: List[BoxPlayer], start_date: datetime) -> int:
        """
        Generate a week's matches from the current rosters and write its week
        row as upcoming. Returns the number of matches. Joins the caller's batch.
        """
        assignments = box_assignments_from_players(players)
        with self.ledger.batch():
            matches = self.generator.generate_week(
                league.id, week_number, assignments, players, league.box_size, scheduled_date=start_date
            )
            existing = self.ledger.first(
                BoxWeek, BoxWeek.league_id == league.id, BoxWeek.week_number == week_number
            )
            fields = dict(
                status=WEEK_UPCOMING,
                week_start_date=start_date,
                box_assignments=[a.to_dict() for a in assignments],
                match_ids=[m.id for m in matches],
                total_matches=len(matches),
                completed_matches=sum(1 for m in matches if m.status == MATCH_COMPLETED),
            )
            if existing is not None:
                # never move an existing week's status backwards
                fields.pop("status")
                logger.warning("Week %s already exists for league %s - refreshing it", week_number, league.id)
                self.ledger.update(existing, **fields)
            else:
                self.ledger.add(BoxWeek(league_id=league.id, week_number=week_number, **fields))
        return len(matches)
