"""
Match Generator: turns box rosters into one week of rotating doubles matches.

Match ids are derived from (league, week, box, match number), so generating
the same week twice upserts the same rows instead of duplicating them.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from boxleague.errors import MatchNotFound
from boxleague.ledger import Ledger
from boxleague.models.match import MATCH_COMPLETED, MATCH_SCHEDULED, BoxMatch, box_match_id
from boxleague.models.player import BoxPlayer
from boxleague.services.box_patterns import BOX_PATTERNS, MIN_BOX_SIZE, RotatingPattern, pattern_for
from boxleague.services.roster_manager import BoxAssignment

logger = logging.getLogger(__name__)


def pattern_for_box(player_count: int, box_size: int) -> RotatingPattern:
    """Use the pattern matching the box's actual size; fall back to the league box size."""
    if player_count in BOX_PATTERNS:
        return BOX_PATTERNS[player_count]
    return pattern_for(box_size)


def build_box_matches(
    league_id: int,
    week_number: int,
    box_number: int,
    box_players: Sequence[BoxPlayer],
    box_size: int,
    scheduled_date: Optional[datetime] = None,
) -> List[BoxMatch]:
    """
    Build (but do not persist) one box's matches for a week.

    Boxes with fewer than 4 players get no matches. Pattern entries that
    reference a slot the box does not have are skipped.
    """
    if len(box_players) < MIN_BOX_SIZE:
        logger.warning(
            "Box %s in week %s has only %s players - skipping", box_number, week_number, len(box_players)
        )
        return []

    pattern = pattern_for_box(len(box_players), box_size)
    if len(box_players) > pattern.box_size:
        logger.warning(
            "Box %s has %s players but the largest usable pattern is for %s; players below slot %s sit out",
            box_number,
            len(box_players),
            pattern.box_size,
            pattern.box_size,
        )

    matches: List[BoxMatch] = []
    for index, entry in enumerate(pattern.matches):
        match_number = index + 1
        if any(slot >= len(box_players) for slot in entry.slots):
            logger.warning("Box %s match %s references a missing player slot - skipping", box_number, match_number)
            continue

        t1p1, t1p2 = (box_players[slot] for slot in entry.team1)
        t2p1, t2p2 = (box_players[slot] for slot in entry.team2)
        byes = [box_players[slot].id for slot in entry.byes if slot < len(box_players)]

        matches.append(
            BoxMatch(
                id=box_match_id(league_id, week_number, box_number, match_number),
                league_id=league_id,
                week_number=week_number,
                box_number=box_number,
                match_number_in_box=match_number,
                team1_player1_id=t1p1.id,
                team1_player1_name=t1p1.display_name,
                team1_player2_id=t1p2.id,
                team1_player2_name=t1p2.display_name,
                team2_player1_id=t2p1.id,
                team2_player1_name=t2p1.display_name,
                team2_player2_id=t2p2.id,
                team2_player2_name=t2p2.display_name,
                bye_player_ids=byes,
                status=MATCH_SCHEDULED,
                scheduled_date=scheduled_date,
            )
        )
    return matches


def build_week_matches(
    league_id: int,
    week_number: int,
    box_assignments: Iterable[BoxAssignment],
    players: Iterable[BoxPlayer],
    box_size: int,
    scheduled_date: Optional[datetime] = None,
) -> List[BoxMatch]:
    """All boxes' matches for a week, box order then match order. Pure."""
    by_id: Dict[int, BoxPlayer] = {p.id: p for p in players}
    matches: List[BoxMatch] = []
    for box in sorted(box_assignments, key=lambda b: b.box_number):
        # Ids no longer on the roster are dropped rather than failing the week
        box_players = [by_id[pid] for pid in box.player_ids if pid in by_id]
        matches.extend(
            build_box_matches(league_id, week_number, box.box_number, box_players, box_size, scheduled_date)
        )
    return matches


class MatchGenerator:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def generate_week(
        self,
        league_id: int,
        week_number: int,
        box_assignments: Sequence[BoxAssignment],
        players: Sequence[BoxPlayer],
        box_size: int,
        scheduled_date: Optional[datetime] = None,
    ) -> List[BoxMatch]:
        """
        Build and persist a week's matches in one batch.

        Already-completed matches with the same id are left untouched, so
        regenerating a week never wipes recorded scores. Players sitting out
        any match get their week bye flag set.
        """
        matches = build_week_matches(league_id, week_number, box_assignments, players, box_size, scheduled_date)
        by_id = {p.id: p for p in players}

        persisted: List[BoxMatch] = []
        with self.ledger.batch():
            for match in matches:
                existing = self.ledger.get(BoxMatch, match.id)
                if existing is not None and existing.status == MATCH_COMPLETED:
                    logger.warning("Match %s already completed - not regenerating", match.id)
                    persisted.append(existing)
                    continue
                persisted.append(self.ledger.set(match))

            bye_ids = {pid for match in matches for pid in match.bye_player_ids}
            for pid in sorted(bye_ids):
                player = by_id.get(pid)
                if player is not None and not player.week_had_bye:
                    self.ledger.update(player, week_had_bye=True)

        logger.info(
            "Generated %s matches for league %s week %s across %s boxes",
            len(persisted),
            league_id,
            week_number,
            len(box_assignments),
        )
        return persisted

    def get_matches_for_week(self, league_id: int, week_number: int) -> List[BoxMatch]:
        return self.ledger.query(
            BoxMatch,
            BoxMatch.league_id == league_id,
            BoxMatch.week_number == week_number,
            order_by=[BoxMatch.box_number, BoxMatch.match_number_in_box],
        )

    def get_matches_for_box(self, league_id: int, week_number: int, box_number: int) -> List[BoxMatch]:
        return self.ledger.query(
            BoxMatch,
            BoxMatch.league_id == league_id,
            BoxMatch.week_number == week_number,
            BoxMatch.box_number == box_number,
            order_by=BoxMatch.match_number_in_box,
        )

    def get_match(self, match_id: str) -> BoxMatch:
        return self.ledger.get_or_raise(BoxMatch, match_id, MatchNotFound)
