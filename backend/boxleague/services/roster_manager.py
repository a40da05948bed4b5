"""
Roster Manager: players, seeding and box/ladder bookkeeping.

Ladder invariant: for active players, ladder_position is 1..N in
(current_box_number, position_in_box) order, and positions inside each box are
contiguous from 1.
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from boxleague.errors import InvalidRoster, LeagueNotFound, PlayerNotFound
from boxleague.ledger import Ledger
from boxleague.models.league import League, SeedingMethod
from boxleague.models.player import BoxPlayer
from boxleague.services.box_patterns import MIN_BOX_SIZE, pattern_for

logger = logging.getLogger(__name__)


@dataclass
class BoxAssignment:
    """Who is in a box, in box order. Snapshotted onto each week."""

    box_number: int
    player_ids: List[int] = field(default_factory=list)
    player_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoxAssignment":
        return cls(
            box_number=int(data["box_number"]),
            player_ids=list(data.get("player_ids") or []),
            player_names=list(data.get("player_names") or []),
        )


# =============================================================================
# Pure helpers
# =============================================================================


def seed_order(players: Iterable[BoxPlayer], method: SeedingMethod) -> List[BoxPlayer]:
    """
    Sort players for seeding. Stable: equal keys keep their input order.

    rating: highest rating first, unrated players last
    manual: lowest manual seed first, unseeded players last
    """
    method = SeedingMethod(method)
    if method == SeedingMethod.rating:
        return sorted(players, key=lambda p: (p.rating is None, -(p.rating if p.rating is not None else 0)))
    return sorted(players, key=lambda p: (p.manual_seed is None, p.manual_seed if p.manual_seed is not None else 0))


def partition_into_boxes(players: Sequence[BoxPlayer], box_size: int) -> List[List[BoxPlayer]]:
    """Consecutive groups of box_size; the last group may be smaller."""
    return [list(players[start : start + box_size]) for start in range(0, len(players), box_size)]


def ladder_order(players: Iterable[BoxPlayer]) -> List[BoxPlayer]:
    return sorted(players, key=lambda p: (p.current_box_number, p.position_in_box, p.ladder_position, p.id or 0))


def box_assignments_from_players(players: Iterable[BoxPlayer]) -> List[BoxAssignment]:
    """Current box rosters (active, placed players only), boxes ascending, players in box order."""
    boxes: Dict[int, List[BoxPlayer]] = defaultdict(list)
    for player in ladder_order(players):
        if player.is_active and player.current_box_number > 0:
            boxes[player.current_box_number].append(player)

    return [
        BoxAssignment(
            box_number=box_number,
            player_ids=[p.id for p in boxes[box_number]],
            player_names=[p.display_name for p in boxes[box_number]],
        )
        for box_number in sorted(boxes)
    ]


def renumber_ladder(players: Iterable[BoxPlayer]) -> Dict[int, Dict[str, int]]:
    """
    Compute ladder and in-box positions from the current (box, position) order.

    Returns {player_id: {"ladder_position": .., "position_in_box": ..}} for
    every placed player; the caller decides how to persist it.
    """
    placed = [p for p in players if p.is_active and p.current_box_number > 0]
    result: Dict[int, Dict[str, int]] = {}
    box_counters: Dict[int, int] = defaultdict(int)
    for index, player in enumerate(ladder_order(placed)):
        box_counters[player.current_box_number] += 1
        result[player.id] = {
            "ladder_position": index + 1,
            "position_in_box": box_counters[player.current_box_number],
        }
    return result


# =============================================================================
# Roster Manager
# =============================================================================


class RosterManager:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_player(self, player_id: int) -> BoxPlayer:
        return self.ledger.get_or_raise(BoxPlayer, player_id, PlayerNotFound)

    def get_players(self, league_id: int, active_only: bool = True) -> List[BoxPlayer]:
        filters = [BoxPlayer.league_id == league_id]
        if active_only:
            filters.append(BoxPlayer.is_active == True)  # noqa: E712
        players = self.ledger.query(BoxPlayer, *filters, order_by=BoxPlayer.id)
        return ladder_order(players)

    def get_box(self, league_id: int, box_number: int) -> List[BoxPlayer]:
        return [p for p in self.get_players(league_id) if p.current_box_number == box_number]

    def box_assignments(self, league_id: int) -> List[BoxAssignment]:
        return box_assignments_from_players(self.get_players(league_id))

    # ------------------------------------------------------------------
    # Player CRUD
    # ------------------------------------------------------------------

    def add_player(
        self,
        league_id: int,
        display_name: str,
        rating: Optional[float] = None,
        manual_seed: Optional[int] = None,
    ) -> BoxPlayer:
        """
        Add a player. Before seeding the player is unplaced (box 0). Once the
        ladder exists they join the bottom of the bottom box, or open a new box
        when the bottom box is already full.
        """
        league = self.ledger.get_or_raise(League, league_id, LeagueNotFound)
        current = self.get_players(league_id)
        placed = [p for p in current if p.current_box_number > 0]

        player = BoxPlayer(league_id=league_id, display_name=display_name, rating=rating, manual_seed=manual_seed)
        if placed:
            bottom_box = max(p.current_box_number for p in placed)
            in_bottom = [p for p in placed if p.current_box_number == bottom_box]
            if len(in_bottom) >= league.box_size:
                player.current_box_number = bottom_box + 1
                player.position_in_box = 1
            else:
                player.current_box_number = bottom_box
                player.position_in_box = len(in_bottom) + 1
            player.ladder_position = len(placed) + 1

        with self.ledger.batch():
            self.ledger.add(player)
        self.ledger.refresh(player)
        logger.info(
            "Added player %s (%s) to league %s in box %s",
            player.id,
            display_name,
            league_id,
            player.current_box_number or "unplaced",
        )
        return player

    def deactivate_player(self, player_id: int) -> BoxPlayer:
        """Take a player off the ladder; everyone below closes the gap."""
        player = self.get_player(player_id)
        others = [p for p in self.get_players(player.league_id) if p.id != player.id]

        with self.ledger.batch():
            self.ledger.update(player, is_active=False, current_box_number=0, position_in_box=0, ladder_position=0)
            self.apply_ladder(others)
        logger.info("Deactivated player %s in league %s", player_id, player.league_id)
        return player

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed(self, players: Sequence[BoxPlayer], method: SeedingMethod, box_size: int) -> List[BoxAssignment]:
        """
        Seed players into boxes and assign ladder positions.

        Raises:
            InvalidRoster: fewer than 4 players
            UnsupportedBoxSize: no rotating pattern for box_size
        """
        pattern_for(box_size)
        if len(players) < MIN_BOX_SIZE:
            raise InvalidRoster(f"Need at least {MIN_BOX_SIZE} players to seed a box league, got {len(players)}")

        ordered = seed_order(players, method)
        groups = partition_into_boxes(ordered, box_size)

        assignments: List[BoxAssignment] = []
        with self.ledger.batch():
            ladder_position = 1
            for box_index, group in enumerate(groups):
                box_number = box_index + 1
                for offset, player in enumerate(group):
                    self.ledger.update(
                        player,
                        ladder_position=ladder_position,
                        current_box_number=box_number,
                        position_in_box=offset + 1,
                    )
                    ladder_position += 1
                assignments.append(
                    BoxAssignment(
                        box_number=box_number,
                        player_ids=[p.id for p in group],
                        player_names=[p.display_name for p in group],
                    )
                )

        if groups and len(groups[-1]) < MIN_BOX_SIZE:
            logger.warning(
                "Seeding left box %s with %s players; it will not get matches until it has %s",
                len(groups),
                len(groups[-1]),
                MIN_BOX_SIZE,
            )
        logger.info("Seeded %s players into %s boxes by %s", len(ordered), len(groups), SeedingMethod(method).value)
        return assignments

    # ------------------------------------------------------------------
    # Organizer overrides
    # ------------------------------------------------------------------

    def move(self, player_id: int, from_box: int, to_box: int, new_position: int) -> BoxPlayer:
        """
        Move one player to a position in another (or the same) box. Both boxes
        stay contiguous from 1; everyone at or below new_position in the
        destination shifts down one.
        """
        player = self.get_player(player_id)
        if not player.is_active:
            raise InvalidRoster(f"Player {player_id} is not active")
        if player.current_box_number != from_box:
            raise InvalidRoster(f"Player {player_id} is in box {player.current_box_number}, not box {from_box}")
        if to_box < 1 or new_position < 1:
            raise InvalidRoster("Box number and position must be >= 1")

        players = self.get_players(player.league_id)
        # At most one new box directly below the current bottom box
        last_box = max((p.current_box_number for p in players if p.id != player.id), default=0)
        if to_box > last_box + 1:
            raise InvalidRoster(f"Box {to_box} does not exist; the bottom box is {last_box}")
        source = [p for p in players if p.current_box_number == from_box and p.id != player.id]
        destination = [p for p in players if p.current_box_number == to_box and p.id != player.id]
        insert_at = min(new_position, len(destination) + 1) - 1
        destination.insert(insert_at, player)

        with self.ledger.batch():
            if from_box != to_box:
                for index, other in enumerate(source):
                    self.ledger.update(other, position_in_box=index + 1)
            for index, member in enumerate(destination):
                self.ledger.update(member, current_box_number=to_box, position_in_box=index + 1)
            self.apply_ladder(players)

        logger.info("Moved player %s from box %s to box %s position %s", player_id, from_box, to_box, insert_at + 1)
        return player

    def reorder(self, league_id: int, box_number: int, ordered_player_ids: Sequence[int]) -> List[BoxPlayer]:
        players = self.get_players(league_id)
        in_box = {p.id: p for p in players if p.current_box_number == box_number}
        if not in_box:
            raise InvalidRoster(f"Box {box_number} has no players")
        if sorted(ordered_player_ids) != sorted(in_box):
            raise InvalidRoster(f"Reorder must list exactly the players in box {box_number}: {sorted(in_box)}")

        with self.ledger.batch():
            for index, player_id in enumerate(ordered_player_ids):
                self.ledger.update(in_box[player_id], position_in_box=index + 1)
            self.apply_ladder(players)

        logger.info("Reordered box %s in league %s", box_number, league_id)
        return [in_box[player_id] for player_id in ordered_player_ids]

    def swap(self, player_a_id: int, player_b_id: int) -> None:
        """Exchange box, position and ladder position between two players."""
        a = self.get_player(player_a_id)
        b = self.get_player(player_b_id)
        if a.league_id != b.league_id:
            raise InvalidRoster("Cannot swap players from different leagues")
        if not (a.is_active and b.is_active):
            raise InvalidRoster("Both players must be active to swap")

        a_slot = (a.current_box_number, a.position_in_box, a.ladder_position)
        b_slot = (b.current_box_number, b.position_in_box, b.ladder_position)
        with self.ledger.batch():
            self.ledger.update(a, current_box_number=b_slot[0], position_in_box=b_slot[1], ladder_position=b_slot[2])
            self.ledger.update(b, current_box_number=a_slot[0], position_in_box=a_slot[1], ladder_position=a_slot[2])

        logger.info("Swapped player %s (box %s) with player %s (box %s)", a.id, a_slot[0], b.id, b_slot[0])

    # ------------------------------------------------------------------
    # Ladder
    # ------------------------------------------------------------------

    def recalculate_ladder(self, league_id: int) -> List[BoxPlayer]:
        players = self.get_players(league_id)
        with self.ledger.batch():
            self.apply_ladder(players)
        return ladder_order(players)

    def apply_ladder(self, players: Iterable[BoxPlayer]) -> None:
        """Write renumbered ladder/in-box positions. Caller owns the batch."""
        players = list(players)
        positions = renumber_ladder(players)
        for player in players:
            placement = positions.get(player.id)
            if placement is None:
                continue
            if (
                player.ladder_position != placement["ladder_position"]
                or player.position_in_box != placement["position_in_box"]
            ):
                self.ledger.update(player, **placement)
