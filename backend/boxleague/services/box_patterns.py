"""
Box Patterns: rotating partner tables (single source of truth)

Each pattern is one week of play for a box. Players are referenced by slot
index into the box's ordered roster (0 = top of box). Patterns are data, not
logic: supporting a new box size means adding an entry to BOX_PATTERNS.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


class UnsupportedBoxSize(ValueError):
    pass


@dataclass(frozen=True)
class PatternMatch:
    team1: Tuple[int, int]
    team2: Tuple[int, int]
    byes: Tuple[int, ...] = ()  # slots sitting out this match

    @property
    def slots(self) -> Tuple[int, int, int, int]:
        return self.team1 + self.team2


@dataclass(frozen=True)
class RotatingPattern:
    box_size: int
    matches: Tuple[PatternMatch, ...]
    matches_per_player: int
    byes_per_player: int


# =============================================================================
# Pattern tables
# =============================================================================

# 3 matches, everyone plays 3 times and partners every other player once.
BOX_PATTERN_4 = RotatingPattern(
    box_size=4,
    matches=(
        PatternMatch((0, 1), (2, 3)),  # A+B vs C+D
        PatternMatch((0, 2), (1, 3)),  # A+C vs B+D
        PatternMatch((0, 3), (1, 2)),  # A+D vs B+C
    ),
    matches_per_player=3,
    byes_per_player=0,
)

# 5 matches, everyone plays 4 times and sits out once.
BOX_PATTERN_5 = RotatingPattern(
    box_size=5,
    matches=(
        PatternMatch((0, 1), (2, 3), byes=(4,)),  # A+B vs C+D, E bye
        PatternMatch((0, 2), (1, 4), byes=(3,)),  # A+C vs B+E, D bye
        PatternMatch((0, 3), (2, 4), byes=(1,)),  # A+D vs C+E, B bye
        PatternMatch((0, 4), (1, 3), byes=(2,)),  # A+E vs B+D, C bye
        PatternMatch((1, 2), (3, 4), byes=(0,)),  # B+C vs D+E, A bye
    ),
    matches_per_player=4,
    byes_per_player=1,
)

# 6 matches, everyone plays 4 times and rests twice. Twelve distinct
# partnerships; the three never used are A+F, B+E and C+D.
BOX_PATTERN_6 = RotatingPattern(
    box_size=6,
    matches=(
        PatternMatch((0, 1), (2, 4), byes=(3, 5)),  # A+B vs C+E
        PatternMatch((0, 2), (1, 3), byes=(4, 5)),  # A+C vs B+D
        PatternMatch((0, 3), (4, 5), byes=(1, 2)),  # A+D vs E+F
        PatternMatch((0, 4), (1, 5), byes=(2, 3)),  # A+E vs B+F
        PatternMatch((1, 2), (3, 5), byes=(0, 4)),  # B+C vs D+F
        PatternMatch((2, 5), (3, 4), byes=(0, 1)),  # C+F vs D+E
    ),
    matches_per_player=4,
    byes_per_player=2,
)

BOX_PATTERNS: Dict[int, RotatingPattern] = {
    4: BOX_PATTERN_4,
    5: BOX_PATTERN_5,
    6: BOX_PATTERN_6,
}

MIN_BOX_SIZE = 4


def supported_box_sizes() -> List[int]:
    return sorted(BOX_PATTERNS)


def pattern_for(box_size: int) -> RotatingPattern:
    try:
        return BOX_PATTERNS[box_size]
    except KeyError:
        raise UnsupportedBoxSize(
            f"No rotating pattern for box size {box_size}; supported sizes: {supported_box_sizes()}"
        ) from None


def matches_per_player(box_size: int) -> int:
    return pattern_for(box_size).matches_per_player


def byes_per_player(box_size: int) -> int:
    return pattern_for(box_size).byes_per_player


# =============================================================================
# Fairness checks
# =============================================================================


@dataclass
class PatternValidation:
    valid: bool
    match_counts: Dict[int, int]
    bye_counts: Dict[int, int]
    repeated_pairings: List[Tuple[int, int]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_pattern_fairness(pattern: RotatingPattern) -> PatternValidation:
    """
    Check a pattern is fair for its box size.

    Errors:
    - a slot outside 0..box_size-1, or a slot twice in one match
    - unequal match counts, or counts != matches_per_player
    - unequal bye counts, or counts != byes_per_player
    - a slot neither playing nor resting in some match
    - the same two-player team fielded twice

    Warnings:
    - a player never partners some other player
    """
    size = pattern.box_size
    match_counts: Counter = Counter({slot: 0 for slot in range(size)})
    bye_counts: Counter = Counter({slot: 0 for slot in range(size)})
    team_counts: Counter = Counter()
    partners: Dict[int, set] = {slot: set() for slot in range(size)}
    errors: List[str] = []

    for index, match in enumerate(pattern.matches, start=1):
        slots = match.slots
        if len(set(slots)) != 4 or any(s < 0 or s >= size for s in slots):
            errors.append(f"Match {index} has invalid slots {slots}")
            continue
        if set(slots) & set(match.byes):
            errors.append(f"Match {index} lists a playing slot as a bye")
        if len(set(slots) | set(match.byes)) != size:
            errors.append(f"Match {index} does not account for every slot")
        for slot in slots:
            match_counts[slot] += 1
        for slot in match.byes:
            bye_counts[slot] += 1
        for a, b in (match.team1, match.team2):
            team_counts[tuple(sorted((a, b)))] += 1
            partners[a].add(b)
            partners[b].add(a)

    if set(match_counts.values()) != {pattern.matches_per_player}:
        errors.append(f"Players have unequal match counts: {dict(match_counts)}")
    if set(bye_counts.values()) != {pattern.byes_per_player}:
        errors.append(f"Players have unequal bye counts: {dict(bye_counts)}")

    repeated = sorted(team for team, count in team_counts.items() if count > 1)
    if repeated:
        errors.append(f"Team pairings repeat: {repeated}")

    warnings = [
        f"Slot {slot} never partners slots {sorted(set(range(size)) - others - {slot})}"
        for slot, others in partners.items()
        if len(others) < size - 1
    ]

    return PatternValidation(
        valid=not errors,
        match_counts=dict(match_counts),
        bye_counts=dict(bye_counts),
        repeated_pairings=repeated,
        errors=errors,
        warnings=warnings,
    )


def format_pairing(match: PatternMatch, names: Sequence[str]) -> str:
    """'Alice + Bob vs Carol + Dan (Eve sits out)'"""
    team1 = " + ".join(names[i] for i in match.team1)
    team2 = " + ".join(names[i] for i in match.team2)
    display = f"{team1} vs {team2}"
    sitting = [names[i] for i in match.byes if i < len(names)]
    if sitting:
        verb = "sits out" if len(sitting) == 1 else "sit out"
        display += f" ({', '.join(sitting)} {verb})"
    return display


def schedule_display(names: Sequence[str], box_size: Optional[int] = None) -> List[str]:
    pattern = pattern_for(box_size or len(names))
    return [format_pairing(match, names) for match in pattern.matches]
