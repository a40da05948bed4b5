from boxleague.models.league import DEFAULT_TIEBREAKERS, League, SeedingMethod, Tiebreaker
from boxleague.models.match import BoxMatch
from boxleague.models.player import BoxPlayer
from boxleague.models.week import BoxWeek

__all__ = [
    "League",
    "SeedingMethod",
    "Tiebreaker",
    "DEFAULT_TIEBREAKERS",
    "BoxPlayer",
    "BoxMatch",
    "BoxWeek",
]
