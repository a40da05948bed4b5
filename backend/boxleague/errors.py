"""
Box league engine errors.

Every validation error is raised before the first write of an operation, so a
caller that catches one of these never sees partially applied state.
"""

from typing import Optional


class BoxLeagueError(Exception):
    """Base class for all engine errors"""

    pass


class NotFound(BoxLeagueError):
    """Referenced entity does not exist"""

    entity = "Entity"

    def __init__(self, entity_id, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity} {entity_id} not found")


class LeagueNotFound(NotFound):
    entity = "League"


class PlayerNotFound(NotFound):
    entity = "Player"


class MatchNotFound(NotFound):
    entity = "Match"


class WeekNotFound(NotFound):
    entity = "Week"


class InvalidRoster(BoxLeagueError):
    """Roster cannot be seeded or rearranged as requested"""

    pass


class InvalidScore(BoxLeagueError):
    """Score rejected before any write"""

    pass


class MatchAlreadyCompleted(BoxLeagueError):
    """A different score was submitted for a match that is already completed"""

    pass


class IncompleteWeek(BoxLeagueError):
    """Week cannot be processed while matches remain unscored"""

    def __init__(self, week_number: int, outstanding: int):
        self.week_number = week_number
        self.outstanding = outstanding
        super().__init__(f"Week {week_number} has {outstanding} matches still incomplete")


class WeekAlreadyProcessed(BoxLeagueError):
    pass


class WeekExists(BoxLeagueError):
    pass


class InvalidSettings(BoxLeagueError):
    """League settings outside the supported formats"""

    pass
