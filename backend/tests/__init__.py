# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from boxleague.models.league import League  # noqa: F401
from boxleague.models.match import BoxMatch  # noqa: F401
from boxleague.models.player import BoxPlayer  # noqa: F401
from boxleague.models.week import BoxWeek  # noqa: F401
