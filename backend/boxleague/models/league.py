from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from boxleague.models.match import BoxMatch
    from boxleague.models.player import BoxPlayer
    from boxleague.models.week import BoxWeek


class SeedingMethod(str, Enum):
    rating = "rating"
    manual = "manual"


class Tiebreaker(str, Enum):
    wins = "wins"
    head_to_head = "head_to_head"
    points_diff = "points_diff"
    points_for = "points_for"
    points_against = "points_against"


DEFAULT_TIEBREAKERS: List[str] = [
    Tiebreaker.wins.value,
    Tiebreaker.head_to_head.value,
    Tiebreaker.points_diff.value,
    Tiebreaker.points_for.value,
    Tiebreaker.points_against.value,
]


class League(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str

    # Box configuration
    box_size: int = Field(default=5)  # 4 | 5 | 6

    # Game format
    games_to: int = Field(default=11)  # 11 | 15 | 21
    win_by: int = Field(default=2)  # 1 | 2
    validate_game_scores: bool = Field(default=True)

    # Promotion/relegation
    promotion_count: int = Field(default=1)
    relegation_count: int = Field(default=1)

    seeding_method: SeedingMethod = Field(default=SeedingMethod.rating, sa_column=Column(String))
    # Ordered tiebreaker chain (first = highest priority)
    tiebreakers: List[str] = Field(default_factory=lambda: list(DEFAULT_TIEBREAKERS), sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    players: List["BoxPlayer"] = Relationship(back_populates="league")
    matches: List["BoxMatch"] = Relationship(back_populates="league")
    weeks: List["BoxWeek"] = Relationship(back_populates="league")
