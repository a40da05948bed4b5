from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from boxleague.models.league import League


class BoxPlayer(SQLModel, table=True):
    """An individual in a rotating doubles box league (partners change every match)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    display_name: str
    rating: Optional[float] = Field(default=None)  # Seed rating (higher = stronger)
    manual_seed: Optional[int] = Field(default=None)  # 1-based manual seed

    # Ladder placement
    ladder_position: int = Field(default=0)  # 1 = top of the whole ladder
    current_box_number: int = Field(default=0)  # 1 = top box
    position_in_box: int = Field(default=0)  # 1 = top of box

    # Current week stats (reset when the week is processed)
    week_matches_played: int = Field(default=0)
    week_matches_won: int = Field(default=0)
    week_matches_lost: int = Field(default=0)
    week_points_for: int = Field(default=0)
    week_points_against: int = Field(default=0)
    week_points_diff: int = Field(default=0)
    week_had_bye: bool = Field(default=False)

    # Cumulative stats
    total_matches_played: int = Field(default=0)
    total_matches_won: int = Field(default=0)
    total_matches_lost: int = Field(default=0)
    total_points_for: int = Field(default=0)
    total_points_against: int = Field(default=0)
    total_points_diff: int = Field(default=0)
    total_bye_count: int = Field(default=0)
    total_weeks_played: int = Field(default=0)
    total_promotion_count: int = Field(default=0)
    total_relegation_count: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    joined_at: datetime = Field(default_factory=datetime.utcnow)
    last_active_at: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    league: "League" = Relationship(back_populates="players")

    def reset_week_stats(self) -> None:
        self.week_matches_played = 0
        self.week_matches_won = 0
        self.week_matches_lost = 0
        self.week_points_for = 0
        self.week_points_against = 0
        self.week_points_diff = 0
        self.week_had_bye = False
