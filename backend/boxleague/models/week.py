from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from boxleague.models.league import League

WEEK_UPCOMING = "upcoming"
WEEK_IN_PROGRESS = "in_progress"
WEEK_COMPLETED = "completed"


class BoxWeek(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("league_id", "week_number", name="uq_league_week"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    week_number: int

    status: str = Field(default=WEEK_UPCOMING)  # upcoming -> in_progress -> completed
    week_start_date: Optional[datetime] = Field(default=None)

    # Snapshot of who was in which box when the week's matches were generated
    box_assignments: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    match_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    total_matches: int = Field(default=0)
    completed_matches: int = Field(default=0)

    # Populated when the week is processed
    standings: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    movements: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    processed_at: Optional[datetime] = Field(default=None)
    processed_by: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    league: "League" = Relationship(back_populates="weeks")
