from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from boxleague.models.league import League

MATCH_SCHEDULED = "scheduled"
MATCH_COMPLETED = "completed"


def box_match_id(league_id: int, week_number: int, box_number: int, match_number: int) -> str:
    """Deterministic id so regenerating a week upserts instead of duplicating."""
    return f"{league_id}_w{week_number}_b{box_number}_m{match_number}"


class BoxMatch(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("league_id", "week_number", "box_number", "match_number_in_box", name="uq_box_match_slot"),
    )

    id: str = Field(primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    week_number: int = Field(index=True)
    box_number: int
    match_number_in_box: int

    # Team 1
    team1_player1_id: int = Field(foreign_key="boxplayer.id")
    team1_player1_name: str
    team1_player2_id: int = Field(foreign_key="boxplayer.id")
    team1_player2_name: str

    # Team 2
    team2_player1_id: int = Field(foreign_key="boxplayer.id")
    team2_player1_name: str
    team2_player2_id: int = Field(foreign_key="boxplayer.id")
    team2_player2_name: str

    # Players sitting out this match (5 and 6 player boxes)
    bye_player_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))

    status: str = Field(default=MATCH_SCHEDULED)  # "scheduled" | "completed"
    team1_score: Optional[int] = Field(default=None)
    team2_score: Optional[int] = Field(default=None)
    winning_team: Optional[int] = Field(default=None)  # 1 | 2
    player_results: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    scheduled_date: Optional[datetime] = Field(default=None)
    entered_by: Optional[str] = Field(default=None)
    entered_at: Optional[datetime] = Field(default=None)
    played_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    league: "League" = Relationship(back_populates="matches")

    @property
    def team1_player_ids(self) -> List[int]:
        return [self.team1_player1_id, self.team1_player2_id]

    @property
    def team2_player_ids(self) -> List[int]:
        return [self.team2_player1_id, self.team2_player2_id]

    @property
    def player_ids(self) -> List[int]:
        return self.team1_player_ids + self.team2_player_ids

    def player_name(self, player_id: int) -> str:
        names = {
            self.team1_player1_id: self.team1_player1_name,
            self.team1_player2_id: self.team1_player2_name,
            self.team2_player1_id: self.team2_player1_name,
            self.team2_player2_id: self.team2_player2_name,
        }
        return names.get(player_id, "Unknown")
