"""
League API Routes
Create and read leagues, and start a league's schedule (seed + week 1).
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from boxleague.ledger import Ledger
from boxleague.models.league import SeedingMethod
from boxleague.routes.common import get_ledger, http_errors
from boxleague.services.league_schedule import LeagueSchedule

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class LeagueCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    box_size: int = 5
    games_to: int = 11
    win_by: int = 2
    validate_game_scores: bool = True
    promotion_count: int = 1
    relegation_count: int = 1
    seeding_method: SeedingMethod = SeedingMethod.rating
    tiebreakers: Optional[List[str]] = None


class LeagueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    box_size: int
    games_to: int
    win_by: int
    validate_game_scores: bool
    promotion_count: int
    relegation_count: int
    seeding_method: str
    tiebreakers: List[str]
    created_at: datetime


class ScheduleRequest(BaseModel):
    start_date: Optional[datetime] = None


class BoxAssignmentResponse(BaseModel):
    box_number: int
    player_ids: List[int]
    player_names: List[str]


class ScheduleResponse(BaseModel):
    league_id: int
    week_number: int
    total_matches: int
    assignments: List[BoxAssignmentResponse]


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/leagues", response_model=LeagueResponse, status_code=201)
def create_league(request: LeagueCreateRequest, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        return LeagueSchedule(ledger).create_league(**request.model_dump())


@router.get("/leagues/{league_id}", response_model=LeagueResponse)
def get_league(league_id: int, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        return LeagueSchedule(ledger).get_league(league_id)


@router.post("/leagues/{league_id}/schedule", response_model=ScheduleResponse, status_code=201)
def generate_schedule(league_id: int, request: Optional[ScheduleRequest] = None, ledger: Ledger = Depends(get_ledger)):
    """
    Seed all active players into boxes and create week 1.

    Fails with 409 if week 1 already exists and 422 with fewer than 4 players.
    """
    start_date = request.start_date if request else None
    with http_errors():
        result = LeagueSchedule(ledger).generate_league_schedule(league_id, start_date)
    return ScheduleResponse(
        league_id=result.league_id,
        week_number=result.week_number,
        total_matches=result.total_matches,
        assignments=[BoxAssignmentResponse(**a.to_dict()) for a in result.assignments],
    )
