"""
Week API Routes
List and read weeks, preview standings, and process a completed week.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from boxleague.ledger import Ledger
from boxleague.routes.common import get_ledger, http_errors
from boxleague.services.league_schedule import LeagueSchedule
from boxleague.services.week_processor import WeekProcessor, format_movements, movement_summary

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class WeekResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    league_id: int
    week_number: int
    status: str
    week_start_date: Optional[datetime] = None
    box_assignments: List[Dict[str, Any]]
    match_ids: List[str]
    total_matches: int
    completed_matches: int
    standings: Optional[List[Dict[str, Any]]] = None
    movements: Optional[List[Dict[str, Any]]] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None


class StandingResponse(BaseModel):
    player_id: int
    player_name: str
    box_number: int
    rank: int
    matches_played: int
    matches_won: int
    matches_lost: int
    points_for: int
    points_against: int
    points_diff: int
    had_bye: bool
    will_promote: bool
    will_relegate: bool
    will_stay: bool


class ProcessWeekRequest(BaseModel):
    processed_by: str


class ProcessWeekResponse(BaseModel):
    league_id: int
    week_number: int
    next_week_number: Optional[int] = None
    next_week_matches: int
    standings: List[StandingResponse]
    movements: List[Dict[str, Any]]
    summary: Dict[str, int]
    report: str


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/leagues/{league_id}/weeks", response_model=List[WeekResponse])
def list_weeks(league_id: int, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        LeagueSchedule(ledger).get_league(league_id)
        return WeekProcessor(ledger).get_weeks(league_id)


@router.get("/leagues/{league_id}/weeks/{week_number}", response_model=WeekResponse)
def get_week(league_id: int, week_number: int, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        return WeekProcessor(ledger).get_week(league_id, week_number)


@router.get("/leagues/{league_id}/weeks/{week_number}/standings", response_model=List[StandingResponse])
def preview_standings(league_id: int, week_number: int, ledger: Ledger = Depends(get_ledger)):
    """Live standings; nothing is written."""
    with http_errors():
        rows = WeekProcessor(ledger).preview_standings(league_id, week_number)
    return [StandingResponse(**row.to_dict()) for row in rows]


@router.post("/leagues/{league_id}/weeks/{week_number}/process", response_model=ProcessWeekResponse)
def process_week(league_id: int, week_number: int, request: ProcessWeekRequest, ledger: Ledger = Depends(get_ledger)):
    """
    Close the week: promotion/relegation, stat rollover, next week's matches.

    409 if the week still has unscored matches or was already processed.
    """
    with http_errors():
        result = WeekProcessor(ledger).process_week(league_id, week_number, request.processed_by)
    return ProcessWeekResponse(
        league_id=result.league_id,
        week_number=result.week_number,
        next_week_number=result.next_week_number,
        next_week_matches=result.next_week_matches,
        standings=[StandingResponse(**row.to_dict()) for row in result.standings],
        movements=[m.to_dict() for m in result.movements],
        summary=movement_summary(result.movements),
        report=format_movements(result.movements),
    )
