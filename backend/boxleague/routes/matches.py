"""
Match API Routes
Read a week's matches and record scores.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from boxleague.ledger import Ledger
from boxleague.routes.common import get_ledger, http_errors
from boxleague.services.match_generator import MatchGenerator
from boxleague.services.score_recorder import ScoreRecorder

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: int
    week_number: int
    box_number: int
    match_number_in_box: int
    team1_player1_id: int
    team1_player1_name: str
    team1_player2_id: int
    team1_player2_name: str
    team2_player1_id: int
    team2_player1_name: str
    team2_player2_id: int
    team2_player2_name: str
    bye_player_ids: List[int]
    status: str
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winning_team: Optional[int] = None
    scheduled_date: Optional[datetime] = None
    entered_by: Optional[str] = None
    entered_at: Optional[datetime] = None
    played_at: Optional[datetime] = None


class ScoreRequest(BaseModel):
    # strict so 11.5 or "11" are rejected rather than coerced
    team1_score: int = Field(strict=True)
    team2_score: int = Field(strict=True)
    entered_by: str = Field(min_length=1)
    played_at: Optional[datetime] = None


class ScoreResponse(BaseModel):
    match_id: str
    team1_score: int
    team2_score: int
    winning_team: int
    already_recorded: bool
    player_updates: List[Dict[str, Any]]


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/leagues/{league_id}/weeks/{week_number}/matches", response_model=List[MatchResponse])
def list_week_matches(league_id: int, week_number: int, ledger: Ledger = Depends(get_ledger)):
    return MatchGenerator(ledger).get_matches_for_week(league_id, week_number)


@router.get("/leagues/{league_id}/weeks/{week_number}/boxes/{box_number}/matches", response_model=List[MatchResponse])
def list_box_matches(league_id: int, week_number: int, box_number: int, ledger: Ledger = Depends(get_ledger)):
    return MatchGenerator(ledger).get_matches_for_box(league_id, week_number, box_number)


@router.post("/leagues/{league_id}/matches/{match_id}/score", response_model=ScoreResponse)
def enter_score(league_id: int, match_id: str, request: ScoreRequest, ledger: Ledger = Depends(get_ledger)):
    """
    Record a match score. Re-sending the same score is a no-op
    (already_recorded=true); a different score for a completed match is 409.
    """
    with http_errors():
        match = MatchGenerator(ledger).get_match(match_id)
        if match.league_id != league_id:
            raise HTTPException(status_code=404, detail="Match not found in this league")
        result = ScoreRecorder(ledger).enter_score(
            match_id,
            request.team1_score,
            request.team2_score,
            entered_by=request.entered_by,
            played_at=request.played_at,
        )
    return ScoreResponse(
        match_id=result.match_id,
        team1_score=result.team1_score,
        team2_score=result.team2_score,
        winning_team=result.winning_team,
        already_recorded=result.already_recorded,
        player_updates=result.player_updates,
    )
