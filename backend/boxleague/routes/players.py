"""
Player API Routes
Roster management: add/list/deactivate players, seeding, and organizer
overrides (move, reorder, swap).
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from boxleague.ledger import Ledger
from boxleague.routes.common import get_ledger, http_errors
from boxleague.routes.leagues import BoxAssignmentResponse
from boxleague.services.league_schedule import LeagueSchedule
from boxleague.services.roster_manager import RosterManager

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerCreateRequest(BaseModel):
    display_name: str = Field(min_length=1)
    rating: Optional[float] = None
    manual_seed: Optional[int] = None


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    league_id: int
    display_name: str
    rating: Optional[float] = None
    manual_seed: Optional[int] = None
    ladder_position: int
    current_box_number: int
    position_in_box: int
    week_matches_played: int
    week_matches_won: int
    week_matches_lost: int
    week_points_for: int
    week_points_against: int
    week_points_diff: int
    week_had_bye: bool
    total_matches_played: int
    total_matches_won: int
    total_matches_lost: int
    total_points_for: int
    total_points_against: int
    total_points_diff: int
    total_bye_count: int
    total_weeks_played: int
    total_promotion_count: int
    total_relegation_count: int
    is_active: bool
    joined_at: datetime


class MoveRequest(BaseModel):
    from_box: int
    to_box: int
    new_position: int


class ReorderRequest(BaseModel):
    player_ids: List[int]


class SwapRequest(BaseModel):
    player_a_id: int
    player_b_id: int


# ============================================================================
# Endpoints
# ============================================================================


def _league_player(roster: RosterManager, league_id: int, player_id: int):
    player = roster.get_player(player_id)
    if player.league_id != league_id:
        raise HTTPException(status_code=404, detail="Player not found in this league")
    return player


@router.post("/leagues/{league_id}/players", response_model=PlayerResponse, status_code=201)
def add_player(league_id: int, request: PlayerCreateRequest, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        return RosterManager(ledger).add_player(
            league_id, request.display_name, rating=request.rating, manual_seed=request.manual_seed
        )


@router.get("/leagues/{league_id}/players", response_model=List[PlayerResponse])
def list_players(
    league_id: int,
    active_only: bool = Query(True),
    ledger: Ledger = Depends(get_ledger),
):
    """Players in ladder order (box, then position in box)."""
    with http_errors():
        LeagueSchedule(ledger).get_league(league_id)
        return RosterManager(ledger).get_players(league_id, active_only=active_only)


@router.delete("/leagues/{league_id}/players/{player_id}", response_model=PlayerResponse)
def deactivate_player(league_id: int, player_id: int, ledger: Ledger = Depends(get_ledger)):
    roster = RosterManager(ledger)
    with http_errors():
        _league_player(roster, league_id, player_id)
        return roster.deactivate_player(player_id)


@router.get("/leagues/{league_id}/boxes", response_model=List[BoxAssignmentResponse])
def get_boxes(league_id: int, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        LeagueSchedule(ledger).get_league(league_id)
        return [BoxAssignmentResponse(**a.to_dict()) for a in RosterManager(ledger).box_assignments(league_id)]


@router.post("/leagues/{league_id}/seed", response_model=List[BoxAssignmentResponse])
def seed_league(league_id: int, ledger: Ledger = Depends(get_ledger)):
    """Re-seed every active player into boxes using the league's seeding method."""
    roster = RosterManager(ledger)
    with http_errors():
        league = LeagueSchedule(ledger).get_league(league_id)
        assignments = roster.seed(roster.get_players(league_id), league.seeding_method, league.box_size)
    return [BoxAssignmentResponse(**a.to_dict()) for a in assignments]


@router.post("/leagues/{league_id}/players/{player_id}/move", response_model=PlayerResponse)
def move_player(league_id: int, player_id: int, request: MoveRequest, ledger: Ledger = Depends(get_ledger)):
    roster = RosterManager(ledger)
    with http_errors():
        _league_player(roster, league_id, player_id)
        return roster.move(player_id, request.from_box, request.to_box, request.new_position)


@router.post("/leagues/{league_id}/boxes/{box_number}/reorder", response_model=List[PlayerResponse])
def reorder_box(league_id: int, box_number: int, request: ReorderRequest, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        return RosterManager(ledger).reorder(league_id, box_number, request.player_ids)


@router.post("/leagues/{league_id}/players/swap", response_model=List[PlayerResponse])
def swap_players(league_id: int, request: SwapRequest, ledger: Ledger = Depends(get_ledger)):
    roster = RosterManager(ledger)
    with http_errors():
        _league_player(roster, league_id, request.player_a_id)
        _league_player(roster, league_id, request.player_b_id)
        roster.swap(request.player_a_id, request.player_b_id)
        return [roster.get_player(request.player_a_id), roster.get_player(request.player_b_id)]


@router.post("/leagues/{league_id}/ladder/recalculate", response_model=List[PlayerResponse])
def recalculate_ladder(league_id: int, ledger: Ledger = Depends(get_ledger)):
    with http_errors():
        LeagueSchedule(ledger).get_league(league_id)
        return RosterManager(ledger).recalculate_ladder(league_id)
