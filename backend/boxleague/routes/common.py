"""
Shared route plumbing: a Ledger per request and engine error translation.
"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException
from sqlmodel import Session

from boxleague.database import get_session
from boxleague.errors import (
    BoxLeagueError,
    IncompleteWeek,
    InvalidRoster,
    InvalidScore,
    InvalidSettings,
    MatchAlreadyCompleted,
    NotFound,
    WeekAlreadyProcessed,
    WeekExists,
)
from boxleague.ledger import Ledger
from boxleague.services.box_patterns import UnsupportedBoxSize

ERROR_STATUS = (
    (NotFound, 404),
    (InvalidScore, 422),
    (InvalidRoster, 422),
    (InvalidSettings, 422),
    (IncompleteWeek, 409),
    (MatchAlreadyCompleted, 409),
    (WeekAlreadyProcessed, 409),
    (WeekExists, 409),
)


def get_ledger(session: Session = Depends(get_session)) -> Ledger:
    return Ledger(session)


def status_for(exc: BoxLeagueError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


@contextmanager
def http_errors() -> Iterator[None]:
    """Re-raise engine errors as HTTPException with the matching status code."""
    try:
        yield
    except BoxLeagueError as e:
        raise HTTPException(status_code=status_for(e), detail=str(e)) from e
    except UnsupportedBoxSize as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
