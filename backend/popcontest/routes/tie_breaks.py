from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from popcontest.database import get_session
from popcontest.routes.http_errors import to_http_exception
from popcontest.services.bracket_view import matchup_view
from popcontest.services.errors import ContestError
from popcontest.services.tie_break import cast_tie_break, list_tied_matchups

router = APIRouter()


class TieBreakRequest(BaseModel):
    contestant_id: int
    requested_by: str

    @field_validator("requested_by")
    @classmethod
    def validate_requested_by(cls, v):
        if not v or not v.strip():
            raise ValueError("requested_by is required")
        return v.strip()


@router.get("/tournaments/{tournament_id}/tie-breaks")
def list_tie_breaks(tournament_id: int, session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
    """Tied matchups still waiting for an admin decision"""
    try:
        matchups = list_tied_matchups(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)
    return [dict(matchup_view(m), round_id=m.round_id) for m in matchups]


@router.post("/matchups/{matchup_id}/tie-break")
def tie_break(matchup_id: int, request: TieBreakRequest, session: Session = Depends(get_session)) -> Dict[str, Any]:
    try:
        matchup = cast_tie_break(session, matchup_id, request.contestant_id, request.requested_by)
    except ContestError as e:
        raise to_http_exception(e)
    return matchup_view(matchup)
