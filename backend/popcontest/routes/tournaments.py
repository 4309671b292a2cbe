from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from popcontest.database import get_session
from popcontest.models.contestant import Quadrant
from popcontest.models.tournament import Tournament, TournamentStatus
from popcontest.routes.http_errors import to_http_exception
from popcontest.services import tournament_service
from popcontest.services.bracket_view import get_bracket_data, get_tournament_stats
from popcontest.services.errors import ContestError

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    description: Optional[str] = None
    allow_byes: bool = False
    quadrant_names: Optional[Dict[str, str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    status: TournamentStatus
    allow_byes: bool
    quadrant_names: Optional[Dict[str, str]] = None
    champion_id: Optional[int] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContestantCreate(BaseModel):
    name: str
    seed: int
    quadrant: str
    description: Optional[str] = None

    @field_validator("quadrant")
    @classmethod
    def normalize_quadrant(cls, v):
        return v.strip().upper() if v else v


class ContestantResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    seed: int
    quadrant: Quadrant
    description: Optional[str] = None

    class Config:
        from_attributes = True


class ReadinessResponse(BaseModel):
    tournament_id: int
    ready: bool
    errors: List[str]
    contestant_count: int
    bracket_size: Optional[int] = None
    bye_count: Optional[int] = None
    total_rounds: Optional[int] = None


class ForceAdvanceResponse(BaseModel):
    round_number: int
    winners_declared: int
    ties: int
    tied_matchup_ids: List[int]
    round_completed: bool


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    try:
        return tournament_service.create_tournament(session, **tournament_data.model_dump())
    except ContestError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/tournaments/{tournament_id}/contestants", response_model=List[ContestantResponse])
def list_contestants(tournament_id: int, session: Session = Depends(get_session)):
    try:
        return tournament_service.list_contestants(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)


@router.post("/tournaments/{tournament_id}/contestants", response_model=ContestantResponse, status_code=201)
def add_contestant(tournament_id: int, contestant_data: ContestantCreate, session: Session = Depends(get_session)):
    """Add a contestant while the tournament is still DRAFT"""
    try:
        return tournament_service.add_contestant(session, tournament_id, **contestant_data.model_dump())
    except ContestError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/readiness", response_model=ReadinessResponse)
def get_readiness(tournament_id: int, session: Session = Depends(get_session)):
    """Check whether the tournament could start now; nothing is written"""
    try:
        return tournament_service.check_tournament_ready(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)


@router.post("/tournaments/{tournament_id}/start", response_model=TournamentResponse)
def start_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Generate the round 1 bracket and open it for voting"""
    try:
        return tournament_service.start_tournament(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/bracket")
def get_bracket(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    try:
        return get_bracket_data(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)


@router.get("/tournaments/{tournament_id}/stats")
def get_stats(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    try:
        return get_tournament_stats(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)


@router.post("/tournaments/{tournament_id}/force-advance", response_model=ForceAdvanceResponse)
def force_advance(tournament_id: int, session: Session = Depends(get_session)):
    """Resolve every open matchup of the active round; ties stay open for a tie-break"""
    try:
        return tournament_service.force_advance_round(session, tournament_id)
    except ContestError as e:
        raise to_http_exception(e)
