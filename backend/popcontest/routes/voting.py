"""
Voting endpoints: cast a regular vote, look up a voter's vote, resolve a matchup.
Resolution is explicit; the outer scheduling layer decides when a matchup closes.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from popcontest.database import get_session
from popcontest.models.vote import VoteKind
from popcontest.routes.http_errors import to_http_exception
from popcontest.services.bracket_view import get_voting_status, matchup_view
from popcontest.services.errors import ContestError
from popcontest.services.vote_tally import get_voter_vote, record_vote, resolve_matchup

router = APIRouter()


class VoteCreate(BaseModel):
    voter_id: str
    contestant_id: int


class VoteResponse(BaseModel):
    id: int
    voter_id: str
    matchup_id: int
    contestant_id: int
    kind: VoteKind
    created_at: datetime

    class Config:
        from_attributes = True


class VoterVoteResponse(BaseModel):
    matchup_id: int
    voter_id: str
    has_voted: bool
    vote: Optional[VoteResponse] = None


class ResolveResponse(BaseModel):
    matchup_id: int
    contestant1_votes: int
    contestant2_votes: int
    total_votes: int
    winner_id: Optional[int] = None
    is_tie: bool


@router.post("/matchups/{matchup_id}/votes", status_code=201)
def cast_vote(matchup_id: int, vote_data: VoteCreate, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Cast a REGULAR vote; returns the matchup with recounted totals"""
    try:
        matchup = record_vote(session, vote_data.voter_id, matchup_id, vote_data.contestant_id)
    except ContestError as e:
        raise to_http_exception(e)
    return matchup_view(matchup)


@router.get("/matchups/{matchup_id}/votes/{voter_id}", response_model=VoterVoteResponse)
def get_vote(matchup_id: int, voter_id: str, session: Session = Depends(get_session)):
    try:
        vote = get_voter_vote(session, voter_id, matchup_id)
    except ContestError as e:
        raise to_http_exception(e)
    return VoterVoteResponse(
        matchup_id=matchup_id,
        voter_id=voter_id,
        has_voted=vote is not None,
        vote=VoteResponse.model_validate(vote) if vote else None,
    )


@router.post("/matchups/{matchup_id}/resolve", response_model=ResolveResponse)
def resolve(matchup_id: int, session: Session = Depends(get_session)):
    """Close the matchup with the vote leader, or flag it as tied"""
    try:
        outcome = resolve_matchup(session, matchup_id)
    except ContestError as e:
        raise to_http_exception(e)
    return ResolveResponse(matchup_id=matchup_id, **outcome.to_dict())


@router.get("/tournaments/{tournament_id}/voting-status/{voter_id}")
def voting_status(tournament_id: int, voter_id: str, session: Session = Depends(get_session)) -> Dict[str, Any]:
    try:
        return get_voting_status(session, tournament_id, voter_id)
    except ContestError as e:
        raise to_http_exception(e)
