"""
Tie-break resolution for matchups whose regular votes ended level.

The deciding vote is always attributed to TIE_BREAK_ACTOR_ID; the admin who
asked for it is kept only in Vote.requested_by, so an admin's own regular vote
on the same matchup never conflicts with the tie-break.
"""
import logging
from typing import List

from sqlmodel import Session, select

from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round
from popcontest.models.tournament import Tournament
from popcontest.models.vote import TIE_BREAK_ACTOR_ID, Vote, VoteKind
from popcontest.services.errors import (
    AlreadyResolvedError,
    InvalidChoiceError,
    NotFoundError,
    NotTiedError,
)
from popcontest.services.round_state import close_matchup
from popcontest.services.vote_tally import stage_vote

logger = logging.getLogger(__name__)


def _has_tie_break_vote(session: Session, matchup_id: int) -> bool:
    return (
        session.exec(
            select(Vote.id).where(Vote.matchup_id == matchup_id, Vote.kind == VoteKind.TIE_BREAK.value)
        ).first()
        is not None
    )


def list_tied_matchups(session: Session, tournament_id: int) -> List[Matchup]:
    """Tied matchups still waiting for a tie-break, by round number then position."""
    if not session.get(Tournament, tournament_id):
        raise NotFoundError(f"Tournament {tournament_id} not found")

    broken = select(Vote.matchup_id).where(Vote.kind == VoteKind.TIE_BREAK.value)
    return list(
        session.exec(
            select(Matchup)
            .join(Round, Round.id == Matchup.round_id)
            .where(
                Matchup.tournament_id == tournament_id,
                Matchup.is_tie == True,  # noqa: E712
                Matchup.id.not_in(broken),
            )
            .order_by(Round.round_number, Matchup.position)
        ).all()
    )


def cast_tie_break(session: Session, matchup_id: int, contestant_id: int, requesting_admin_id: str) -> Matchup:
    """
    Break a tie: record the actor's TIE_BREAK vote and close the matchup with that winner.

    Vote and close commit together, and only while the regular counts are still
    level; round completion/propagation follows when this was the last open
    matchup. is_tie stays True on the closed matchup.

    Raises:
        NotFoundError: matchup does not exist
        NotTiedError: matchup is not flagged as tied, or its counts are no longer equal
        AlreadyResolvedError: a tie-break vote exists, or the matchup was closed first
        InvalidChoiceError: contestant is not in the matchup
    """
    matchup = session.get(Matchup, matchup_id)
    if not matchup:
        raise NotFoundError(f"Matchup {matchup_id} not found")
    if not matchup.is_tie or matchup.contestant1_votes != matchup.contestant2_votes:
        raise NotTiedError(f"Matchup {matchup_id} is not tied")
    if matchup.status == MatchupStatus.COMPLETED or _has_tie_break_vote(session, matchup_id):
        raise AlreadyResolvedError(f"Matchup {matchup_id} already has a tie-break decision")
    if not matchup.has_contestant(contestant_id):
        raise InvalidChoiceError(f"Contestant {contestant_id} is not in matchup {matchup_id}")

    stage_vote(
        session,
        matchup,
        voter_id=TIE_BREAK_ACTOR_ID,
        contestant_id=contestant_id,
        kind=VoteKind.TIE_BREAK,
        requested_by=requesting_admin_id,
    )
    logger.info(
        f"Tie-break on matchup {matchup_id} for contestant {contestant_id}, requested by {requesting_admin_id}"
    )
    return close_matchup(session, matchup_id, contestant_id, require_level=True)
