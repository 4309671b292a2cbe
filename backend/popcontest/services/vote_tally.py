"""
Vote recording and tallying for matchups.

Aggregates on Matchup are never incremented in place: every write recounts the
stored REGULAR votes in one UPDATE, so concurrent voters cannot lose updates and
the result does not depend on arrival order. TIE_BREAK votes are excluded from
the aggregates; they only decide the winner of a tied matchup.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import case, func, update
from sqlalchemy import select as sa_select
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.vote import TIE_BREAK_ACTOR_ID, Vote, VoteKind
from popcontest.services.errors import (
    AlreadyResolvedError,
    DuplicateVoteError,
    InvalidChoiceError,
    InvalidStateError,
    NotFoundError,
)
from popcontest.services.round_state import close_matchup

logger = logging.getLogger(__name__)


@dataclass
class TallyOutcome:
    contestant1_votes: int
    contestant2_votes: int
    winner_id: Optional[int] = None
    is_tie: bool = False

    @property
    def total_votes(self) -> int:
        return self.contestant1_votes + self.contestant2_votes

    def to_dict(self) -> dict:
        return {
            "contestant1_votes": self.contestant1_votes,
            "contestant2_votes": self.contestant2_votes,
            "total_votes": self.total_votes,
            "winner_id": self.winner_id,
            "is_tie": self.is_tie,
        }


def evaluate_outcome(
    contestant1_votes: int,
    contestant2_votes: int,
    contestant1_id: Optional[int] = None,
    contestant2_id: Optional[int] = None,
) -> TallyOutcome:
    """More votes wins; equal counts (0-0 included) are a tie with no winner."""
    if contestant1_votes == contestant2_votes:
        return TallyOutcome(contestant1_votes, contestant2_votes, winner_id=None, is_tie=True)
    winner_id = contestant1_id if contestant1_votes > contestant2_votes else contestant2_id
    return TallyOutcome(contestant1_votes, contestant2_votes, winner_id=winner_id, is_tie=False)


def tally_votes(votes: Iterable[Vote], contestant1_id: int, contestant2_id: int) -> TallyOutcome:
    """Count REGULAR votes per slot and evaluate the outcome."""
    counts = Counter(v.contestant_id for v in votes if v.kind == VoteKind.REGULAR)
    return evaluate_outcome(counts[contestant1_id], counts[contestant2_id], contestant1_id, contestant2_id)


def _get_matchup(session: Session, matchup_id: int) -> Matchup:
    matchup = session.get(Matchup, matchup_id)
    if not matchup:
        raise NotFoundError(f"Matchup {matchup_id} not found")
    return matchup


def _regular_count(matchup_id: int, contestant_id: Optional[int] = None):
    query = sa_select(func.count(Vote.id)).where(
        Vote.matchup_id == matchup_id,
        Vote.kind == VoteKind.REGULAR.value,
    )
    if contestant_id is not None:
        query = query.where(Vote.contestant_id == contestant_id)
    return query.scalar_subquery()


def recount_matchup(session: Session, matchup: Matchup) -> bool:
    """
    Recompute the matchup's aggregates and is_tie from stored REGULAR votes (one UPDATE).

    is_tie follows the counts: set when they are level, cleared when one side leads.
    Does not commit. Returns False, changing nothing, when the matchup is no
    longer ACTIVE.
    """
    contestant1_votes = _regular_count(matchup.id, matchup.contestant1_id)
    contestant2_votes = _regular_count(matchup.id, matchup.contestant2_id)
    result = session.execute(
        update(Matchup)
        .where(Matchup.id == matchup.id, Matchup.status == MatchupStatus.ACTIVE.value)
        .values(
            contestant1_votes=contestant1_votes,
            contestant2_votes=contestant2_votes,
            total_votes=_regular_count(matchup.id),
            is_tie=case((contestant1_votes == contestant2_votes, True), else_=False),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def stage_vote(
    session: Session,
    matchup: Matchup,
    voter_id: str,
    contestant_id: int,
    kind: VoteKind,
    requested_by: Optional[str] = None,
) -> Vote:
    """Insert a vote and flush; the unique (voter, matchup, kind) constraint decides duplicates."""
    vote = Vote(
        voter_id=voter_id,
        matchup_id=matchup.id,
        contestant_id=contestant_id,
        kind=kind,
        requested_by=requested_by,
    )
    session.add(vote)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        if kind == VoteKind.TIE_BREAK:
            raise AlreadyResolvedError(f"Matchup {matchup.id} already has a tie-break vote") from e
        raise DuplicateVoteError(f"Voter {voter_id} already voted on matchup {matchup.id}") from e
    return vote


def record_vote(
    session: Session,
    voter_id: str,
    matchup_id: int,
    contestant_id: int,
    kind: VoteKind = VoteKind.REGULAR,
) -> Matchup:
    """
    Record a vote on an ACTIVE matchup and refresh its aggregates.

    Returns the matchup with recounted vote totals. Recording never closes a
    matchup; resolution is a separate request.

    Raises:
        NotFoundError: matchup does not exist
        InvalidStateError: matchup not ACTIVE
        InvalidChoiceError: contestant not in the matchup, a REGULAR vote from the
            tie-break actor, or any TIE_BREAK vote (those go through cast_tie_break)
        DuplicateVoteError: voter already cast this kind of vote on the matchup
    """
    kind = VoteKind(kind)
    if kind == VoteKind.TIE_BREAK:
        raise InvalidChoiceError("Tie-break votes are cast through the tie-break resolver")
    if voter_id == TIE_BREAK_ACTOR_ID:
        raise InvalidChoiceError("The tie-break actor cannot cast regular votes")

    matchup = _get_matchup(session, matchup_id)
    if matchup.status != MatchupStatus.ACTIVE:
        raise InvalidStateError(f"Matchup {matchup_id} is {matchup.status}, not accepting votes")
    if not matchup.has_contestant(contestant_id):
        raise InvalidChoiceError(f"Contestant {contestant_id} is not in matchup {matchup_id}")

    stage_vote(session, matchup, voter_id, contestant_id, kind)
    if not recount_matchup(session, matchup):
        session.rollback()
        raise InvalidStateError(f"Matchup {matchup_id} is no longer accepting votes")
    session.commit()
    session.refresh(matchup)

    logger.info(
        f"Recorded {kind.value} vote by {voter_id} on matchup {matchup_id} for contestant {contestant_id} "
        f"({matchup.contestant1_votes}-{matchup.contestant2_votes})"
    )
    return matchup


def resolve_matchup(session: Session, matchup_id: int) -> TallyOutcome:
    """
    Determine the winner of an ACTIVE matchup from its regular votes.

    A leader closes the matchup; equal counts leave it ACTIVE and flagged as
    tied (the recount sets is_tie) for a tie-break.

    Raises:
        NotFoundError, AlreadyResolvedError (already COMPLETED), InvalidStateError (PENDING)
    """
    matchup = _get_matchup(session, matchup_id)
    if matchup.status == MatchupStatus.COMPLETED:
        raise AlreadyResolvedError(f"Matchup {matchup_id} is already completed")
    if matchup.status != MatchupStatus.ACTIVE:
        raise InvalidStateError(f"Matchup {matchup_id} is {matchup.status}, not ACTIVE")

    if not recount_matchup(session, matchup):
        # Closed by another request since it was loaded
        session.rollback()
        session.refresh(matchup)
        if matchup.status == MatchupStatus.COMPLETED:
            logger.warning(f"Matchup {matchup_id} was resolved concurrently")
            raise AlreadyResolvedError(f"Matchup {matchup_id} is already completed")
        raise InvalidStateError(f"Matchup {matchup_id} is {matchup.status}, not ACTIVE")
    session.commit()
    session.refresh(matchup)

    outcome = evaluate_outcome(
        matchup.contestant1_votes,
        matchup.contestant2_votes,
        matchup.contestant1_id,
        matchup.contestant2_id,
    )

    if outcome.is_tie:
        logger.info(
            f"Matchup {matchup_id} tied {outcome.contestant1_votes}-{outcome.contestant2_votes}; awaiting tie-break"
        )
        return outcome

    close_matchup(session, matchup_id, outcome.winner_id, clear_tie=True)
    return outcome


def get_voter_vote(session: Session, voter_id: str, matchup_id: int) -> Optional[Vote]:
    """The voter's REGULAR vote on the matchup, or None."""
    _get_matchup(session, matchup_id)
    return session.exec(
        select(Vote).where(
            Vote.voter_id == voter_id,
            Vote.matchup_id == matchup_id,
            Vote.kind == VoteKind.REGULAR.value,
        )
    ).first()
