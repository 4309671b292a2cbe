"""
Round/matchup state machine and winner propagation.

Round:   PENDING -> ACTIVE -> COMPLETED (terminal)
Matchup: PENDING -> ACTIVE -> COMPLETED (terminal); byes are created COMPLETED

Closing a matchup and completing a round are compare-and-set updates on status,
so concurrent callers cannot close the same matchup twice or propagate a round
twice. Propagation feeds winners of positions (2k-1, 2k) into position k of the
next round; completing the Final crowns the champion instead.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round, RoundStatus
from popcontest.models.tournament import Tournament, TournamentStatus
from popcontest.services.bracket_generator import round_name
from popcontest.services.errors import (
    AlreadyResolvedError,
    InvalidChoiceError,
    InvalidStateError,
    NotFoundError,
    NotTiedError,
)

logger = logging.getLogger(__name__)


def _get_round(session: Session, round_id: int) -> Round:
    rnd = session.get(Round, round_id)
    if not rnd:
        raise NotFoundError(f"Round {round_id} not found")
    return rnd


def round_matchups(session: Session, round_id: int) -> List[Matchup]:
    return list(
        session.exec(select(Matchup).where(Matchup.round_id == round_id).order_by(Matchup.position)).all()
    )


def round_progress(session: Session, round_id: int) -> Dict[str, int]:
    """Derived matchup counts for a round: total and completed."""
    rows = session.exec(
        select(Matchup.status, func.count(Matchup.id)).where(Matchup.round_id == round_id).group_by(Matchup.status)
    ).all()
    counts = {str(status): count for status, count in rows}
    return {
        "total_matchups": sum(counts.values()),
        "completed_matchups": counts.get(MatchupStatus.COMPLETED.value, 0),
    }


def pair_winners(winner_ids: Sequence[int]) -> List[Tuple[int, int]]:
    """Winners in position order -> next-round (contestant1, contestant2) pairs.

    Position k of the next round takes the winners of positions 2k-1 and 2k.
    """
    if len(winner_ids) < 2 or len(winner_ids) % 2:
        raise InvalidStateError(f"Cannot pair {len(winner_ids)} winners into a next round")
    return [(winner_ids[i], winner_ids[i + 1]) for i in range(0, len(winner_ids), 2)]


def activate_round(session: Session, round_id: int) -> Round:
    """
    Move a PENDING round to ACTIVE and open its non-bye matchups for voting.

    Raises:
        InvalidStateError: round not PENDING, a slot is unpopulated, or a matchup
            would pit a contestant against itself
    """
    rnd = _get_round(session, round_id)
    if rnd.status != RoundStatus.PENDING:
        raise InvalidStateError(f"Round {rnd.round_number} is {rnd.status}, not PENDING")

    matchups = round_matchups(session, round_id)
    if not matchups:
        raise InvalidStateError(f"Round {rnd.round_number} has no matchups")
    unpopulated = [m.position for m in matchups if not m.is_populated]
    if unpopulated:
        raise InvalidStateError(f"Round {rnd.round_number} has unpopulated matchups at positions {unpopulated}")
    self_paired = [m.position for m in matchups if not m.is_bye and m.contestant1_id == m.contestant2_id]
    if self_paired:
        raise InvalidStateError(f"Round {rnd.round_number} pairs a contestant with itself at positions {self_paired}")

    result = session.execute(
        update(Round)
        .where(Round.id == round_id, Round.status == RoundStatus.PENDING.value)
        .values(status=RoundStatus.ACTIVE.value)
    )
    if result.rowcount != 1:
        session.rollback()
        raise InvalidStateError(f"Round {rnd.round_number} was activated concurrently")

    for m in matchups:
        if m.status == MatchupStatus.PENDING and not m.is_bye:
            m.status = MatchupStatus.ACTIVE
            session.add(m)
    session.commit()
    session.refresh(rnd)

    logger.info(f"Activated round {rnd.round_number} ({rnd.name}) of tournament {rnd.tournament_id}")

    # A round made only of byes has nothing to vote on
    maybe_complete_round(session, round_id)
    return rnd


def close_matchup(
    session: Session,
    matchup_id: int,
    winner_id: int,
    clear_tie: bool = False,
    require_level: bool = False,
) -> Matchup:
    """
    Close an ACTIVE matchup with a winner (ACTIVE -> COMPLETED exactly once).

    Commits any pending work in the session together with the close, so a
    caller can stage related rows (e.g. a tie-break vote) in the same transaction.
    On a lost race the whole transaction is rolled back.
    Runs round completion/propagation when this was the round's last open matchup.
    clear_tie resets is_tie for a natural (vote-count) resolution.
    require_level only closes while the regular counts are still equal (tie-breaks).

    Raises:
        InvalidChoiceError: winner is not one of the matchup's contestants
        AlreadyResolvedError: matchup already COMPLETED (including a lost race)
        InvalidStateError: matchup not ACTIVE yet
        NotTiedError: require_level and the counts are no longer equal
    """
    matchup = session.get(Matchup, matchup_id)
    if not matchup:
        raise NotFoundError(f"Matchup {matchup_id} not found")
    if not matchup.has_contestant(winner_id):
        session.rollback()
        raise InvalidChoiceError(f"Contestant {winner_id} is not in matchup {matchup_id}")
    if matchup.status == MatchupStatus.COMPLETED:
        session.rollback()
        raise AlreadyResolvedError(f"Matchup {matchup_id} is already completed")
    if matchup.status != MatchupStatus.ACTIVE:
        session.rollback()
        raise InvalidStateError(f"Matchup {matchup_id} is {matchup.status}, not ACTIVE")

    values = {
        "status": MatchupStatus.COMPLETED.value,
        "winner_id": winner_id,
        "completed_at": datetime.utcnow(),
    }
    if clear_tie:
        values["is_tie"] = False

    statement = update(Matchup).where(Matchup.id == matchup_id, Matchup.status == MatchupStatus.ACTIVE.value)
    if require_level:
        statement = statement.where(Matchup.contestant1_votes == Matchup.contestant2_votes)

    result = session.execute(statement.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        session.rollback()
        if require_level:
            session.refresh(matchup)
            if matchup.status == MatchupStatus.ACTIVE:
                logger.warning(
                    f"Matchup {matchup_id} is no longer level ({matchup.contestant1_votes}-{matchup.contestant2_votes})"
                )
                raise NotTiedError(f"Matchup {matchup_id} is no longer tied")
        logger.warning(f"Matchup {matchup_id} close lost a race; already resolved")
        raise AlreadyResolvedError(f"Matchup {matchup_id} was resolved concurrently")

    session.commit()
    session.refresh(matchup)
    logger.info(f"Closed matchup {matchup_id} (round {matchup.round_id}, position {matchup.position}), winner {winner_id}")

    maybe_complete_round(session, matchup.round_id)
    return matchup


def maybe_complete_round(session: Session, round_id: int) -> Optional[Round]:
    """Complete the round if every matchup is COMPLETED. Returns the next round if one was built."""
    progress = round_progress(session, round_id)
    if progress["total_matchups"] == 0 or progress["completed_matchups"] < progress["total_matchups"]:
        return None
    return complete_round(session, round_id)


def complete_round(session: Session, round_id: int) -> Optional[Round]:
    """
    ACTIVE -> COMPLETED for a round whose matchups are all COMPLETED, then propagate.

    Builds and activates round r+1 from the winners, or crowns the champion when
    the round is the Final. Returns the new round, or None after the Final or when
    another caller already completed the round.

    Raises:
        InvalidStateError: some matchup is not COMPLETED, or the round is not ACTIVE
    """
    rnd = _get_round(session, round_id)
    matchups = round_matchups(session, round_id)
    open_positions = [m.position for m in matchups if m.status != MatchupStatus.COMPLETED]
    if not matchups or open_positions:
        raise InvalidStateError(
            f"Cannot complete round {rnd.round_number}: matchups at positions {open_positions} are not completed"
        )

    now = datetime.utcnow()
    result = session.execute(
        update(Round)
        .where(Round.id == round_id, Round.status == RoundStatus.ACTIVE.value)
        .values(status=RoundStatus.COMPLETED.value, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        session.refresh(rnd)
        if rnd.status == RoundStatus.COMPLETED:
            logger.info(f"Round {rnd.round_number} already completed; skipping propagation")
            return None
        raise InvalidStateError(f"Round {rnd.round_number} is {rnd.status}, not ACTIVE")

    if len(matchups) == 1:
        _crown_champion(session, rnd.tournament_id, matchups[0].winner_id, now)
        session.refresh(rnd)
        return None

    next_round = _build_next_round(session, rnd, matchups)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise InvalidStateError(f"Round {rnd.round_number + 1} already exists") from e

    session.refresh(rnd)
    logger.info(
        f"Completed round {rnd.round_number} of tournament {rnd.tournament_id}; "
        f"built round {next_round.round_number} ({next_round.name})"
    )
    return activate_round(session, next_round.id)


def _build_next_round(session: Session, completed: Round, matchups: List[Matchup]) -> Round:
    pairs = pair_winners([m.winner_id for m in matchups])
    next_number = completed.round_number + 1

    next_round = Round(
        tournament_id=completed.tournament_id,
        round_number=next_number,
        name=round_name(next_number, len(pairs)),
        status=RoundStatus.PENDING,
    )
    session.add(next_round)
    session.flush()

    for position, (contestant1_id, contestant2_id) in enumerate(pairs, start=1):
        session.add(
            Matchup(
                tournament_id=completed.tournament_id,
                round_id=next_round.id,
                position=position,
                contestant1_id=contestant1_id,
                contestant2_id=contestant2_id,
                status=MatchupStatus.PENDING,
            )
        )
    return next_round


def _crown_champion(session: Session, tournament_id: int, champion_id: Optional[int], now: datetime) -> None:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError(f"Tournament {tournament_id} not found")
    tournament.status = TournamentStatus.COMPLETED
    tournament.champion_id = champion_id
    tournament.completed_at = now
    session.add(tournament)
    session.commit()
    logger.info(f"Tournament {tournament_id} completed, champion: contestant {champion_id}")
