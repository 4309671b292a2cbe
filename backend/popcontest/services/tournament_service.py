"""
Tournament lifecycle: DRAFT (contestants added) -> ACTIVE (bracket generated,
round 1 open) -> COMPLETED (champion crowned by the round state machine).
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from popcontest.models.contestant import Contestant, Quadrant
from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round, RoundStatus
from popcontest.models.tournament import Tournament, TournamentStatus
from popcontest.services.bracket_generator import generate_bracket, total_rounds
from popcontest.services.bracket_view import get_active_round
from popcontest.services.contestant_pool import build_pool, load_quadrant_contestants
from popcontest.services.errors import (
    AlreadyResolvedError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from popcontest.services.round_state import activate_round
from popcontest.services.vote_tally import resolve_matchup

logger = logging.getLogger(__name__)


def get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError(f"Tournament {tournament_id} not found")
    return tournament


def create_tournament(
    session: Session,
    name: str,
    description: Optional[str] = None,
    allow_byes: bool = False,
    quadrant_names: Optional[Dict[str, str]] = None,
) -> Tournament:
    if not name or not name.strip():
        raise ValidationError("Tournament name is required")
    if quadrant_names:
        unknown = set(quadrant_names) - {q.value for q in Quadrant}
        if unknown:
            raise ValidationError(f"Unknown quadrant(s) in quadrant_names: {sorted(unknown)}")

    tournament = Tournament(
        name=name.strip(),
        description=description,
        allow_byes=allow_byes,
        quadrant_names=quadrant_names,
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info(f"Created tournament {tournament.id} '{tournament.name}' (allow_byes={allow_byes})")
    return tournament


def add_contestant(
    session: Session,
    tournament_id: int,
    name: str,
    seed: int,
    quadrant: str,
    description: Optional[str] = None,
) -> Contestant:
    """
    Add a contestant to a DRAFT tournament.

    Raises:
        NotFoundError, InvalidStateError (not DRAFT),
        ValidationError (bad seed/quadrant, or name/seed line already taken)
    """
    tournament = get_tournament(session, tournament_id)
    if tournament.status != TournamentStatus.DRAFT:
        raise InvalidStateError(f"Tournament {tournament_id} is {tournament.status}; contestants are locked")
    if seed < 1:
        raise ValidationError(f"Seed must be >= 1, got {seed}")
    try:
        quadrant = Quadrant(quadrant)
    except ValueError as e:
        raise ValidationError(f"Unknown quadrant '{quadrant}'") from e

    contestant = Contestant(
        tournament_id=tournament_id,
        name=name,
        seed=seed,
        quadrant=quadrant.value,
        description=description,
    )
    session.add(contestant)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ValidationError(
            f"Contestant '{name}' or seed {seed} in quadrant {quadrant.value} already exists"
        ) from e
    session.refresh(contestant)
    return contestant


def list_contestants(session: Session, tournament_id: int) -> List[Contestant]:
    get_tournament(session, tournament_id)
    return list(
        session.exec(
            select(Contestant)
            .where(Contestant.tournament_id == tournament_id)
            .order_by(Contestant.quadrant, Contestant.seed)
        ).all()
    )


def check_tournament_ready(session: Session, tournament_id: int) -> Dict:
    """
    Dry run of the start checks: validate the contestant pool without writing anything.

    Returns ready plus the reasons it is not, and the bracket shape a start would build.
    """
    tournament = get_tournament(session, tournament_id)
    errors: List[str] = []
    if tournament.status != TournamentStatus.DRAFT:
        errors.append(f"Tournament is {TournamentStatus(tournament.status).value}, not DRAFT")

    quadrants = {}
    pool = None
    try:
        quadrants = load_quadrant_contestants(session, tournament_id)
        pool = build_pool(quadrants, allow_byes=tournament.allow_byes)
    except ValidationError as e:
        errors.append(str(e))

    readiness = {
        "tournament_id": tournament_id,
        "ready": not errors,
        "errors": errors,
        "contestant_count": sum(len(entries) for entries in quadrants.values()),
        "bracket_size": pool.bracket_size if pool else None,
        "bye_count": pool.bye_count if pool else None,
        "total_rounds": total_rounds(pool.bracket_size) if pool else None,
    }
    logger.info(f"Readiness check for tournament {tournament_id}: ready={readiness['ready']} errors={errors}")
    return readiness


def start_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Generate round 1 and open it for voting.

    Raises:
        NotFoundError, InvalidStateError (not DRAFT), ValidationError (bad contestant input)
    """
    tournament = get_tournament(session, tournament_id)
    if tournament.status != TournamentStatus.DRAFT:
        raise InvalidStateError(f"Tournament {tournament_id} is {tournament.status}, not DRAFT")

    first_round = generate_bracket(session, tournament_id)

    tournament.status = TournamentStatus.ACTIVE
    tournament.started_at = datetime.utcnow()
    session.add(tournament)
    session.commit()

    # Activation can run straight through to completion for an all-bye round
    activate_round(session, first_round.id)
    session.refresh(tournament)

    logger.info(f"Started tournament {tournament_id}")
    return tournament


def force_advance_round(session: Session, tournament_id: int) -> Dict:
    """
    Resolve every ACTIVE matchup of the tournament's current round by vote count.

    Tied matchups are left ACTIVE and flagged for a tie-break; they are never
    decided by slot order.

    Raises:
        NotFoundError, InvalidStateError (tournament not ACTIVE or no active round)
    """
    tournament = get_tournament(session, tournament_id)
    if tournament.status != TournamentStatus.ACTIVE:
        raise InvalidStateError(f"Tournament {tournament_id} is {tournament.status}, not ACTIVE")

    active_round: Optional[Round] = get_active_round(session, tournament_id)
    if not active_round:
        raise InvalidStateError(f"Tournament {tournament_id} has no active round")
    round_id = active_round.id
    round_number = active_round.round_number

    matchup_ids = session.exec(
        select(Matchup.id)
        .where(Matchup.round_id == round_id, Matchup.status == MatchupStatus.ACTIVE.value)
        .order_by(Matchup.position)
    ).all()

    winners_declared = 0
    tied_ids: List[int] = []
    for matchup_id in matchup_ids:
        try:
            outcome = resolve_matchup(session, matchup_id)
        except AlreadyResolvedError:
            logger.info(f"Matchup {matchup_id} was resolved by another request during force-advance")
            continue
        if outcome.is_tie:
            tied_ids.append(matchup_id)
        else:
            winners_declared += 1

    rnd = session.get(Round, round_id)
    session.refresh(rnd)
    logger.info(
        f"Force-advanced round {round_number} of tournament {tournament_id}: "
        f"{winners_declared} winners, {len(tied_ids)} ties"
    )
    return {
        "round_number": round_number,
        "winners_declared": winners_declared,
        "ties": len(tied_ids),
        "tied_matchup_ids": tied_ids,
        "round_completed": rnd.status == RoundStatus.COMPLETED,
    }
