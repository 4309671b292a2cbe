"""
Read-only bracket, stats and per-voter views built from the stored rows.
"""
from typing import Dict, List, Optional

from sqlmodel import Session, func, select

from popcontest.models.contestant import Contestant
from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round, RoundStatus
from popcontest.models.tournament import Tournament
from popcontest.models.vote import Vote, VoteKind
from popcontest.services.errors import NotFoundError


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError(f"Tournament {tournament_id} not found")
    return tournament


def _status(value) -> str:
    return str(getattr(value, "value", value))


def tournament_summary(tournament: Tournament) -> Dict:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "description": tournament.description,
        "status": _status(tournament.status),
        "allow_byes": tournament.allow_byes,
        "quadrant_names": tournament.quadrant_names,
        "champion_id": tournament.champion_id,
        "started_at": tournament.started_at.isoformat() if tournament.started_at else None,
        "completed_at": tournament.completed_at.isoformat() if tournament.completed_at else None,
    }


def matchup_view(m: Matchup) -> Dict:
    return {
        "id": m.id,
        "position": m.position,
        "status": _status(m.status),
        "contestant1_id": m.contestant1_id,
        "contestant2_id": m.contestant2_id,
        "winner_id": m.winner_id,
        "vote_counts": {
            "contestant1_votes": m.contestant1_votes,
            "contestant2_votes": m.contestant2_votes,
            "total_votes": m.total_votes,
        },
        "is_tie": m.is_tie,
        "is_bye": m.is_bye,
    }


def get_bracket_data(session: Session, tournament_id: int) -> Dict:
    """Tournament summary plus every round (ascending) with its matchups (by position)."""
    tournament = _get_tournament(session, tournament_id)

    rounds = session.exec(
        select(Round).where(Round.tournament_id == tournament_id).order_by(Round.round_number)
    ).all()
    matchups = session.exec(
        select(Matchup).where(Matchup.tournament_id == tournament_id).order_by(Matchup.round_id, Matchup.position)
    ).all()

    by_round: Dict[int, List[Matchup]] = {}
    for m in matchups:
        by_round.setdefault(m.round_id, []).append(m)

    contestants = session.exec(select(Contestant).where(Contestant.tournament_id == tournament_id)).all()

    rounds_data = []
    for rnd in rounds:
        round_matchups = by_round.get(rnd.id, [])
        rounds_data.append(
            {
                "round_number": rnd.round_number,
                "name": rnd.name,
                "status": _status(rnd.status),
                "total_matchups": len(round_matchups),
                "completed_matchups": sum(1 for m in round_matchups if m.status == MatchupStatus.COMPLETED),
                "matchups": [matchup_view(m) for m in round_matchups],
            }
        )

    return {
        "tournament": tournament_summary(tournament),
        "contestants": {
            c.id: {"name": c.name, "seed": c.seed, "quadrant": _status(c.quadrant)} for c in contestants
        },
        "rounds": rounds_data,
    }


def get_active_round(session: Session, tournament_id: int) -> Optional[Round]:
    return session.exec(
        select(Round)
        .where(Round.tournament_id == tournament_id, Round.status == RoundStatus.ACTIVE.value)
        .order_by(Round.round_number.desc())
    ).first()


def get_tournament_stats(session: Session, tournament_id: int) -> Dict:
    tournament = _get_tournament(session, tournament_id)

    total_votes = session.exec(
        select(func.count(Vote.id))
        .join(Matchup, Matchup.id == Vote.matchup_id)
        .where(Matchup.tournament_id == tournament_id, Vote.kind == VoteKind.REGULAR.value)
    ).one()

    status_rows = session.exec(
        select(Matchup.status, func.count(Matchup.id))
        .where(Matchup.tournament_id == tournament_id)
        .group_by(Matchup.status)
    ).all()
    by_status = {s.value: 0 for s in MatchupStatus}
    for status, count in status_rows:
        by_status[_status(status)] = count

    tie_count = session.exec(
        select(func.count(Matchup.id)).where(
            Matchup.tournament_id == tournament_id,
            Matchup.is_tie == True,  # noqa: E712
        )
    ).one()

    contestant_count = session.exec(
        select(func.count(Contestant.id)).where(Contestant.tournament_id == tournament_id)
    ).one()

    active_round = get_active_round(session, tournament_id)

    return {
        "tournament_id": tournament_id,
        "status": _status(tournament.status),
        "contestant_count": contestant_count,
        "total_votes": total_votes,
        "total_matchups": sum(by_status.values()),
        "matchups_by_status": by_status,
        "tie_count": tie_count,
        "current_round": active_round.round_number if active_round else None,
        "champion_id": tournament.champion_id,
    }


def get_voting_status(session: Session, tournament_id: int, voter_id: str) -> Dict:
    """Which ACTIVE matchups the voter has and has not voted on."""
    _get_tournament(session, tournament_id)

    active_ids = list(
        session.exec(
            select(Matchup.id)
            .where(Matchup.tournament_id == tournament_id, Matchup.status == MatchupStatus.ACTIVE.value)
            .order_by(Matchup.id)
        ).all()
    )
    voted_ids = set()
    if active_ids:
        voted_ids = set(
            session.exec(
                select(Vote.matchup_id).where(
                    Vote.voter_id == voter_id,
                    Vote.kind == VoteKind.REGULAR.value,
                    Vote.matchup_id.in_(active_ids),
                )
            ).all()
        )

    total = len(active_ids)
    voted = len(voted_ids)
    return {
        "voter_id": voter_id,
        "active_matchups": total,
        "voted_matchups": voted,
        "remaining_matchups": total - voted,
        "voted_matchup_ids": sorted(voted_ids),
        "remaining_matchup_ids": [mid for mid in active_ids if mid not in voted_ids],
        "completion_percentage": round(voted * 100.0 / total, 1) if total else 100.0,
    }
