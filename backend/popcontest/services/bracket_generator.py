"""
Round 1 bracket generation: in-quadrant seed pairs laid out in crossover order.

Matchups: seed i vs seed (quadrant_size - i + 1) inside each quadrant, ordered
by bracket fold so the quadrant's top two seeds can only meet in its last round.

Slots: quadrant matchup lists are concatenated A, C, B, D and numbered 1..N.
Advancement always merges positions (2k-1, 2k) into position k of the next
round, so the A winner meets the C winner and the B winner meets the D winner
in the semifinal, and those two winners meet in the Final.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round, RoundStatus
from popcontest.models.tournament import Tournament
from popcontest.services.contestant_pool import (
    QUADRANTS,
    ContestantPool,
    SeededContestant,
    build_pool,
    load_quadrant_contestants,
)
from popcontest.services.errors import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

# A meets C and B meets D before the Final. Do not reorder to A, B, C, D.
CROSSOVER_ORDER = ("A", "C", "B", "D")

T = TypeVar("T")


@dataclass
class MatchupSlot:
    position: int
    contestant1: Optional[SeededContestant]
    contestant2: Optional[SeededContestant]
    quadrant: Optional[str] = None  # None when the pair spans two quadrants

    @property
    def is_bye(self) -> bool:
        return (self.contestant1 is None) != (self.contestant2 is None)

    @property
    def contestant_ids(self) -> Tuple[Optional[int], Optional[int]]:
        return (
            self.contestant1.contestant_id if self.contestant1 else None,
            self.contestant2.contestant_id if self.contestant2 else None,
        )


def round_name(round_number: int, matchup_count: int) -> str:
    if matchup_count == 1:
        return "Final"
    if matchup_count == 2:
        return "Semifinal"
    if matchup_count == 4:
        return "Quarterfinal"
    return f"Round {round_number}"


def total_rounds(bracket_size: int) -> int:
    """Rounds needed for a power-of-two bracket (8 -> 3)."""
    return max(bracket_size.bit_length() - 1, 0)


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries.

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate which seeds meet if chalk holds:
      4-entry  -> [1, 4, 2, 3]       -> (1v4), (2v3)
      8-entry  -> [1, 8, 4, 5, ...]   -> (1v8), (4v5), ...
    """
    if n <= 1:
        return [1]
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot


def quadrant_pairings(
    entries: Sequence[SeededContestant], slot_size: int
) -> List[Tuple[Optional[SeededContestant], Optional[SeededContestant]]]:
    """Pair seed i with seed (slot_size - i + 1), in bracket-fold order of the top seed.

    Seeds beyond len(entries) are empty bye slots, so top seeds receive byes first.
    """
    by_seed = {e.seed: e for e in entries}
    pair_count = slot_size // 2
    fold_order = bracket_fold_positions(pair_count)
    return [(by_seed.get(top), by_seed.get(slot_size - top + 1)) for top in fold_order]


def interleave_quadrants(by_quadrant: Dict[str, List[T]]) -> List[T]:
    """Concatenate per-quadrant lists in CROSSOVER_ORDER."""
    ordered: List[T] = []
    for quadrant in CROSSOVER_ORDER:
        ordered.extend(by_quadrant.get(quadrant, []))
    return ordered


def plan_first_round(pool: ContestantPool) -> List[MatchupSlot]:
    """Build round 1 matchup slots (positions 1..N) for a validated pool."""
    if pool.slot_size == 1:
        # One contestant per quadrant: the quadrant "winners" meet directly (A v C, B v D)
        entries = interleave_quadrants({q: list(pool.quadrants[q]) for q in QUADRANTS})
        return [
            MatchupSlot(position=i // 2 + 1, contestant1=entries[i], contestant2=entries[i + 1])
            for i in range(0, len(entries), 2)
        ]

    tagged: Dict[str, List[Tuple[str, Optional[SeededContestant], Optional[SeededContestant]]]] = {}
    for q in QUADRANTS:
        tagged[q] = [(q, a, b) for a, b in quadrant_pairings(pool.quadrants[q], pool.slot_size)]

    slots: List[MatchupSlot] = []
    for position, (quadrant, a, b) in enumerate(interleave_quadrants(tagged), start=1):
        if a is None and b is None:
            raise InvalidStateError(f"Quadrant {quadrant} produced an empty pair at position {position}")
        if a is None:
            a, b = b, None
        slots.append(MatchupSlot(position=position, contestant1=a, contestant2=b, quadrant=quadrant))
    return slots


def generate_bracket(session: Session, tournament_id: int) -> Round:
    """
    Validate the tournament's contestants and persist round 1 with its matchups.

    Bye matchups are created COMPLETED with their lone contestant as winner.
    The round is left PENDING; activation belongs to the round state machine.
    Either the whole round is committed or nothing is.

    Raises:
        NotFoundError: tournament does not exist
        ValidationError: contestant input cannot form a bracket
        InvalidStateError: a bracket already exists for the tournament
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError(f"Tournament {tournament_id} not found")

    existing = session.exec(select(Round).where(Round.tournament_id == tournament_id)).first()
    if existing:
        raise InvalidStateError(f"Tournament {tournament_id} already has a bracket")

    pool = build_pool(load_quadrant_contestants(session, tournament_id), allow_byes=tournament.allow_byes)
    slots = plan_first_round(pool)

    first_round = Round(
        tournament_id=tournament_id,
        round_number=1,
        name=round_name(1, len(slots)),
        status=RoundStatus.PENDING,
    )
    try:
        session.add(first_round)
        session.flush()

        now = datetime.utcnow()
        for slot in slots:
            c1_id, c2_id = slot.contestant_ids
            matchup = Matchup(
                tournament_id=tournament_id,
                round_id=first_round.id,
                position=slot.position,
                contestant1_id=c1_id,
                contestant2_id=c2_id,
                status=MatchupStatus.PENDING,
            )
            if slot.is_bye:
                matchup.is_bye = True
                matchup.winner_id = c1_id
                matchup.status = MatchupStatus.COMPLETED
                matchup.completed_at = now
            session.add(matchup)

        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise InvalidStateError(f"Bracket for tournament {tournament_id} was generated concurrently") from e

    session.refresh(first_round)
    logger.info(
        f"Generated round 1 for tournament {tournament_id}: {len(slots)} matchups, "
        f"{pool.total_contestants} contestants, {pool.bye_count} byes, "
        f"{total_rounds(pool.bracket_size)} rounds"
    )
    return first_round
