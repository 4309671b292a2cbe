"""
Contestant pool: quadrant-partitioned, seed-ordered input to bracket generation.

Strict pools need four quadrants of equal power-of-two size. Pools that allow
byes pad every quadrant to a common power-of-two slot size; a quadrant must
still fill at least one side of every seed pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlmodel import Session, select

from popcontest.models.contestant import Contestant, Quadrant
from popcontest.services.errors import ValidationError

QUADRANTS = (Quadrant.A.value, Quadrant.B.value, Quadrant.C.value, Quadrant.D.value)


@dataclass(frozen=True)
class SeededContestant:
    """Lightweight struct for pairing input."""
    contestant_id: int
    seed: int
    quadrant: str
    name: Optional[str] = None


@dataclass
class ContestantPool:
    quadrants: Dict[str, List[SeededContestant]]
    slot_size: int  # entries per quadrant once padded with byes
    allow_byes: bool = False
    bye_count: int = field(default=0)

    @property
    def total_contestants(self) -> int:
        return sum(len(entries) for entries in self.quadrants.values())

    @property
    def bracket_size(self) -> int:
        return self.slot_size * len(QUADRANTS)


def is_power_of_two(n: int) -> bool:
    return n >= 1 and n & (n - 1) == 0


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def load_quadrant_contestants(session: Session, tournament_id: int) -> Dict[str, List[SeededContestant]]:
    """Quadrant -> contestants ordered by seed ascending (id breaks duplicate seeds deterministically)."""
    contestants = session.exec(
        select(Contestant)
        .where(Contestant.tournament_id == tournament_id)
        .order_by(Contestant.quadrant, Contestant.seed, Contestant.id)
    ).all()

    by_quadrant: Dict[str, List[SeededContestant]] = {q: [] for q in QUADRANTS}
    for c in contestants:
        quadrant = str(getattr(c.quadrant, "value", c.quadrant))
        if quadrant not in by_quadrant:
            raise ValidationError(f"Contestant {c.id} has unknown quadrant '{quadrant}'")
        by_quadrant[quadrant].append(
            SeededContestant(contestant_id=c.id, seed=c.seed, quadrant=quadrant, name=c.name)
        )
    return by_quadrant


def _check_seed_lines(quadrant: str, entries: List[SeededContestant]) -> None:
    seeds = [e.seed for e in entries]
    if len(set(seeds)) != len(seeds):
        raise ValidationError(f"Quadrant {quadrant} has duplicate seeds: {sorted(seeds)}")
    expected = list(range(1, len(entries) + 1))
    if sorted(seeds) != expected:
        raise ValidationError(
            f"Quadrant {quadrant} seeds must be 1..{len(entries)} without gaps, got {sorted(seeds)}"
        )


def build_pool(quadrants: Dict[str, List[SeededContestant]], allow_byes: bool = False) -> ContestantPool:
    """
    Validate quadrant input and return a seed-ordered ContestantPool.

    Raises:
        ValidationError: unknown/missing/empty quadrant, bad seed lines, unequal or
            non-power-of-two sizes (strict), or a quadrant too small to fill its pairs (byes)
    """
    unknown = set(quadrants) - set(QUADRANTS)
    if unknown:
        raise ValidationError(f"Unknown quadrant(s): {sorted(unknown)}")

    ordered: Dict[str, List[SeededContestant]] = {}
    for q in QUADRANTS:
        entries = sorted(quadrants.get(q) or [], key=lambda e: e.seed)
        if not entries:
            raise ValidationError(f"Quadrant {q} has no contestants")
        _check_seed_lines(q, entries)
        ordered[q] = entries

    sizes = {q: len(entries) for q, entries in ordered.items()}

    if not allow_byes:
        if len(set(sizes.values())) != 1:
            raise ValidationError(f"Quadrants must be the same size, got {sizes}")
        size = sizes[QUADRANTS[0]]
        if not is_power_of_two(size):
            raise ValidationError(f"Quadrant size must be a power of two, got {size}")
        return ContestantPool(quadrants=ordered, slot_size=size)

    slot_size = next_power_of_two(max(sizes.values()))
    for q, size in sizes.items():
        if size < slot_size // 2:
            raise ValidationError(
                f"Quadrant {q} has {size} contestants; at least {slot_size // 2} needed "
                f"to fill a {slot_size}-slot quadrant with byes"
            )

    return ContestantPool(
        quadrants=ordered,
        slot_size=slot_size,
        allow_byes=True,
        bye_count=sum(slot_size - size for size in sizes.values()),
    )
