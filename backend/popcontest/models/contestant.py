from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from popcontest.models.tournament import Tournament


class Quadrant(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class Contestant(SQLModel, table=True):
    __table_args__ = (
        # One contestant per seed line within a quadrant
        SAUniqueConstraint("tournament_id", "quadrant", "seed", name="uq_contestant_quadrant_seed"),
        SAUniqueConstraint("tournament_id", "name", name="uq_contestant_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    description: Optional[str] = None
    seed: int  # 1-based rank within quadrant (1=strongest)
    quadrant: Quadrant = Field(sa_column=Column(String(1), nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="contestants")
