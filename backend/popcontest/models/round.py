from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from popcontest.models.matchup import Matchup
    from popcontest.models.tournament import Tournament


class RoundStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Round(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "round_number", name="uq_round_tournament_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_number: int  # 1 = first round
    name: str  # "Final" | "Semifinal" | "Quarterfinal" | "Round N"
    status: RoundStatus = Field(default=RoundStatus.PENDING, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="rounds")
    matchups: List["Matchup"] = Relationship(back_populates="round")
