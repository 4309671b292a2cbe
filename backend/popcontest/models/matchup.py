from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from popcontest.models.round import Round
    from popcontest.models.tournament import Tournament
    from popcontest.models.vote import Vote


class MatchupStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Matchup(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("round_id", "position", name="uq_matchup_round_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_id: int = Field(foreign_key="round.id", index=True)
    position: int  # 1-based slot within round

    # Contestant slots (nullable until propagation fills them)
    contestant1_id: Optional[int] = Field(default=None, foreign_key="contestant.id")
    contestant2_id: Optional[int] = Field(default=None, foreign_key="contestant.id")
    winner_id: Optional[int] = Field(default=None, foreign_key="contestant.id")

    status: MatchupStatus = Field(default=MatchupStatus.PENDING, sa_column=Column(String, nullable=False))
    is_bye: bool = Field(default=False)

    # Regular-vote aggregates; always recounted from the vote table, never incremented
    contestant1_votes: int = Field(default=0)
    contestant2_votes: int = Field(default=0)
    total_votes: int = Field(default=0)
    is_tie: bool = Field(default=False)  # stays True after a tie-break as a historical marker

    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matchups")
    round: "Round" = Relationship(back_populates="matchups")
    votes: List["Vote"] = Relationship(back_populates="matchup")

    def has_contestant(self, contestant_id: Optional[int]) -> bool:
        return contestant_id is not None and contestant_id in (self.contestant1_id, self.contestant2_id)

    @property
    def is_populated(self) -> bool:
        """Both slots filled, or a bye (single contestant, already decided)."""
        if self.is_bye:
            return self.winner_id is not None
        return self.contestant1_id is not None and self.contestant2_id is not None
