from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from popcontest.models.matchup import Matchup

# Fixed system identity that owns every tie-break vote. Never used for regular votes,
# so an administrator's personal vote and a tie-break on the same matchup cannot collide.
TIE_BREAK_ACTOR_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


class VoteKind(str, Enum):
    REGULAR = "REGULAR"
    TIE_BREAK = "TIE_BREAK"


class Vote(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("voter_id", "matchup_id", "kind", name="uq_vote_voter_matchup_kind"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    voter_id: str = Field(index=True)  # external user identity
    matchup_id: int = Field(foreign_key="matchup.id", index=True)
    contestant_id: int = Field(foreign_key="contestant.id")
    kind: VoteKind = Field(default=VoteKind.REGULAR, sa_column=Column(String, nullable=False))
    requested_by: Optional[str] = Field(default=None)  # admin who triggered a tie-break (audit only)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    matchup: "Matchup" = Relationship(back_populates="votes")
