from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from popcontest.models.contestant import Contestant
    from popcontest.models.matchup import Matchup
    from popcontest.models.round import Round


class TournamentStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    status: TournamentStatus = Field(default=TournamentStatus.DRAFT, sa_column=Column(String, nullable=False))
    # Byes are only generated when explicitly allowed; otherwise quadrants must be equal powers of two
    allow_byes: bool = Field(default=False)
    quadrant_names: Optional[Dict[str, str]] = Field(default=None, sa_column=Column(JSON))  # {"A": "East", ...}
    champion_id: Optional[int] = Field(default=None)  # contestant id, set when the Final completes
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    contestants: List["Contestant"] = Relationship(back_populates="tournament")
    rounds: List["Round"] = Relationship(back_populates="tournament")
    matchups: List["Matchup"] = Relationship(back_populates="tournament")
