import os
from typing import Dict, List, Optional

# Keep app startup (init_db) off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from popcontest.database import get_session  # noqa: E402
from popcontest.main import app  # noqa: E402
from popcontest.models.contestant import Contestant  # noqa: E402
from popcontest.models.tournament import Tournament  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# sqlite:///:memory: with StaticPool so the fixture session and the app's
# overridden sessions share one database; tables are dropped after every test.
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    from popcontest.models.contestant import Contestant  # noqa: F401
    from popcontest.models.matchup import Matchup  # noqa: F401
    from popcontest.models.round import Round  # noqa: F401
    from popcontest.models.tournament import Tournament  # noqa: F401
    from popcontest.models.vote import Vote  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Test client whose get_session dependency uses the test engine"""
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def seed_tournament(
    session: Session,
    sizes: Optional[Dict[str, int]] = None,
    allow_byes: bool = False,
    name: str = "Test Contest",
) -> Dict:
    """Create a DRAFT tournament with contestants seeded 1..n per quadrant.

    Returns {"tournament_id", "ids": {(quadrant, seed): contestant_id}}.
    """
    sizes = sizes or {"A": 2, "B": 2, "C": 2, "D": 2}
    tournament = Tournament(name=name, allow_byes=allow_byes)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)

    ids = {}
    for quadrant, size in sizes.items():
        for seed in range(1, size + 1):
            contestant = Contestant(
                tournament_id=tournament.id,
                name=f"{quadrant}{seed}",
                seed=seed,
                quadrant=quadrant,
            )
            session.add(contestant)
            session.commit()
            session.refresh(contestant)
            ids[(quadrant, seed)] = contestant.id

    return {"tournament_id": tournament.id, "ids": ids}


@pytest.fixture
def eight_contestants(session: Session) -> Dict:
    return seed_tournament(session)


def vote_many(session: Session, matchup_id: int, contestant_id: int, count: int, prefix: str) -> List[str]:
    from popcontest.services.vote_tally import record_vote

    voters = [f"{prefix}-{i}" for i in range(count)]
    for voter in voters:
        record_vote(session, voter, matchup_id, contestant_id)
    return voters
