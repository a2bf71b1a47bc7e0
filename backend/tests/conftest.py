import os

# Keep app startup (init_db) off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from groupstage.database import build_engine, get_session, init_db  # noqa: E402
from groupstage.main import app  # noqa: E402
from groupstage.models.team import Team  # noqa: E402
from groupstage.models.tournament import Tournament  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. build_engine pins sqlite:///:memory: to one connection (StaticPool), so ALL
#    sessions, including the TestClient threads, share the same DB
# 2. init_db registers every model before create_all()
# 3. Test tables never touch the on-disk default database
# 4. Tables dropped after every test so each test starts empty
test_engine = build_engine(TEST_DATABASE_URL)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on fresh tables"""
    init_db(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override is set BEFORE TestClient() and stays in place for the entire
    duration, so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="tournament")
def tournament_fixture(session: Session) -> Tournament:
    tournament = Tournament(name="Spring Cup", location="Utrecht")
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@pytest.fixture(name="make_team")
def make_team_fixture(session: Session):
    """Factory: make_team(tournament, name, category="JO8", club_name="VV Club")"""

    def _make_team(tournament: Tournament, name: str, category: str = "JO8", club_name: str = "VV Club") -> Team:
        team = Team(tournament_id=tournament.id, name=name, category=category, club_name=club_name)
        session.add(team)
        session.commit()
        session.refresh(team)
        return team

    return _make_team
