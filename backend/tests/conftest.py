import os

# Keep the app's own engine off disk; tests use test_engine below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from boxleague.database import get_session  # noqa: E402
from boxleague.ledger import Ledger  # noqa: E402
from boxleague.main import app  # noqa: E402
from boxleague.models.league import League  # noqa: E402
from boxleague.models.player import BoxPlayer  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are dropped and recreated per test, so every test starts empty
# 4. App dependency overridden to use test_engine (see client_fixture)
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
    """Provide a session on a freshly created schema"""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="ledger")
def ledger_fixture(session: Session) -> Ledger:
    return Ledger(session)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the entire
    duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Builders
# ============================================================================


@pytest.fixture(name="make_league")
def make_league_fixture(session: Session):
    def _make(**settings) -> League:
        settings.setdefault("name", "Tuesday Box League")
        league = League(**settings)
        session.add(league)
        session.commit()
        session.refresh(league)
        return league

    return _make


@pytest.fixture(name="make_players")
def make_players_fixture(session: Session):
    def _make(league: League, ratings, names=None):
        players = []
        for index, rating in enumerate(ratings):
            name = names[index] if names else f"Player {index + 1}"
            player = BoxPlayer(league_id=league.id, display_name=name, rating=rating)
            session.add(player)
            players.append(player)
        session.commit()
        for player in players:
            session.refresh(player)
        return players

    return _make
