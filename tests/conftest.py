import asyncio
import os

# Must be set before the application modules read their configuration
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

from todoapp.main import app
from todoapp.database import get_session
from todoapp.credentials import CredentialStore
from todoapp.repository import UserRepository, TodoRepository
from todoapp.schemas import Identity
from todoapp.sessions import SessionStore

# Load environment variables from .env file
load_dotenv()

TEST_PASSWORD = "testpassword"


# Use in-memory SQLite for testing
@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine, session):
    # Dependencies override
    def get_test_session():
        yield session

    app.dependency_overrides = {}
    app.dependency_overrides[get_session] = get_test_session

    yield TestClient(app)

    # Restore original settings
    app.dependency_overrides = {}


def make_user(session, name, email, password=TEST_PASSWORD):
    return asyncio.run(CredentialStore(UserRepository(session)).create_user(name, email, password))


def identity_of(user) -> Identity:
    return Identity(id=user.id, name=user.name, email=user.email)


@pytest.fixture(name="test_user")
def test_user_fixture(session):
    """Create a test user for testing."""
    return make_user(session, "Test User", "test@example.com")


@pytest.fixture(name="other_user")
def other_user_fixture(session):
    """A second user who owns nothing the test user may touch."""
    return make_user(session, "Other User", "other@example.com")


@pytest.fixture(name="test_todo")
def test_todo_fixture(session, test_user):
    """Create a test todo for testing."""
    return TodoRepository(session).create("Test Todo", owner_id=test_user.id)


@pytest.fixture(name="user_token_headers")
def user_token_headers_fixture(session, test_user):
    """Authorization headers carrying a real session token of the test user."""
    token = SessionStore(session).create_session(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="other_token_headers")
def other_token_headers_fixture(session, other_user):
    token = SessionStore(session).create_session(other_user.id)
    return {"Authorization": f"Bearer {token}"}
