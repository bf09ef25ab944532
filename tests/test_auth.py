import asyncio

import pytest
from sqlmodel import Session

from todoapp.auth import Authenticator, DatabaseUserSessionRepository
from todoapp.credentials import CredentialStore
from todoapp.dependencies import require_identity
from todoapp.errors import Unauthorized
from todoapp.repository import UserRepository
from todoapp.sessions import SessionStore
from conftest import TEST_PASSWORD


def make_authenticator(session: Session) -> Authenticator:
    users = UserRepository(session)
    sessions = SessionStore(session)
    return Authenticator(CredentialStore(users), sessions, DatabaseUserSessionRepository(sessions, users))


def test_authenticate_credentials(session: Session, test_user):
    authenticator = make_authenticator(session)

    user = asyncio.run(authenticator.authenticate_credentials(test_user.email, TEST_PASSWORD))

    assert user.id == test_user.id


@pytest.mark.parametrize("email,password", [
    ("test@example.com", "wrongpassword"),
    ("nobody@example.com", TEST_PASSWORD),
])
def test_authenticate_credentials_rejects(session: Session, test_user, email, password):
    authenticator = make_authenticator(session)

    with pytest.raises(Unauthorized):
        asyncio.run(authenticator.authenticate_credentials(email, password))


def test_authenticate_request(session: Session, test_user):
    authenticator = make_authenticator(session)
    token = authenticator.start_session(test_user)

    assert authenticator.authenticate_request(token).id == test_user.id

    with pytest.raises(Unauthorized):
        authenticator.authenticate_request("never-issued")


def test_session_of_deleted_user_fails_closed(session: Session, test_user):
    authenticator = make_authenticator(session)
    token = authenticator.start_session(test_user)

    session.delete(test_user)
    session.commit()

    with pytest.raises(Unauthorized):
        authenticator.authenticate_request(token)

    # The dangling session is gone as well
    assert SessionStore(session).resolve_session(token) is None


def test_start_session_retires_previous_token(session: Session, test_user):
    authenticator = make_authenticator(session)
    old_token = authenticator.start_session(test_user)

    new_token = authenticator.start_session(test_user, previous_token=old_token)

    assert new_token != old_token
    assert authenticator.authenticate_request(new_token).id == test_user.id
    with pytest.raises(Unauthorized):
        authenticator.authenticate_request(old_token)


def test_end_session(session: Session, test_user):
    authenticator = make_authenticator(session)
    token = authenticator.start_session(test_user)

    authenticator.end_session(token)

    with pytest.raises(Unauthorized):
        authenticator.authenticate_request(token)


def test_require_identity(session: Session, test_user):
    authenticator = make_authenticator(session)
    token = authenticator.start_session(test_user)

    identity = require_identity(token, authenticator)

    assert identity.id == test_user.id
    assert identity.email == test_user.email

    with pytest.raises(Unauthorized):
        require_identity(None, authenticator)
    with pytest.raises(Unauthorized):
        require_identity("bogus", authenticator)
