import asyncio

import pytest
from sqlmodel import Session

from todoapp.credentials import CredentialStore
from todoapp.errors import DuplicateEmail
from todoapp.repository import UserRepository
from conftest import TEST_PASSWORD


def test_create_user_hashes_password(session: Session):
    store = CredentialStore(UserRepository(session))

    user = asyncio.run(store.create_user("Mo", "mo@example.com", "secret123"))

    assert user.id is not None
    assert user.name == "Mo"
    assert user.email == "mo@example.com"
    assert user.password_hash and user.password_hash != "secret123"


def test_password_round_trip(session: Session, test_user):
    store = CredentialStore(UserRepository(session))

    user = asyncio.run(store.verify_password(test_user.email, TEST_PASSWORD))
    assert user is not None
    assert user.id == test_user.id

    assert asyncio.run(store.verify_password(test_user.email, "wrongpassword")) is None


def test_unknown_email_and_wrong_password_look_the_same(session: Session, test_user):
    store = CredentialStore(UserRepository(session))

    unknown = asyncio.run(store.verify_password("nobody@example.com", TEST_PASSWORD))
    wrong = asyncio.run(store.verify_password(test_user.email, "wrongpassword"))

    assert unknown is None
    assert wrong is None


def test_user_without_password_hash_cannot_log_in(session: Session):
    users = UserRepository(session)
    users.create(name="No Password", email="nopass@example.com", password_hash=None)
    store = CredentialStore(users)

    assert asyncio.run(store.verify_password("nopass@example.com", "")) is None
    assert asyncio.run(store.verify_password("nopass@example.com", "anything")) is None


def test_email_is_matched_as_submitted(session: Session, test_user):
    store = CredentialStore(UserRepository(session))

    assert asyncio.run(store.verify_password(test_user.email.upper(), TEST_PASSWORD)) is None


def test_duplicate_email_rejected(session: Session):
    users = UserRepository(session)
    store = CredentialStore(users)
    first = asyncio.run(store.create_user("A", "a@x.com", "password1"))
    first_hash = first.password_hash

    with pytest.raises(DuplicateEmail):
        asyncio.run(store.create_user("B", "a@x.com", "password2"))

    # The first user's record is unaffected
    stored = users.get_by_email("a@x.com")
    assert stored.id == first.id
    assert stored.name == "A"
    assert stored.password_hash == first_hash
    assert asyncio.run(store.verify_password("a@x.com", "password1")) is not None
    assert asyncio.run(store.verify_password("a@x.com", "password2")) is None
