from datetime import timedelta

from sqlmodel import Session

from todoapp.models import AuthSession
from todoapp.sessions import SessionStore


def test_session_round_trip(session: Session, test_user):
    store = SessionStore(session)

    token = store.create_session(test_user.id)

    assert store.resolve_session(token) == test_user.id

    store.clear_session(token)
    assert store.resolve_session(token) is None


def test_clear_session_is_idempotent(session: Session, test_user):
    store = SessionStore(session)
    token = store.create_session(test_user.id)

    store.clear_session(token)
    store.clear_session(token)
    store.clear_session("never-issued")
    store.clear_session(None)


def test_unknown_and_malformed_tokens_resolve_to_none(session: Session):
    store = SessionStore(session)

    assert store.resolve_session("never-issued") is None
    assert store.resolve_session("") is None
    assert store.resolve_session(None) is None
    assert store.resolve_session("x" * 10_000) is None
    assert store.resolve_session("'; DROP TABLE sessions; --") is None


def test_each_session_gets_a_fresh_token(session: Session, test_user):
    store = SessionStore(session)

    first = store.create_session(test_user.id)
    second = store.create_session(test_user.id)

    assert first != second
    assert store.resolve_session(first) == test_user.id
    assert store.resolve_session(second) == test_user.id


def test_expired_session_is_rejected_and_removed(session: Session, test_user):
    store = SessionStore(session, ttl=timedelta(minutes=-1))

    token = store.create_session(test_user.id)

    assert store.resolve_session(token) is None
    assert session.get(AuthSession, token) is None


def test_purge_expired(session: Session, test_user):
    live = SessionStore(session).create_session(test_user.id)
    expired_store = SessionStore(session, ttl=timedelta(minutes=-5))
    expired_store.create_session(test_user.id)
    expired_store.create_session(test_user.id)

    assert SessionStore(session).purge_expired() == 2
    assert SessionStore(session).resolve_session(live) == test_user.id
    assert SessionStore(session).purge_expired() == 0


def test_session_timestamps_are_utc_aware(session: Session, test_user):
    token = SessionStore(session).create_session(test_user.id)

    # Reload from the database rather than the identity map
    session.expire_all()
    record = session.get(AuthSession, token)

    assert record.created_at.utcoffset() == timedelta(0)
    assert record.expires_at.utcoffset() == timedelta(0)
    assert record.expires_at > record.created_at
    assert SessionStore(session).resolve_session(token) == test_user.id
