import uuid
from datetime import timedelta
from typing import Optional, cast

from sqlalchemy.sql.selectable import Select
from sqlmodel import Session, select

from logger import logger
from .config import SESSION_TTL_MINUTES
from .models import AuthSession, utcnow
from .repository import BaseRepository
from .security import generate_session_token

MAX_TOKEN_LENGTH = 256


class SessionStore(BaseRepository[AuthSession]):
    """
    Maps opaque session tokens to user ids.

    Sessions live for a fixed time from creation. Expired sessions are
    dropped the first time somebody tries to use them, and in bulk by
    purge_expired().
    """

    def __init__(self, session: Session, ttl: Optional[timedelta] = None):
        super().__init__(session, AuthSession)
        self.ttl = ttl if ttl is not None else timedelta(minutes=SESSION_TTL_MINUTES)

    def create_session(self, user_id: uuid.UUID) -> str:
        """Bind a fresh token to the user and return it."""
        now = utcnow()
        record = AuthSession(
            token=generate_session_token(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._save(record)
        return record.token

    def _lookup(self, token: Optional[str]) -> Optional[AuthSession]:
        if not token or not isinstance(token, str) or len(token) > MAX_TOKEN_LENGTH:
            return None
        return self.get(token)

    def resolve_session(self, token: Optional[str]) -> Optional[uuid.UUID]:
        """Return the user id bound to a live token, None for anything else."""
        record = self._lookup(token)
        if record is None:
            return None
        if record.expires_at <= utcnow():
            logger.info(f"Session for user {record.user_id} expired")
            self._remove(record)
            return None
        return record.user_id

    def clear_session(self, token: Optional[str]) -> None:
        """Invalidate a token. Unknown or already cleared tokens are ignored."""
        record = self._lookup(token)
        if record is not None:
            self._remove(record)

    def purge_expired(self) -> int:
        """Delete every expired session, returns how many were removed."""
        query = cast(Select, select(AuthSession).where(AuthSession.expires_at <= utcnow()))
        expired = self.session.exec(query).all()
        try:
            for record in expired:
                self.session.delete(record)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(expired)
