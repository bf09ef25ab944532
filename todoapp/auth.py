from typing import Optional, Protocol

from logger import logger
from .credentials import CredentialStore
from .errors import Unauthorized
from .models import User
from .repository import UserRepository
from .sessions import SessionStore


class UserSessionRepository(Protocol):
    """Looks up users for the authenticator, one implementation per storage backend."""

    def get_user_by_session(self, token: Optional[str]) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...


class DatabaseUserSessionRepository:
    """UserSessionRepository backed by the SQL session and user tables."""

    def __init__(self, sessions: SessionStore, users: UserRepository):
        self.sessions = sessions
        self.users = users

    def get_user_by_session(self, token: Optional[str]) -> Optional[User]:
        user_id = self.sessions.resolve_session(token)
        if user_id is None:
            return None
        user = self.users.get(user_id)
        if user is None:
            # Session outlived its user, fail closed and drop it
            logger.warning(f"Session points at missing user {user_id}, clearing it")
            self.sessions.clear_session(token)
            return None
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.users.get_by_email(email)


class Authenticator:
    """Turns credentials or session tokens into users."""

    def __init__(self, credentials: CredentialStore, sessions: SessionStore, users: UserSessionRepository):
        self.credentials = credentials
        self.sessions = sessions
        self.users = users

    async def authenticate_credentials(self, email: str, password: str) -> User:
        user = await self.credentials.verify_password(email, password)
        if user is None:
            logger.warning(f"Failed login attempt for user: {email}")
            raise Unauthorized("Invalid credentials")
        logger.info(f"Successful login for user: {email}")
        return user

    def authenticate_request(self, token: Optional[str]) -> User:
        user = self.users.get_user_by_session(token)
        if user is None:
            raise Unauthorized()
        return user

    def start_session(self, user: User, previous_token: Optional[str] = None) -> str:
        """Issue a brand new session for the user, retiring the one the client held."""
        if previous_token:
            self.sessions.clear_session(previous_token)
        return self.sessions.create_session(user.id)

    def end_session(self, token: Optional[str]) -> None:
        self.sessions.clear_session(token)
