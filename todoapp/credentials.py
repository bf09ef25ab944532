from typing import Optional

from logger import logger
from .errors import DuplicateEmail
from .models import User
from .repository import UserRepository
from .security import hash_password_async, verify_password_async


class CredentialStore:
    """Creates users and checks their passwords."""

    def __init__(self, users: UserRepository):
        self.users = users

    async def create_user(self, name: str, email: str, password: str) -> User:
        """
        Create a user with a bcrypt hashed password.

        Raises DuplicateEmail when the address is taken. The check runs
        before hashing so a collision does not cost a bcrypt round.
        """
        if self.users.get_by_email(email) is not None:
            logger.warning(f"Signup rejected, email already in use: {email}")
            raise DuplicateEmail()

        password_hash = await hash_password_async(password)
        user = self.users.create(name=name, email=email, password_hash=password_hash)
        logger.info(f"Created user {user.id} ({email})")
        return user

    async def verify_password(self, email: str, password: str) -> Optional[User]:
        """
        Return the user when the password matches, otherwise None.

        An unknown email, a user without a password hash and a wrong
        password all look the same to the caller.
        """
        user = self.users.get_by_email(email)
        if user is None or not user.password_hash:
            return None

        if await verify_password_async(password, user.password_hash):
            return user
        return None
