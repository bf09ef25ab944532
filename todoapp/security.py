import asyncio
import secrets
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from passlib.context import CryptContext

from logger import logger
from .config import BCRYPT_ROUNDS, HASH_WORKERS

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

# bcrypt is CPU bound; it gets its own pool so a burst of logins cannot
# starve the threadpool FastAPI uses for sync dependencies and endpoints.
_hash_executor: Optional[ThreadPoolExecutor] = None


def _get_hash_executor() -> ThreadPoolExecutor:
    global _hash_executor
    if _hash_executor is None:
        _hash_executor = ThreadPoolExecutor(max_workers=HASH_WORKERS, thread_name_prefix="bcrypt")
    return _hash_executor


def shutdown_hash_executor() -> None:
    global _hash_executor
    if _hash_executor is not None:
        logger.info("Stopping password hashing workers...")
        _hash_executor.shutdown(wait=True)
        _hash_executor = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash in storage
        logger.warning("Stored password hash could not be parsed")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


async def hash_password_async(password: str) -> str:
    """Hash a password on the dedicated hashing pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_get_hash_executor(), get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    """Verify a password on the dedicated hashing pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_get_hash_executor(), verify_password, plain_password, hashed_password)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)
