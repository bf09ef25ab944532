from contextlib import contextmanager
from typing import Generator

from sqlmodel import SQLModel, create_engine, Session

from .config import DATABASE_URL, SQL_ECHO

# Create database engine with logging
engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)


def init_db() -> None:
    """Create the user, sessions and todo tables if they are missing."""
    # Register the table models on the metadata before creating
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting a database session."""
    with Session(engine) as session:
        yield session


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for a session that commits on success and rolls back on error."""
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
