import uuid
from typing import Generic, List, Optional, Type, TypeVar, cast

from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.selectable import Select
from sqlmodel import Session, select

from .errors import DuplicateEmail
from .models import Todo, User

# Generic type variable
T = TypeVar('T')


class BaseRepository(Generic[T]):
    """Generic base repository for keyed lookups and commits."""

    def __init__(self, session: Session, model_class: Type[T]):
        self.session = session
        self.model_class = model_class

    def get(self, id) -> Optional[T]:
        """Get an item by primary key."""
        return self.session.get(self.model_class, id)

    def _save(self, db_obj: T) -> T:
        """Add, commit and refresh, rolling back on any storage error."""
        try:
            self.session.add(db_obj)
            self.session.commit()
            self.session.refresh(db_obj)
            return db_obj
        except Exception:
            self.session.rollback()
            raise

    def _remove(self, db_obj: T) -> None:
        try:
            self.session.delete(db_obj)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise


class UserRepository(BaseRepository[User]):
    """Repository for User entity."""

    def __init__(self, session: Session):
        super().__init__(session, User)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, compared exactly as submitted."""
        query = cast(Select, select(User).where(User.email == email))
        return self.session.exec(query).first()

    def create(self, name: str, email: str, password_hash: Optional[str]) -> User:
        """Persist a new user. The password must already be hashed."""
        db_user = User(name=name, email=email, password_hash=password_hash)
        try:
            return self._save(db_user)
        except IntegrityError as e:
            # Lost a signup race with another request for the same email
            if "user.email" in str(e):
                raise DuplicateEmail() from e
            raise


class TodoRepository(BaseRepository[Todo]):
    """Repository for Todo entity. Ownership is enforced by the todo service."""

    def __init__(self, session: Session):
        super().__init__(session, Todo)

    def find_by_owner(self, owner_id: uuid.UUID) -> List[Todo]:
        """Get todos by owner ID in insertion order."""
        query = cast(Select, select(Todo)
                     .where(Todo.owner_id == owner_id)
                     .order_by(Todo.created_at))
        result = self.session.exec(query).all()
        return cast(List[Todo], result)

    def find_owner(self, todo: Todo) -> Optional[User]:
        """Load the owning user of a todo."""
        return self.session.get(User, todo.owner_id)

    def create(self, title: str, owner_id: uuid.UUID) -> Todo:
        """Create a new, not completed todo for a user."""
        return self._save(Todo(title=title, completed=False, owner_id=owner_id))

    def apply_update(self, db_todo: Todo, changes: dict) -> Todo:
        """Set only the given fields and persist."""
        for key, value in changes.items():
            setattr(db_todo, key, value)
        return self._save(db_todo)

    def delete(self, db_todo: Todo) -> None:
        self._remove(db_todo)
