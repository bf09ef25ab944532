import uuid
from typing import List

from logger import logger
from .errors import InvalidInput, NotFound, Unauthorized
from .models import Todo
from .repository import TodoRepository
from .schemas import Identity, TodoUpdate


class TodoService:
    """
    Todo operations on behalf of an authenticated caller.

    Every lookup by id checks ownership before anything is returned or
    changed. A missing todo raises NotFound, somebody else's todo raises
    Unauthorized.
    """

    def __init__(self, todos: TodoRepository):
        self.todos = todos

    def list(self, caller: Identity) -> List[Todo]:
        return self.todos.find_by_owner(caller.id)

    def create(self, caller: Identity, title: str) -> Todo:
        _check_title(title)
        todo = self.todos.create(title=title, owner_id=caller.id)
        logger.info(f"User {caller.id} created todo {todo.id}")
        return todo

    def _get_owned(self, caller: Identity, todo_id: uuid.UUID) -> Todo:
        todo = self.todos.get(todo_id)
        if todo is None:
            raise NotFound("Todo not found")
        if todo.owner_id != caller.id:
            logger.warning(f"User {caller.id} denied access to todo {todo_id}")
            raise Unauthorized("Todo belongs to another user")
        return todo

    def get(self, caller: Identity, todo_id: uuid.UUID) -> Todo:
        return self._get_owned(caller, todo_id)

    def update(self, caller: Identity, todo_id: uuid.UUID, todo_update: TodoUpdate) -> Todo:
        """Merge the supplied fields into the todo, omitted or null fields are kept."""
        todo = self._get_owned(caller, todo_id)
        changes = {
            key: value
            for key, value in todo_update.model_dump(exclude_unset=True).items()
            if value is not None and key in ("title", "completed")
        }
        if "title" in changes:
            _check_title(changes["title"])
        todo = self.todos.apply_update(todo, changes)
        logger.info(f"User {caller.id} updated todo {todo_id}: {sorted(changes)}")
        return todo

    def delete(self, caller: Identity, todo_id: uuid.UUID) -> None:
        todo = self._get_owned(caller, todo_id)
        self.todos.delete(todo)
        logger.info(f"User {caller.id} deleted todo {todo_id}")


def _check_title(title: str) -> None:
    if not title or not title.strip():
        raise InvalidInput("Title must not be empty")
