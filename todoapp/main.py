import uuid
from contextlib import asynccontextmanager
from typing import List, Annotated, Optional

from fastapi import Depends, FastAPI, Request, Response, status, Path
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from logger import logger
from .auth import Authenticator
from .config import CORS_ORIGINS
from .credentials import CredentialStore
from .database import get_db_session, init_db
from .dependencies import (
    get_authenticator, get_credential_store, get_session_token, get_todo_service,
    require_identity, set_session_cookie, clear_session_cookie, json_or_form
)
from .errors import TodoAppError
from .models import Todo
from .schemas import (
    Identity, LoginRequest, SessionRead, UserCreate, UserRead,
    TodoCreate, TodoRead, TodoUpdate
)
from .security import shutdown_hash_executor
from .sessions import SessionStore
from .todos import TodoService
from .views import router as views_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup: Initialize the database and drop stale sessions
    logger.info("Initializing database...")
    init_db()
    with get_db_session() as session:
        purged = SessionStore(session).purge_expired()
    if purged:
        logger.info(f"Purged {purged} expired sessions")
    yield
    # Shutdown: Perform cleanup operations
    logger.info("Shutting down application...")
    shutdown_hash_executor()


app = FastAPI(
    title="Todo API",
    description="Session authenticated todo lists with JSON and HTML frontends",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(TodoAppError)
async def todo_app_error_handler(request: Request, exc: TodoAppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies and ids are plain client errors here, not 422s
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def todo_to_read(request: Request, todo: Todo) -> TodoRead:
    return TodoRead(
        id=todo.id,
        title=todo.title,
        completed=todo.completed,
        owner_id=todo.owner_id,
        url=str(request.url_for("read_todo", todo_id=str(todo.id))),
    )


@app.get("/health", summary="Health check")
async def health() -> dict:
    return {"status": "ok"}


# Authentication endpoints
@app.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED, summary="Sign up")
async def create_user(
        user: Annotated[UserCreate, Depends(json_or_form(UserCreate))],
        response: Response,
        credentials: Annotated[CredentialStore, Depends(get_credential_store)],
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
) -> UserRead:
    """
    Create a new user and log them in. Accepts JSON or a form.
    """
    db_user = await credentials.create_user(user.name, user.email, user.password)
    set_session_cookie(response, authenticator.start_session(db_user, previous_token=token))
    return UserRead(id=db_user.id, name=db_user.name, email=db_user.email)


@app.post("/login", response_model=SessionRead, summary="Log in")
async def login(
        form_data: Annotated[LoginRequest, Depends(json_or_form(LoginRequest))],
        response: Response,
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
) -> SessionRead:
    """
    Log in with email and password, sent as JSON or as a form.
    """
    logger.info(f"Login attempt for user: {form_data.email}")

    user = await authenticator.authenticate_credentials(form_data.email, form_data.password)
    new_token = authenticator.start_session(user, previous_token=token)
    set_session_cookie(response, new_token)
    return SessionRead(token=new_token, user=UserRead(id=user.id, name=user.name, email=user.email))


@app.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Log out")
def logout(
        current_user: Annotated[Identity, Depends(require_identity)],
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
) -> Response:
    """
    End the current session.
    """
    authenticator.end_session(token)
    logger.info(f"User {current_user.id} logged out")
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookie(response)
    return response


@app.get("/users/me", response_model=UserRead, summary="Get current user")
def read_users_me(
        current_user: Annotated[Identity, Depends(require_identity)]
) -> UserRead:
    """
    Get current authenticated user.
    """
    return UserRead(id=current_user.id, name=current_user.name, email=current_user.email)


# Todo endpoints. Plain def so the blocking database calls run in the threadpool.
@app.get("/todos", response_model=List[TodoRead], summary="List my todos")
def list_todos(
        request: Request,
        current_user: Annotated[Identity, Depends(require_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
) -> List[TodoRead]:
    """
    Get all todos of the current user, oldest first.
    """
    return [todo_to_read(request, todo) for todo in todos.list(current_user)]


@app.post("/todos", response_model=TodoRead, status_code=status.HTTP_201_CREATED, summary="Create todo")
def create_todo(
        request: Request,
        current_user: Annotated[Identity, Depends(require_identity)],
        todo: Annotated[TodoCreate, Depends(json_or_form(TodoCreate))],
        todos: Annotated[TodoService, Depends(get_todo_service)]
) -> TodoRead:
    """
    Create a new todo for current user. Accepts JSON or a form.
    """
    return todo_to_read(request, todos.create(current_user, todo.title))


@app.get("/todos/{todo_id}", response_model=TodoRead, summary="Get todo by ID")
def read_todo(
        request: Request,
        todo_id: Annotated[uuid.UUID, Path(...)],
        current_user: Annotated[Identity, Depends(require_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
) -> TodoRead:
    """
    Get a specific todo owned by current user.
    """
    return todo_to_read(request, todos.get(current_user, todo_id))


@app.patch("/todos/{todo_id}", response_model=TodoRead, summary="Update todo")
def update_todo(
        request: Request,
        todo_id: Annotated[uuid.UUID, Path(...)],
        current_user: Annotated[Identity, Depends(require_identity)],
        todo_update: Annotated[TodoUpdate, Depends(json_or_form(TodoUpdate))],
        todos: Annotated[TodoService, Depends(get_todo_service)]
) -> TodoRead:
    """
    Change the title and/or completion of a todo owned by current user.
    """
    return todo_to_read(request, todos.update(current_user, todo_id, todo_update))


@app.delete("/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete todo")
def delete_todo(
        todo_id: Annotated[uuid.UUID, Path(...)],
        current_user: Annotated[Identity, Depends(require_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
) -> None:
    """
    Delete a specific todo owned by current user.
    """
    todos.delete(current_user, todo_id)


app.include_router(views_router)
