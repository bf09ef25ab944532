import json
from typing import Annotated, Optional, Type, TypeVar

from fastapi import Depends, Request, Response
from pydantic import BaseModel, ValidationError
from sqlmodel import Session

from .auth import Authenticator, DatabaseUserSessionRepository
from .config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_TTL_MINUTES
from .credentials import CredentialStore
from .database import get_session
from .errors import InvalidInput, Unauthorized
from .repository import TodoRepository, UserRepository
from .schemas import Identity
from .sessions import SessionStore
from .todos import TodoService

M = TypeVar("M", bound=BaseModel)


def get_authenticator(session: Annotated[Session, Depends(get_session)]) -> Authenticator:
    users = UserRepository(session)
    sessions = SessionStore(session)
    return Authenticator(
        credentials=CredentialStore(users),
        sessions=sessions,
        users=DatabaseUserSessionRepository(sessions, users),
    )


def get_credential_store(session: Annotated[Session, Depends(get_session)]) -> CredentialStore:
    return CredentialStore(UserRepository(session))


def get_todo_service(session: Annotated[Session, Depends(get_session)]) -> TodoService:
    return TodoService(TodoRepository(session))


def get_session_token(request: Request) -> Optional[str]:
    """Session token from a bearer header, falling back to the session cookie."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def to_identity(user) -> Identity:
    return Identity(id=user.id, name=user.name, email=user.email)


def require_identity(
        token: Annotated[Optional[str], Depends(get_session_token)],
        authenticator: Annotated[Authenticator, Depends(get_authenticator)]
) -> Identity:
    """
    Guard for protected routes.

    Raises Unauthorized before the route body runs when the request has
    no live session.
    """
    if not token:
        raise Unauthorized()
    return to_identity(authenticator.authenticate_request(token))


def optional_identity(
        token: Annotated[Optional[str], Depends(get_session_token)],
        authenticator: Annotated[Authenticator, Depends(get_authenticator)]
) -> Optional[Identity]:
    """Like require_identity, but anonymous requests resolve to None."""
    if not token:
        return None
    try:
        return to_identity(authenticator.authenticate_request(token))
    except Unauthorized:
        return None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TTL_MINUTES * 60,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, httponly=True, secure=SESSION_COOKIE_SECURE, samesite="lax")


async def decode_body(request: Request, model: Type[M]) -> M:
    """Decode a JSON or form encoded body into model, anything else is InvalidInput."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json":
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise InvalidInput("Malformed JSON body")
    elif content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        data = dict(await request.form())
    else:
        raise InvalidInput("Unsupported content type")

    if not isinstance(data, dict):
        raise InvalidInput("Request body must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInput(_summarize(e))


def json_or_form(model: Type[M]):
    """Dependency decoding the request body into model, for JSON and form posts alike."""
    async def dependency(request: Request) -> M:
        return await decode_body(request, model)
    return dependency


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item.get("loc", ()))
        parts.append(f"{field}: {item.get('msg')}" if field else item.get("msg", ""))
    return "; ".join(parts)
