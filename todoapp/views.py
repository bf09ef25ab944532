import uuid
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from logger import logger
from .auth import Authenticator
from .credentials import CredentialStore
from .dependencies import (
    get_authenticator, get_credential_store, get_session_token, get_todo_service,
    optional_identity, set_session_cookie, clear_session_cookie, json_or_form
)
from .errors import DuplicateEmail, TodoAppError, Unauthorized
from .schemas import Identity, TodoCreate, TodoUpdate, UserCreate
from .todos import TodoService

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def _render(request: Request, template: str, context: dict, identity: Optional[Identity] = None,
            status_code: int = status.HTTP_200_OK) -> HTMLResponse:
    base_context = {"current_user": identity, "error_message": None}
    base_context.update(context)
    return templates.TemplateResponse(request, template, base_context, status_code=status_code)


def _redirect_with_session(url: str, token: str) -> RedirectResponse:
    response = RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, token)
    return response


@router.get("/", response_class=HTMLResponse)
def home_page(request: Request, identity: Annotated[Optional[Identity], Depends(optional_identity)]):
    return _render(request, "home.html", {"page_title": "Home"}, identity)


@router.get("/log-in", response_class=HTMLResponse)
def login_page(request: Request):
    return _render(request, "auth.html", {"page_title": "Log In", "action": "log-in", "form_values": {}})


@router.post("/log-in", response_class=HTMLResponse)
async def login_details(
        request: Request,
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
):
    form = await request.form()
    email = str(form.get("email") or "")
    password = str(form.get("password") or "")

    try:
        user = await authenticator.authenticate_credentials(email, password)
    except Unauthorized:
        return _render(
            request,
            "auth.html",
            {"page_title": "Log In", "action": "log-in", "form_values": {"email": email},
             "error_message": "Invalid credentials"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    return _redirect_with_session("/dashboard", authenticator.start_session(user, previous_token=token))


@router.get("/sign-up", response_class=HTMLResponse)
def signup_page(request: Request):
    return _render(request, "auth.html", {"page_title": "Sign Up", "action": "sign-up", "form_values": {}})


@router.post("/sign-up", response_class=HTMLResponse)
async def signup_details(
        request: Request,
        credentials: Annotated[CredentialStore, Depends(get_credential_store)],
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
):
    form = await request.form()
    form_values = {"name": str(form.get("name") or ""), "email": str(form.get("email") or "")}

    def failed(message: str, status_code: int) -> HTMLResponse:
        return _render(
            request,
            "auth.html",
            {"page_title": "Sign Up", "action": "sign-up", "form_values": form_values,
             "error_message": message},
            status_code=status_code,
        )

    password = str(form.get("password") or "")
    if password != str(form.get("confirmPassword") or ""):
        return failed("Passwords do not match", status.HTTP_400_BAD_REQUEST)

    try:
        details = UserCreate(name=form_values["name"], email=form_values["email"], password=password)
    except ValidationError as e:
        return failed("; ".join(error["msg"] for error in e.errors()), status.HTTP_400_BAD_REQUEST)

    try:
        user = await credentials.create_user(details.name, details.email, details.password)
    except DuplicateEmail as e:
        return failed(e.detail, status.HTTP_409_CONFLICT)

    return _redirect_with_session("/dashboard", authenticator.start_session(user, previous_token=token))


def _dashboard(request: Request, identity: Identity, todos: TodoService, error_message: Optional[str] = None,
               status_code: int = status.HTTP_200_OK) -> HTMLResponse:
    return _render(
        request,
        "dashboard.html",
        {"page_title": "Dashboard", "todos": todos.list(identity), "error_message": error_message},
        identity,
        status_code=status_code,
    )


def _back_to_dashboard() -> RedirectResponse:
    return RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)


def _to_login() -> RedirectResponse:
    return RedirectResponse(url="/log-in", status_code=status.HTTP_302_FOUND)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(
        request: Request,
        identity: Annotated[Optional[Identity], Depends(optional_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
):
    if identity is None:
        return _to_login()
    return _dashboard(request, identity, todos)


@router.post("/dashboard/todos", response_class=HTMLResponse)
def dashboard_create_todo(
        request: Request,
        identity: Annotated[Optional[Identity], Depends(optional_identity)],
        todo: Annotated[TodoCreate, Depends(json_or_form(TodoCreate))],
        todos: Annotated[TodoService, Depends(get_todo_service)]
):
    if identity is None:
        return _to_login()
    try:
        todos.create(identity, todo.title)
    except TodoAppError as e:
        return _dashboard(request, identity, todos, e.detail, e.status_code)
    return _back_to_dashboard()


@router.post("/dashboard/todos/{todo_id}/toggle", response_class=HTMLResponse)
def dashboard_toggle_todo(
        request: Request,
        todo_id: uuid.UUID,
        identity: Annotated[Optional[Identity], Depends(optional_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
):
    if identity is None:
        return _to_login()
    try:
        todo = todos.get(identity, todo_id)
        todos.update(identity, todo_id, TodoUpdate(completed=not todo.completed))
    except TodoAppError as e:
        return _dashboard(request, identity, todos, e.detail, e.status_code)
    return _back_to_dashboard()


@router.post("/dashboard/todos/{todo_id}/delete", response_class=HTMLResponse)
def dashboard_delete_todo(
        request: Request,
        todo_id: uuid.UUID,
        identity: Annotated[Optional[Identity], Depends(optional_identity)],
        todos: Annotated[TodoService, Depends(get_todo_service)]
):
    if identity is None:
        return _to_login()
    try:
        todos.delete(identity, todo_id)
    except TodoAppError as e:
        return _dashboard(request, identity, todos, e.detail, e.status_code)
    return _back_to_dashboard()


@router.post("/log-out")
def logout_form(
        authenticator: Annotated[Authenticator, Depends(get_authenticator)],
        token: Annotated[Optional[str], Depends(get_session_token)]
):
    authenticator.end_session(token)
    logger.info("Browser session logged out")
    response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    clear_session_cookie(response)
    return response
