import uuid
from typing import Optional

from pydantic import field_validator
from pydantic.networks import validate_email
from sqlmodel import SQLModel


class UserCreate(SQLModel):
    """Schema for signup requests."""
    name: str
    email: str
    password: str

    @field_validator("email")
    def email_is_valid(cls, v):
        # Checked with email-validator but stored exactly as submitted
        validate_email(v)
        return v

    @field_validator("name")
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name must not be empty")
        return v

    @field_validator("password")
    def password_min_length(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v


class LoginRequest(SQLModel):
    """Schema for login requests, JSON or form encoded."""
    email: str
    password: str


class UserRead(SQLModel):
    """Schema for user read responses."""
    id: uuid.UUID
    name: str
    email: str


class Identity(SQLModel):
    """The resolved caller of a protected operation."""
    id: uuid.UUID
    name: str
    email: str


class SessionRead(SQLModel):
    """Response of a successful API login."""
    token: str
    user: UserRead


class TodoCreate(SQLModel):
    """Schema for todo creation requests."""
    title: str


class TodoUpdate(SQLModel):
    """Partial update, fields left out are not touched."""
    title: Optional[str] = None
    completed: Optional[bool] = None


class TodoRead(SQLModel):
    """
    Schema for todo read responses.

    owner_id is the id of the owning user (ownerId in camel case clients).
    """
    id: uuid.UUID
    title: str
    completed: bool
    owner_id: uuid.UUID
    url: Optional[str] = None
