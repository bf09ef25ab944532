from typing import Optional

from fastapi import status


class TodoAppError(Exception):
    """Base class for errors the API turns into a client facing response."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(TodoAppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class Unauthorized(TodoAppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class NotFound(TodoAppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class DuplicateEmail(TodoAppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Email address already in use"
