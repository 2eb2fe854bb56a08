"""
Analytics error taxonomy.

Every operation raises one of these; callers map them to their own
transport (HTTP status, CLI exit code).

- ValidationError: malformed or missing input (400)
- ConflictError: uniqueness race on a conditional insert, recovered internally
- NotFoundError: targeted lookup miss (404)
- UnauthorizedError: no caller identity (401)
- StoreUnavailableError / QueryTimeoutError: storage failure
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for analytics errors."""


class ValidationError(AnalyticsError):
    """Raised when an input is missing or malformed."""

    def __init__(self, message: str, field_name: str | None = None) -> None:
        self.message = message
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}" if field_name else message)


class ConflictError(AnalyticsError):
    """Raised when a conditional insert loses a uniqueness race."""

    def __init__(self, entity: str, key: tuple[str, ...]) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} already exists for key {key}")


class NotFoundError(AnalyticsError):
    """Raised when a referenced record does not exist for the user."""

    def __init__(self, entity: str, identifier: str) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class UnauthorizedError(AnalyticsError):
    """Raised when an operation is invoked without a user id."""

    def __init__(self, message: str = "User id is required") -> None:
        super().__init__(message)


class StoreUnavailableError(AnalyticsError):
    """Raised when the backing store cannot serve a request."""


class QueryTimeoutError(StoreUnavailableError):
    """Raised when a storage statement is interrupted by the query timeout."""


def require_user(user_id: str | None) -> str:
    """Return the user id or raise UnauthorizedError when it is empty."""
    if user_id is None or not str(user_id).strip():
        raise UnauthorizedError()
    return str(user_id)
