"""
Domain layer exceptions.

Every failure the processing core can report carries an ``ErrorKind``.
The engine converts raised errors into ``Failure`` results with the same
kind, and the HTTP layer maps the kind to a status code.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of command and unit-of-work failures."""

    INVALID_STATE = "invalid_state"
    VALIDATION_FAILED = "validation_failed"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INFRASTRUCTURE = "infrastructure"
    ALREADY_TERMINAL = "already_terminal"


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain exceptions should inherit from this class
    so they can be caught and handled uniformly.
    """

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(DomainError):
    """
    Raised when submitted data violates integrity or business constraints.

    Example: Unknown property name, missing required property.
    """

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, value: object = None) -> None:
        details: dict[str, object] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, details)
        self.field = field
        self.value = value


class EntityNotFoundError(DomainError):
    """
    Raised when a record cannot be found.

    Example: Updating a book by ID that doesn't exist.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: object) -> None:
        message = f"{entity_type} with id {entity_id} not found"
        super().__init__(message, {"entity_type": entity_type, "entity_id": entity_id})
        self.entity_type = entity_type
        self.entity_id = entity_id


class DataSourceNotFoundError(DomainError):
    """Raised when a command targets a data source that is not registered."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, data_source: str) -> None:
        super().__init__(f"Data source '{data_source}' does not exist", {"data_source": data_source})
        self.data_source = data_source


class ConflictError(DomainError):
    """
    Raised when a write collides with existing state.

    Example: Inserting a record with an ID that is already taken.
    """

    kind = ErrorKind.CONFLICT


class AuthorizationError(DomainError):
    """
    Raised when an operation is not authorized.

    Example: Anonymous user trying to save records.
    """

    kind = ErrorKind.AUTHORIZATION

    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(message)


class InfrastructureError(DomainError):
    """Raised when the backing storage fails (connectivity, timeouts, driver errors)."""

    kind = ErrorKind.INFRASTRUCTURE


class InvalidStateError(DomainError):
    """Raised when a unit of work is used outside the OPEN state, or concurrently."""

    kind = ErrorKind.INVALID_STATE


class AlreadyTerminalError(DomainError):
    """Raised on a second commit or rollback of the same unit of work."""

    kind = ErrorKind.ALREADY_TERMINAL

    def __init__(self, state: str) -> None:
        super().__init__(f"Unit of work is already {state}", {"state": state})
        self.state = state


class ContractViolationError(ValueError):
    """Raised when a caller breaks the engine's calling contract (e.g. an empty batch)."""
