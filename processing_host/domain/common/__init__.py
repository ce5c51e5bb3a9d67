"""
Domain common module.

Contains the error model shared by every layer:
- ErrorKind: Classification of failures
- DomainError and its subclasses, one per kind
- ContractViolationError: Caller programming errors
"""

from .exceptions import (
    AlreadyTerminalError,
    AuthorizationError,
    ConflictError,
    ContractViolationError,
    DataSourceNotFoundError,
    DomainError,
    EntityNotFoundError,
    ErrorKind,
    InfrastructureError,
    InvalidStateError,
    ValidationError,
)

__all__ = [
    "AlreadyTerminalError",
    "AuthorizationError",
    "ConflictError",
    "ContractViolationError",
    "DataSourceNotFoundError",
    "DomainError",
    "EntityNotFoundError",
    "ErrorKind",
    "InfrastructureError",
    "InvalidStateError",
    "ValidationError",
]
