"""
Command processing.

- ReadCommand / SaveCommand: the built-in command variants
- ProcessingEngine: executes command batches inside a unit of work
- ReadResult / SaveResult / CommandError: what each command produces
"""

from .authorization import AllowAllAuthorizer, AuthenticatedWriteAuthorizer
from .commands import FilterCriteria, OrderByProperty, ReadCommand, Record, SaveCommand
from .engine import ProcessingEngine
from .results import CommandError, CommandResult, ReadResult, SaveResult

__all__ = [
    "AllowAllAuthorizer",
    "AuthenticatedWriteAuthorizer",
    "CommandError",
    "CommandResult",
    "FilterCriteria",
    "OrderByProperty",
    "ProcessingEngine",
    "ReadCommand",
    "ReadResult",
    "Record",
    "SaveCommand",
    "SaveResult",
]
