"""Payloads and errors produced by the processing engine."""

from dataclasses import dataclass, field
from typing import Any

from processing_host.application.common import Failure, Result, Success
from processing_host.domain.common import DomainError, ErrorKind


@dataclass(frozen=True)
class ReadResult:
    """
    Payload of a successful ReadCommand.

    Attributes:
        records: Matching records in the requested order (empty if records were not read)
        total_count: Number of matching records ignoring paging, or None if not requested
    """

    records: tuple[dict[str, Any], ...] = ()
    total_count: int | None = None


@dataclass(frozen=True)
class SaveResult:
    """
    Payload of a successful SaveCommand.

    Attributes:
        inserted: Number of inserted records
        updated: Number of updated records
        deleted: Number of deleted records
        inserted_ids: Identifiers of the inserted records, in insert order
    """

    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    inserted_ids: tuple[Any, ...] = ()


@dataclass(frozen=True)
class CommandError:
    """Structured failure of one command."""

    kind: ErrorKind
    message: str
    command_index: int
    details: dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: DomainError, command_index: int) -> "CommandError":
        return cls(
            kind=error.kind,
            message=error.message,
            command_index=command_index,
            details=dict(error.details),
        )


CommandResult = Result[ReadResult | SaveResult | Any, CommandError]

__all__ = [
    "CommandError",
    "CommandResult",
    "Failure",
    "ReadResult",
    "SaveResult",
    "Success",
]
