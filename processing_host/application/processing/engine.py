"""
Processing engine.

Executes an ordered batch of commands inside one unit of work.

Guarantees:
- Commands run sequentially, in submission order.
- Fail-fast: the first failing command ends the batch. Its Failure is the
  last result; later commands are never executed.
- Nothing is committed. Successful effects stay pending in the unit of
  work, and a failing command's own effects are discarded via a savepoint.
- Infrastructure failures and interruptions roll the unit of work back.
- No retries, and no state is kept between calls.
"""

from collections.abc import Sequence
from typing import Any

import structlog

from processing_host.application.common import Command, CommandHandler, UnitOfWork
from processing_host.application.processing.authorization import AuthenticatedWriteAuthorizer
from processing_host.application.processing.commands import ReadCommand, SaveCommand
from processing_host.application.processing.handlers import ReadCommandHandler, SaveCommandHandler
from processing_host.application.processing.protocols import CommandAuthorizer, DataSourceRegistry
from processing_host.application.processing.results import (
    CommandError,
    CommandResult,
    Failure,
    Success,
)
from processing_host.domain.common import ContractViolationError, DomainError, ErrorKind
from processing_host.domain.identity import Principal

logger = structlog.get_logger(__name__)


class ProcessingEngine:
    """Dispatches commands to their handlers within a unit of work."""

    def __init__(
        self,
        registry: DataSourceRegistry,
        authorizer: CommandAuthorizer | None = None,
    ) -> None:
        self._registry = registry
        self._authorizer = authorizer or AuthenticatedWriteAuthorizer()
        self._handlers: dict[type[Command], CommandHandler[Any, Any]] = {
            ReadCommand: ReadCommandHandler(registry),
            SaveCommand: SaveCommandHandler(registry),
        }

    def register_handler(
        self, command_type: type[Command], handler: CommandHandler[Any, Any]
    ) -> None:
        """Add or replace the handler for a command type."""
        self._handlers[command_type] = handler

    @property
    def command_types(self) -> list[str]:
        return sorted(command_type.__name__ for command_type in self._handlers)

    def describe(self) -> str:
        return (
            f"ProcessingEngine(commands=[{', '.join(self.command_types)}], "
            f"data_sources=[{', '.join(self._registry.names())}])"
        )

    def __str__(self) -> str:
        return self.describe()

    def execute(
        self,
        commands: Sequence[Command],
        unit_of_work: UnitOfWork,
        principal: Principal | None = None,
    ) -> list[CommandResult]:
        """
        Execute commands in order and return one result per executed command.

        Args:
            commands: Non-empty batch of commands
            unit_of_work: OPEN unit of work the effects stay pending in
            principal: Authenticated caller, or None for anonymous

        Returns:
            Results in submission order. When a command fails, its Failure is
            the last element and the remaining commands have no result.

        Raises:
            ContractViolationError: If the batch is empty or holds a command without a handler
            InvalidStateError: If the unit of work is not OPEN or already in use
        """
        handlers = self._resolve_handlers(commands)

        results: list[CommandResult] = []
        with unit_of_work.executing():
            try:
                for index, (command, handler) in enumerate(zip(commands, handlers, strict=True)):
                    try:
                        self._authorizer.authorize(command, principal)
                        with unit_of_work.savepoint():
                            payload = handler.handle(command, unit_of_work)
                    except DomainError as e:
                        results.append(Failure(CommandError.from_exception(e, index)))
                        self._on_failure(e, index, command, unit_of_work)
                        break
                    results.append(Success(payload))
            except BaseException:
                # Interrupted mid-batch: nothing in it may take effect
                if unit_of_work.is_open:
                    unit_of_work.rollback()
                raise

        return results

    def _resolve_handlers(self, commands: Sequence[Command]) -> list[CommandHandler[Any, Any]]:
        if not commands:
            raise ContractViolationError("Execute requires at least one command")

        handlers = []
        for command in commands:
            handler = self._handlers.get(type(command))
            if handler is None:
                raise ContractViolationError(
                    f"No handler registered for command type {type(command).__name__}"
                )
            handlers.append(handler)
        return handlers

    def _on_failure(
        self, error: DomainError, index: int, command: Command, unit_of_work: UnitOfWork
    ) -> None:
        if error.kind is ErrorKind.INFRASTRUCTURE:
            logger.error(
                "command_infrastructure_failure",
                command_index=index,
                data_source=command.data_source,
                error=str(error),
            )
            if unit_of_work.is_open:
                unit_of_work.rollback()
            return

        logger.warning(
            "command_failed",
            command_index=index,
            command_type=type(command).__name__,
            data_source=command.data_source,
            kind=str(error.kind),
            message=error.message,
        )
