"""
Translation between HTTP shapes and commands / results.

Only the shape of a request is checked here. Whether the data is valid is
decided by the processing engine.
"""

from collections.abc import Sequence

from processing_host.application.common import Command, UnitOfWork
from processing_host.application.processing import (
    CommandError,
    CommandResult,
    FilterCriteria,
    OrderByProperty,
    ProcessingEngine,
    ReadCommand,
    ReadResult,
    SaveCommand,
    SaveResult,
)
from processing_host.domain.identity import Principal
from processing_host.exceptions import CommandFailedError
from processing_host.infrastructure.processing.schemas import (
    CommandErrorSchema,
    CommandResultSchema,
    OrderBySchema,
    ReadCommandSchema,
    ReadResponse,
    SaveCommandSchema,
    SaveResponse,
)


def parse_sort(sort: str | None) -> list[OrderBySchema]:
    """Parse ``"title desc,code"`` into order-by properties."""
    if not sort:
        return []

    order_by = []
    for part in sort.split(","):
        tokens = part.split()
        if not tokens:
            continue
        if len(tokens) > 2 or (len(tokens) == 2 and tokens[1].lower() not in ("asc", "desc")):
            raise ValueError(f"Invalid sort expression '{part.strip()}'")
        order_by.append(
            OrderBySchema(
                property=tokens[0], descending=len(tokens) == 2 and tokens[1].lower() == "desc"
            )
        )
    return order_by


def to_command(schema: ReadCommandSchema | SaveCommandSchema) -> Command:
    """
    Build a command from its request shape.

    Raises:
        ValueError: If the data source name, a filter or the paging is malformed
    """
    if isinstance(schema, ReadCommandSchema):
        return ReadCommand(
            schema.data_source,
            filters=tuple(
                FilterCriteria(f.property, f.operation, f.value) for f in schema.filters
            ),
            order_by=tuple(OrderByProperty(o.property, o.descending) for o in schema.order_by),
            top=schema.top,
            skip=schema.skip,
            read_records=schema.read_records,
            read_total_count=schema.read_total_count,
        )
    return SaveCommand(
        schema.data_source,
        to_insert=tuple(schema.to_insert),
        to_update=tuple(schema.to_update),
        to_delete=tuple(schema.to_delete),
    )


def to_read_response(result: ReadResult) -> ReadResponse:
    return ReadResponse(records=list(result.records), total_count=result.total_count)


def to_save_response(result: SaveResult) -> SaveResponse:
    return SaveResponse(
        inserted=result.inserted,
        updated=result.updated,
        deleted=result.deleted,
        inserted_ids=list(result.inserted_ids),
    )


def to_result_schema(result: CommandResult) -> CommandResultSchema:
    if result.is_failure:
        error: CommandError = result.unwrap_error()
        return CommandResultSchema(
            success=False,
            error=CommandErrorSchema(
                kind=str(error.kind),
                message=error.message,
                command_index=error.command_index,
                details={key: str(value) for key, value in error.details.items()},
            ),
        )

    payload = result.unwrap()
    if isinstance(payload, ReadResult):
        return CommandResultSchema(success=True, data=to_read_response(payload))
    if isinstance(payload, SaveResult):
        return CommandResultSchema(success=True, data=to_save_response(payload))
    return CommandResultSchema(success=True)


def first_failure(results: Sequence[CommandResult]) -> CommandError | None:
    for result in results:
        if result.is_failure:
            return result.unwrap_error()
    return None


def failed_error(error: CommandError, principal: Principal | None) -> CommandFailedError:
    return CommandFailedError(
        error.kind,
        error.message,
        command_index=error.command_index,
        authenticated=principal is not None,
    )


def execute_or_raise(
    engine: ProcessingEngine,
    commands: Sequence[Command],
    unit_of_work: UnitOfWork,
    principal: Principal | None,
) -> list[CommandResult]:
    """
    Execute commands and raise CommandFailedError if any of them failed.

    Returns:
        One Success per command
    """
    results = engine.execute(commands, unit_of_work, principal)
    error = first_failure(results)
    if error is not None:
        raise failed_error(error, principal)
    return results
