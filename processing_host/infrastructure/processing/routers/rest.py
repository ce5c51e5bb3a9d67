"""
Generic REST API over every registered data source.

Routes are published under ``<REST_BASE_ROUTE>/<Module>/<Entity>/`` and
grouped under the API version tag.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from starlette import status
from starlette.responses import JSONResponse

from processing_host.application.processing import (
    FilterCriteria,
    ReadCommand,
    ReadResult,
    SaveCommand,
    SaveResult,
)
from processing_host.config import get_settings
from processing_host.exceptions import ProcessingHostError, status_for_kind
from processing_host.infrastructure.common.di import Engine, RequestUnitOfWork
from processing_host.infrastructure.identity.dependencies import CurrentPrincipal
from processing_host.infrastructure.processing.execution import (
    execute_or_raise,
    first_failure,
    parse_sort,
    to_command,
    to_read_response,
    to_result_schema,
    to_save_response,
)
from processing_host.infrastructure.processing.schemas import (
    BatchRequest,
    BatchResponse,
    FilterSchema,
    InsertResponse,
    ReadCommandSchema,
    ReadResponse,
    SaveResponse,
)

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix=settings.REST_BASE_ROUTE, tags=[settings.API_GROUP_NAME])

_filters_adapter = TypeAdapter(list[FilterSchema])


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e!s}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred. Please try again later.",
    )


def _parse_filters(raw: str | None) -> list[FilterSchema]:
    if not raw:
        return []
    try:
        return _filters_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValueError(f"Invalid filter: {e}") from e


@router.post("/batch", response_model=BatchResponse)
def execute_batch(
    request: BatchRequest,
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
) -> BatchResponse | JSONResponse:
    """
    Execute a list of commands in one unit of work.

    The batch is committed only when every command succeeded and at least
    one of them was a save. On failure the unit of work is left uncommitted
    and the response carries the results produced up to the failing command.
    """
    try:
        commands = [to_command(schema) for schema in request.commands]
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = engine.execute(commands, unit_of_work, principal)
        error = first_failure(results)
        committed = False
        if error is None and any(isinstance(c, SaveCommand) for c in commands):
            unit_of_work.commit()
            committed = True
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected("execute command batch", e) from e

    response = BatchResponse(
        committed=committed, results=[to_result_schema(result) for result in results]
    )
    if error is not None:
        return JSONResponse(
            status_code=status_for_kind(error.kind, authenticated=principal is not None),
            content=response.model_dump(mode="json"),
        )
    return response


@router.get("/{module}/{entity}/", response_model=ReadResponse)
def read_records(
    module: str,
    entity: str,
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
    filter: Annotated[  # noqa: A002
        str | None, Query(description="JSON list of {property, operation, value}")
    ] = None,
    sort: Annotated[str | None, Query(description="e.g. 'title desc,code'")] = None,
    top: Annotated[int | None, Query(ge=0)] = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    count: Annotated[bool, Query(description="Include the total count")] = False,
) -> ReadResponse:
    """Read records of a data source with optional filtering, sorting and paging."""
    try:
        command = to_command(
            ReadCommandSchema(
                data_source=f"{module}.{entity}",
                filters=_parse_filters(filter),
                order_by=parse_sort(sort),
                top=top,
                skip=skip,
                read_total_count=count,
            )
        )
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected(f"read {module}.{entity}", e) from e

    payload: ReadResult = results[0].unwrap()
    return to_read_response(payload)


@router.get("/{module}/{entity}/{record_id}")
def read_record(
    module: str,
    entity: str,
    record_id: str,
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
) -> dict[str, Any]:
    """Read one record by its id."""
    try:
        command = ReadCommand(
            f"{module}.{entity}", filters=(FilterCriteria("id", "equals", record_id),), top=1
        )
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected(f"read {module}.{entity} {record_id}", e) from e

    payload: ReadResult = results[0].unwrap()
    if not payload.records:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{module}.{entity} with id {record_id} not found",
        )
    return payload.records[0]


@router.post(
    "/{module}/{entity}/", response_model=InsertResponse, status_code=status.HTTP_201_CREATED
)
def insert_record(
    module: str,
    entity: str,
    record: Annotated[dict[str, Any], Body()],
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
) -> InsertResponse:
    """Insert one record and commit it."""
    try:
        command = SaveCommand(f"{module}.{entity}", to_insert=(record,))
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
        unit_of_work.commit()
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected(f"insert into {module}.{entity}", e) from e

    payload: SaveResult = results[0].unwrap()
    return InsertResponse(id=payload.inserted_ids[0])


@router.put("/{module}/{entity}/{record_id}", response_model=SaveResponse)
def update_record(
    module: str,
    entity: str,
    record_id: str,
    record: Annotated[dict[str, Any], Body()],
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
) -> SaveResponse:
    """Update one record and commit it. The id in the path wins over any id in the body."""
    try:
        command = SaveCommand(f"{module}.{entity}", to_update=({**record, "id": record_id},))
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
        unit_of_work.commit()
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected(f"update {module}.{entity} {record_id}", e) from e

    payload: SaveResult = results[0].unwrap()
    return to_save_response(payload)


@router.delete("/{module}/{entity}/{record_id}", response_model=SaveResponse)
def delete_record(
    module: str,
    entity: str,
    record_id: str,
    engine: Engine,
    unit_of_work: RequestUnitOfWork,
    principal: CurrentPrincipal,
) -> SaveResponse:
    """Delete one record and commit."""
    try:
        command = SaveCommand(f"{module}.{entity}", to_delete=({"id": record_id},))
    except ValueError as e:
        raise _bad_request(e) from e

    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
        unit_of_work.commit()
    except ProcessingHostError:
        raise
    except Exception as e:
        raise _unexpected(f"delete {module}.{entity} {record_id}", e) from e

    payload: SaveResult = results[0].unwrap()
    return to_save_response(payload)
