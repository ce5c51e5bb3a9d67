"""Default command handlers for reading and saving records."""

import structlog

from processing_host.application.common import CommandHandler, UnitOfWork
from processing_host.application.processing.commands import ReadCommand, SaveCommand
from processing_host.application.processing.protocols import DataSourceRegistry
from processing_host.application.processing.results import ReadResult, SaveResult

logger = structlog.get_logger(__name__)


class ReadCommandHandler(CommandHandler[ReadCommand, ReadResult]):
    def __init__(self, registry: DataSourceRegistry) -> None:
        self._registry = registry

    def handle(self, command: ReadCommand, unit_of_work: UnitOfWork) -> ReadResult:
        data_source = self._registry.open(command.data_source, unit_of_work)

        records: tuple[dict, ...] = ()
        if command.read_records:
            records = tuple(
                data_source.read(command.filters, command.order_by, command.top, command.skip)
            )

        total_count = data_source.count(command.filters) if command.read_total_count else None
        return ReadResult(records=records, total_count=total_count)


class SaveCommandHandler(CommandHandler[SaveCommand, SaveResult]):
    """
    Applies deletes, then updates, then inserts.

    Nothing is committed here. The effects stay pending in the unit of
    work until the caller commits it.
    """

    def __init__(self, registry: DataSourceRegistry) -> None:
        self._registry = registry

    def handle(self, command: SaveCommand, unit_of_work: UnitOfWork) -> SaveResult:
        data_source = self._registry.open(command.data_source, unit_of_work)

        deleted = data_source.delete(command.to_delete) if command.to_delete else 0
        updated = data_source.update(command.to_update) if command.to_update else 0
        inserted_ids = data_source.insert(command.to_insert) if command.to_insert else []

        logger.debug(
            "records_saved",
            data_source=command.data_source,
            inserted=len(inserted_ids),
            updated=updated,
            deleted=deleted,
        )
        return SaveResult(
            inserted=len(inserted_ids),
            updated=updated,
            deleted=deleted,
            inserted_ids=tuple(inserted_ids),
        )
