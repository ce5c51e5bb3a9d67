"""
Processing ports.

The infrastructure layer provides the backing data engine behind these
interfaces. Handlers only ever talk to a DataSource opened for the
current unit of work.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from processing_host.application.common import UnitOfWork
from processing_host.application.processing.commands import (
    FilterCriteria,
    OrderByProperty,
    Record,
)
from processing_host.domain.identity import Principal


class DataSource(Protocol):
    """Records of one entity, seen through one unit of work."""

    name: str

    def read(
        self,
        filters: Sequence[FilterCriteria],
        order_by: Sequence[OrderByProperty],
        top: int | None,
        skip: int,
    ) -> list[dict[str, Any]]: ...

    def count(self, filters: Sequence[FilterCriteria]) -> int: ...

    def insert(self, records: Sequence[Record]) -> list[Any]:
        """Insert records and return their identifiers."""
        ...

    def update(self, records: Sequence[Record]) -> int: ...

    def delete(self, records: Sequence[Record]) -> int: ...


class DataSourceRegistry(Protocol):
    def names(self) -> list[str]: ...

    def open(self, name: str, unit_of_work: UnitOfWork) -> DataSource:
        """
        Open the named data source inside a unit of work.

        Raises:
            DataSourceNotFoundError: If no data source is registered under the name
        """
        ...


class CommandAuthorizer(Protocol):
    def authorize(self, command: object, principal: Principal | None) -> None:
        """
        Raises:
            AuthorizationError: If the principal may not execute the command
        """
        ...

