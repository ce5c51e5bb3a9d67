"""
Read and save commands.

Example:
    ReadCommand(
        "Bookstore.Book",
        filters=(FilterCriteria("title", "startswith", "New"),),
        order_by=(OrderByProperty("title"),),
        top=10,
        read_total_count=True,
    )

    SaveCommand("Bookstore.Book", to_insert=({"title": "NewBook"},))
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from processing_host.application.common import Command

Record = Mapping[str, Any]

FILTER_OPERATIONS = frozenset(
    {
        "equals",
        "notequals",
        "less",
        "lessequal",
        "greater",
        "greaterequal",
        "contains",
        "startswith",
        "in",
    }
)


@dataclass(frozen=True)
class FilterCriteria:
    """A single ``<property> <operation> <value>`` predicate."""

    property: str
    operation: str = "equals"
    value: Any = None

    def __post_init__(self) -> None:
        if not self.property:
            raise ValueError("Filter property cannot be empty")
        operation = self.operation.lower()
        if operation not in FILTER_OPERATIONS:
            raise ValueError(
                f"Unknown filter operation '{self.operation}'. "
                f"Supported: {', '.join(sorted(FILTER_OPERATIONS))}"
            )
        object.__setattr__(self, "operation", operation)
        if operation == "in":
            if isinstance(self.value, str | bytes) or not isinstance(self.value, Iterable):
                raise ValueError("Filter operation 'in' requires a list of values")
            object.__setattr__(self, "value", tuple(self.value))


@dataclass(frozen=True)
class OrderByProperty:
    property: str
    descending: bool = False


def _freeze_records(records: Iterable[Record]) -> tuple[Record, ...]:
    return tuple(MappingProxyType(dict(record)) for record in records)


@dataclass(frozen=True)
class ReadCommand(Command):
    """
    Read records from a data source.

    Attributes:
        filters: Predicates combined with AND
        order_by: Sort order, applied before paging
        top: Maximum number of records to return (None for all)
        skip: Number of records to skip
        read_records: Whether to return the records at all
        read_total_count: Whether to count all matching records, ignoring paging
    """

    filters: tuple[FilterCriteria, ...] = ()
    order_by: tuple[OrderByProperty, ...] = ()
    top: int | None = None
    skip: int = 0
    read_records: bool = True
    read_total_count: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "filters", tuple(self.filters))
        object.__setattr__(self, "order_by", tuple(self.order_by))
        if self.top is not None and self.top < 0:
            raise ValueError("top cannot be negative")
        if self.skip < 0:
            raise ValueError("skip cannot be negative")
        if not self.read_records and not self.read_total_count:
            raise ValueError("ReadCommand must read records, the total count, or both")


@dataclass(frozen=True)
class SaveCommand(Command):
    """
    Insert, update and delete records of one data source.

    Deletes run first, then updates, then inserts. Updated and deleted
    records must carry their ``id``; inserted records get one generated
    when it is missing.
    """

    to_insert: tuple[Record, ...] = field(default=())
    to_update: tuple[Record, ...] = field(default=())
    to_delete: tuple[Record, ...] = field(default=())

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "to_insert", _freeze_records(self.to_insert))
        object.__setattr__(self, "to_update", _freeze_records(self.to_update))
        object.__setattr__(self, "to_delete", _freeze_records(self.to_delete))

    @property
    def is_empty(self) -> bool:
        return not (self.to_insert or self.to_update or self.to_delete)
