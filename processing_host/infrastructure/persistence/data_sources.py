"""SQLAlchemy-backed data sources."""

from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import ColumnElement, func, inspect, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from processing_host.application.common import UnitOfWork
from processing_host.application.processing.commands import (
    FilterCriteria,
    OrderByProperty,
    Record,
)
from processing_host.database import Base
from processing_host.domain.common import (
    ConflictError,
    DataSourceNotFoundError,
    EntityNotFoundError,
    ValidationError,
)
from processing_host.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork

ID_PROPERTY = "id"


class SqlAlchemyDataSource:
    """
    Records of one mapped model, read and written through a session.

    Records are plain dicts keyed by the model's column attribute names.
    """

    def __init__(self, name: str, model: type[Base], session: Session) -> None:
        self.name = name
        self.model = model
        self.session = session
        self._columns = {attr.key: attr.columns[0] for attr in inspect(model).column_attrs}

    @property
    def properties(self) -> list[str]:
        return list(self._columns)

    def read(
        self,
        filters: Sequence[FilterCriteria],
        order_by: Sequence[OrderByProperty],
        top: int | None,
        skip: int,
    ) -> list[dict[str, Any]]:
        stmt = self._filtered(select(self.model), filters)

        for order in order_by:
            column = self._column(order.property)
            stmt = stmt.order_by(column.desc() if order.descending else column.asc())
        if not order_by and (top is not None or skip):
            # Paging needs a stable order
            stmt = stmt.order_by(self._column(ID_PROPERTY))

        if skip:
            stmt = stmt.offset(skip)
        if top is not None:
            stmt = stmt.limit(top)

        return [self._to_record(row) for row in self.session.execute(stmt).scalars()]

    def count(self, filters: Sequence[FilterCriteria]) -> int:
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        return self.session.execute(stmt).scalar_one()

    def insert(self, records: Sequence[Record]) -> list[Any]:
        instances = []
        for record in records:
            values = self._validated(record)
            self._check_required(values)
            record_id = values.get(ID_PROPERTY)
            if record_id is not None and self.session.get(self.model, record_id) is not None:
                raise ConflictError(
                    f"{self.name} with id {record_id} already exists",
                    {"data_source": self.name, "id": record_id},
                )
            instance = self.model(**values)
            self.session.add(instance)
            instances.append(instance)

        # Populates generated identifiers
        self.session.flush()
        return [getattr(instance, ID_PROPERTY) for instance in instances]

    def update(self, records: Sequence[Record]) -> int:
        for record in records:
            values = self._validated(record)
            instance = self._get_existing(values)
            for key, value in values.items():
                if key == ID_PROPERTY:
                    continue
                if value is None and self._is_required(key):
                    raise ValidationError(f"Property '{key}' is required", field=key)
                setattr(instance, key, value)
        self.session.flush()
        return len(records)

    def delete(self, records: Sequence[Record]) -> int:
        for record in records:
            instance = self._get_existing(self._validated(record))
            self.session.delete(instance)
        # Deletes reach the database before later updates and inserts
        self.session.flush()
        return len(records)

    def _filtered(self, stmt: Select[Any], filters: Iterable[FilterCriteria]) -> Select[Any]:
        for criteria in filters:
            stmt = stmt.where(self._condition(criteria))
        return stmt

    def _condition(self, criteria: FilterCriteria) -> ColumnElement[bool]:
        column = self._column(criteria.property)
        value = criteria.value

        if criteria.operation in ("contains", "startswith"):
            if not isinstance(value, str):
                raise ValidationError(
                    f"Filter operation '{criteria.operation}' requires a text value",
                    field=criteria.property,
                )
        elif criteria.operation == "in":
            for item in value:
                self._check_type(criteria.property, item)
        else:
            self._check_type(criteria.property, value)

        match criteria.operation:
            case "equals":
                return column.is_(None) if value is None else column == value
            case "notequals":
                return column.is_not(None) if value is None else column != value
            case "less":
                return column < value
            case "lessequal":
                return column <= value
            case "greater":
                return column > value
            case "greaterequal":
                return column >= value
            case "contains":
                return column.contains(value, autoescape=True)
            case "startswith":
                return column.startswith(value, autoescape=True)
            case "in":
                return column.in_(value)
        raise ValidationError(f"Unsupported filter operation '{criteria.operation}'")

    def _column(self, key: str) -> Any:  # noqa: ANN401
        column = self._columns.get(key)
        if column is None:
            raise ValidationError(f"{self.name} has no property '{key}'", field=key)
        return column

    def _validated(self, record: Record) -> dict[str, Any]:
        for key, value in record.items():
            self._check_type(key, value)
        return dict(record)

    def _check_type(self, key: str, value: Any) -> None:  # noqa: ANN401
        """Reject values the column cannot store before they reach the driver."""
        column = self._column(key)
        if value is None:
            return
        try:
            expected = column.type.python_type
        except NotImplementedError:
            return

        if isinstance(value, bool):
            matches = expected is bool
        elif expected is float:
            matches = isinstance(value, int | float)
        else:
            matches = isinstance(value, expected)
        if not matches:
            raise ValidationError(
                f"Property '{key}' expects a value of type {expected.__name__}, "
                f"got {type(value).__name__}",
                field=key,
            )

    def _is_required(self, key: str) -> bool:
        column = self._columns[key]
        return (
            not column.nullable
            and not column.primary_key
            and column.default is None
            and column.server_default is None
        )

    def _check_required(self, values: dict[str, Any]) -> None:
        for key in self._columns:
            if self._is_required(key) and values.get(key) is None:
                raise ValidationError(f"Property '{key}' is required", field=key)

    def _get_existing(self, values: dict[str, Any]) -> Base:
        record_id = values.get(ID_PROPERTY)
        if record_id is None:
            raise ValidationError(f"Property '{ID_PROPERTY}' is required", field=ID_PROPERTY)
        instance = self.session.get(self.model, record_id)
        if instance is None:
            raise EntityNotFoundError(self.name, record_id)
        return instance

    def _to_record(self, instance: Base) -> dict[str, Any]:
        return {key: getattr(instance, key) for key in self._columns}


class SqlAlchemyDataSourceRegistry:
    """Maps ``"<Module>.<Entity>"`` names to mapped models."""

    def __init__(self, models: Iterable[type[Base]]) -> None:
        self._models: dict[str, type[Base]] = {}
        for model in models:
            name = getattr(model, "__data_source__", None)
            if name is None:
                raise ValueError(f"Model {model.__name__} does not declare __data_source__")
            self._models[name] = model

    @classmethod
    def from_base(cls, base: type[Base] = Base) -> "SqlAlchemyDataSourceRegistry":
        """Register every mapped model of ``base`` that declares ``__data_source__``."""
        models = [
            mapper.class_
            for mapper in base.registry.mappers
            if getattr(mapper.class_, "__data_source__", None)
        ]
        return cls(models)

    def names(self) -> list[str]:
        return sorted(self._models)

    def open(self, name: str, unit_of_work: UnitOfWork) -> SqlAlchemyDataSource:
        model = self._models.get(name)
        if model is None:
            raise DataSourceNotFoundError(name)
        if not isinstance(unit_of_work, SqlAlchemyUnitOfWork):
            raise TypeError(
                f"{type(self).__name__} requires a SqlAlchemyUnitOfWork, "
                f"got {type(unit_of_work).__name__}"
            )
        return SqlAlchemyDataSource(name, model, unit_of_work.session)
