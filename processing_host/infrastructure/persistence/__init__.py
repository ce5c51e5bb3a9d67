from .data_sources import SqlAlchemyDataSource, SqlAlchemyDataSourceRegistry
from .unit_of_work import SqlAlchemyUnitOfWork

__all__ = ["SqlAlchemyDataSource", "SqlAlchemyDataSourceRegistry", "SqlAlchemyUnitOfWork"]
