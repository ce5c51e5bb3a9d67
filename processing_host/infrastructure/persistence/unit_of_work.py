"""SQLAlchemy implementation of the UnitOfWork port."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from processing_host.application.common import UnitOfWork
from processing_host.domain.common import InfrastructureError, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy errors as domain errors."""
    try:
        yield
    except (IntegrityError, DataError) as e:
        raise ValidationError(f"Data violates an integrity constraint: {e.orig}") from e
    except SQLAlchemyError as e:
        logger.error(f"Storage failure: {e!s}", exc_info=True)
        raise InfrastructureError("Storage failure") from e


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work over one SQLAlchemy session.

    The session's transaction is the unit of work's transaction; each
    command runs in a nested transaction (SAVEPOINT).
    """

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        self.ensure_open()
        # The nested transaction rolls back to its SAVEPOINT when the block raises
        with translate_storage_errors(), self.session.begin_nested():
            yield
            self.session.flush()

    def _commit(self) -> None:
        with translate_storage_errors():
            self.session.commit()
        logger.debug("Unit of work committed")

    def _rollback(self) -> None:
        with translate_storage_errors():
            self.session.rollback()
        logger.debug("Unit of work rolled back")

    def _release(self) -> None:
        self.session.close()
