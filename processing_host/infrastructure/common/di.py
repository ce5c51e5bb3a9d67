from collections.abc import Generator
from typing import Annotated

from fastapi import Depends

from processing_host.application.common import UnitOfWork
from processing_host.application.processing import ProcessingEngine
from processing_host.core import container
from processing_host.database import DatabaseSession


def get_processing_engine() -> ProcessingEngine:
    return container.processing_engine()


def get_unit_of_work(db: DatabaseSession) -> Generator[UnitOfWork, None, None]:
    """
    Create the unit of work for the current request.

    It is closed when the request scope ends. Anything the handler did not
    commit explicitly is rolled back at that point.
    """
    unit_of_work = container.unit_of_work(session=db)
    try:
        yield unit_of_work
    finally:
        unit_of_work.close()


Engine = Annotated[ProcessingEngine, Depends(get_processing_engine)]
RequestUnitOfWork = Annotated[UnitOfWork, Depends(get_unit_of_work)]
