"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Callable, Generator  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from processing_host import models  # noqa: E402
from processing_host.application.processing import (  # noqa: E402
    AuthenticatedWriteAuthorizer,
    ProcessingEngine,
    SaveCommand,
)
from processing_host.database import Base, build_engine, get_session_factory  # noqa: E402
from processing_host.domain.identity import Principal  # noqa: E402
from processing_host.infrastructure.common.rate_limit import limiter  # noqa: E402
from processing_host.infrastructure.persistence import (  # noqa: E402
    SqlAlchemyDataSourceRegistry,
    SqlAlchemyUnitOfWork,
)
from processing_host.main import app  # noqa: E402

BOOK = "Bookstore.Book"
PERSON = "Bookstore.Person"


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """A file-backed SQLite database per test, so separate sessions are isolated."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    A session for arranging and inspecting committed state.

    Objects stay loaded after commit, so reading them does not reopen a
    transaction (an open SQLite read transaction blocks other writers).
    """
    session = session_factory(expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def registry() -> SqlAlchemyDataSourceRegistry:
    return SqlAlchemyDataSourceRegistry.from_base(Base)


@pytest.fixture
def engine(registry: SqlAlchemyDataSourceRegistry) -> ProcessingEngine:
    return ProcessingEngine(registry, AuthenticatedWriteAuthorizer())


@pytest.fixture
def principal() -> Principal:
    return Principal(name="SampleUser")


@pytest.fixture
def new_unit_of_work(
    session_factory: sessionmaker[Session],
) -> Generator[Callable[[], SqlAlchemyUnitOfWork], None, None]:
    """Factory for units of work, each on its own session. All are closed after the test."""
    created: list[SqlAlchemyUnitOfWork] = []

    def _new() -> SqlAlchemyUnitOfWork:
        unit_of_work = SqlAlchemyUnitOfWork(session_factory())
        created.append(unit_of_work)
        return unit_of_work

    yield _new

    for unit_of_work in created:
        unit_of_work.close()


@pytest.fixture
def unit_of_work(
    new_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> SqlAlchemyUnitOfWork:
    return new_unit_of_work()


def create_test_book(session: Session, **values: Any) -> models.Book:  # noqa: ANN401
    """Insert and commit a book directly, bypassing the processing engine."""
    book = models.Book(title=values.pop("title", "Test Book"), **values)
    session.add(book)
    session.commit()
    return book


def count_rows(session: Session, model: type[Base]) -> int:
    """Count committed rows, then end the read transaction."""
    total = session.execute(select(func.count()).select_from(model)).scalar_one()
    session.rollback()
    return total


def save_committed(
    engine: ProcessingEngine,
    new_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    principal: Principal,
    command: SaveCommand,
) -> Any:  # noqa: ANN401
    """Execute one save in its own unit of work and commit it."""
    unit_of_work = new_unit_of_work()
    results = engine.execute([command], unit_of_work, principal)
    assert results[0].is_success, results[0]
    unit_of_work.commit_and_close()
    return results[0].unwrap()


@pytest.fixture
def client(session_factory: sessionmaker[Session]) -> Generator[TestClient, Any, None]:
    """Create a test client bound to the per-test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    limiter.reset()

    # https so the Secure session cookie is sent back
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def signed_in_client(client: TestClient) -> TestClient:
    response = client.get("/demo/login")
    assert response.status_code == 200
    return client
