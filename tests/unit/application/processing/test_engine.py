"""Tests for the processing engine against a SQLite-backed unit of work."""

import threading
from collections.abc import Callable
from dataclasses import dataclass

import pytest
from sqlalchemy.orm import Session

from processing_host import models
from processing_host.application.common import Command, CommandHandler, UnitOfWork, UnitOfWorkState
from processing_host.application.processing import (
    FilterCriteria,
    ProcessingEngine,
    ReadCommand,
    ReadResult,
    SaveCommand,
    SaveResult,
)
from processing_host.domain.common import (
    AlreadyTerminalError,
    ContractViolationError,
    ErrorKind,
    InfrastructureError,
    InvalidStateError,
)
from processing_host.domain.identity import Principal
from processing_host.infrastructure.persistence import SqlAlchemyUnitOfWork
from tests.conftest import BOOK, count_rows, create_test_book

NewUnitOfWork = Callable[[], SqlAlchemyUnitOfWork]


@dataclass(frozen=True)
class ProbeCommand(Command):
    """Command whose handler misbehaves on request."""

    behavior: str = "ok"


@dataclass(frozen=True)
class UnregisteredCommand(Command):
    pass


class ProbeHandler(CommandHandler[ProbeCommand, str]):
    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()

    def handle(self, command: ProbeCommand, unit_of_work: UnitOfWork) -> str:
        if command.behavior == "infrastructure":
            raise InfrastructureError("Connection to the database was lost")
        if command.behavior == "interrupt":
            raise KeyboardInterrupt
        if command.behavior == "block":
            self.started.set()
            self.release.wait(timeout=5)
        return command.behavior


@pytest.fixture
def probe_handler(engine: ProcessingEngine) -> ProbeHandler:
    handler = ProbeHandler()
    engine.register_handler(ProbeCommand, handler)
    return handler


def count_books(engine: ProcessingEngine, unit_of_work: UnitOfWork) -> int:
    command = ReadCommand(BOOK, read_records=False, read_total_count=True)
    results = engine.execute([command], unit_of_work)
    payload: ReadResult = results[0].unwrap()
    assert payload.total_count is not None
    return payload.total_count


class TestExecution:
    """Test suite for executing command batches."""

    def test_read_empty_store_with_total_count(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that reading an empty data source yields no records and a count of zero."""
        results = engine.execute([ReadCommand(BOOK, read_total_count=True)], unit_of_work)

        assert len(results) == 1
        payload: ReadResult = results[0].unwrap()
        assert payload.records == ()
        assert payload.total_count == 0

    def test_save_then_read_in_same_unit_of_work(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that a save is visible to a later read in the same batch, then committed."""
        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                SaveCommand(BOOK, to_insert=({"title": "NewBook"},)),
                ReadCommand(BOOK, filters=(FilterCriteria("title", "equals", "NewBook"),)),
            ],
            unit_of_work,
            principal,
        )

        assert [result.is_success for result in results] == [True, True]
        saved: SaveResult = results[0].unwrap()
        read: ReadResult = results[1].unwrap()
        assert saved.inserted == 1
        assert len(saved.inserted_ids) == 1
        assert [record["id"] for record in read.records] == list(saved.inserted_ids)

        unit_of_work.commit()
        assert unit_of_work.state is UnitOfWorkState.COMMITTED
        assert count_rows(db_session, models.Book) == 1

    def test_results_follow_submission_order(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that there is one result per command, in the order submitted."""
        results = engine.execute(
            [
                ReadCommand(BOOK, read_records=False, read_total_count=True),
                SaveCommand(BOOK, to_insert=({"title": "A"}, {"title": "B"})),
                ReadCommand(BOOK, read_records=False, read_total_count=True),
            ],
            unit_of_work,
            principal,
        )

        assert len(results) == 3
        assert results[0].unwrap().total_count == 0
        assert results[1].unwrap().inserted == 2
        assert results[2].unwrap().total_count == 2

    def test_save_applies_deletes_before_inserts(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that a code freed by a delete can be reused by an insert in the same save."""
        old = create_test_book(db_session, title="Old", code="B-1")

        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                SaveCommand(
                    BOOK,
                    to_insert=({"title": "New", "code": "B-1"},),
                    to_delete=({"id": old.id},),
                )
            ],
            unit_of_work,
            principal,
        )

        payload: SaveResult = results[0].unwrap()
        assert (payload.inserted, payload.updated, payload.deleted) == (1, 0, 1)
        unit_of_work.commit()

        books = db_session.query(models.Book).all()
        assert [(book.title, book.code) for book in books] == [("New", "B-1")]


class TestFailFast:
    """Test suite for the first failure ending the batch."""

    def test_failure_stops_the_batch(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that commands after the failing one are never executed."""
        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                SaveCommand(BOOK, to_insert=({"title": "First"},)),
                SaveCommand(BOOK, to_update=({"id": "missing", "title": "X"},)),
                SaveCommand(BOOK, to_insert=({"title": "Third"},)),
            ],
            unit_of_work,
            principal,
        )

        assert len(results) == 2
        assert results[0].is_success
        error = results[1].unwrap_error()
        assert error.kind is ErrorKind.NOT_FOUND
        assert error.command_index == 1

        # Earlier effects stay pending; the caller decides whether to commit
        assert unit_of_work.is_open
        unit_of_work.commit()
        titles = [book.title for book in db_session.query(models.Book).all()]
        assert titles == ["First"]

    def test_failing_command_effects_are_discarded(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that a delete made by a command that later fails does not survive a commit."""
        book = create_test_book(db_session, title="Keep Me")

        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                SaveCommand(
                    BOOK,
                    to_delete=({"id": book.id},),
                    to_update=({"id": "missing", "title": "X"},),
                )
            ],
            unit_of_work,
            principal,
        )

        assert results[0].unwrap_error().kind is ErrorKind.NOT_FOUND
        unit_of_work.commit()
        assert count_rows(db_session, models.Book) == 1

    def test_unknown_property_is_a_validation_failure(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that saving a property the data source does not have fails validation."""
        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"title": "A", "isbn": "123"},))],
            unit_of_work,
            principal,
        )

        error = results[0].unwrap_error()
        assert error.kind is ErrorKind.VALIDATION_FAILED
        assert error.details == {"field": "isbn"}

    def test_missing_required_property_is_a_validation_failure(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that inserting a book without a title fails validation."""
        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"code": "B-1"},))], unit_of_work, principal
        )

        assert results[0].unwrap_error().kind is ErrorKind.VALIDATION_FAILED

    def test_unique_violation_is_a_validation_failure(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that a storage integrity error is reported, not raised."""
        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"title": "A", "code": "X"}, {"title": "B", "code": "X"}))],
            unit_of_work,
            principal,
        )

        assert results[0].unwrap_error().kind is ErrorKind.VALIDATION_FAILED
        assert unit_of_work.is_open

    def test_unknown_author_is_a_validation_failure(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that a reference to a missing record violates the foreign key."""
        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"title": "T", "author_id": "no-such-person"},))],
            unit_of_work,
            principal,
        )

        assert results[0].unwrap_error().kind is ErrorKind.VALIDATION_FAILED
        assert unit_of_work.is_open

    @pytest.mark.parametrize(
        "command",
        [
            SaveCommand(BOOK, to_insert=({"title": {"nested": 1}},)),
            SaveCommand(BOOK, to_insert=({"title": "A", "number_of_pages": "many"},)),
            SaveCommand(BOOK, to_update=({"id": [1, 2], "title": "X"},)),
            SaveCommand(BOOK, to_delete=({"id": {"a": 1}},)),
            ReadCommand(BOOK, filters=(FilterCriteria("title", "equals", {"a": 1}),)),
            ReadCommand(BOOK, filters=(FilterCriteria("number_of_pages", "greater", True),)),
            ReadCommand(BOOK, filters=(FilterCriteria("code", "in", [["B-1"]]),)),
            ReadCommand(BOOK, filters=(FilterCriteria("title", "contains", 5),)),
        ],
    )
    def test_wrongly_typed_value_is_a_validation_failure(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
        command: Command,
    ) -> None:
        """Test that values a column cannot store fail validation and keep earlier effects."""
        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"title": "Kept"},)), command],
            unit_of_work,
            principal,
        )

        assert results[0].is_success
        error = results[1].unwrap_error()
        assert error.kind is ErrorKind.VALIDATION_FAILED
        assert error.command_index == 1
        assert "field" in error.details

        assert unit_of_work.is_open
        unit_of_work.commit()
        assert count_rows(db_session, models.Book) == 1

    def test_existing_id_is_a_conflict(
        self,
        engine: ProcessingEngine,
        unit_of_work: SqlAlchemyUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that inserting a record whose id is taken reports a conflict."""
        book = create_test_book(db_session)

        results = engine.execute(
            [SaveCommand(BOOK, to_insert=({"id": book.id, "title": "Copy"},))],
            unit_of_work,
            principal,
        )

        assert results[0].unwrap_error().kind is ErrorKind.CONFLICT

    def test_unknown_data_source_is_not_found(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that a command for an unregistered data source reports not found."""
        results = engine.execute([ReadCommand("Bookstore.Shelf")], unit_of_work)

        error = results[0].unwrap_error()
        assert error.kind is ErrorKind.NOT_FOUND
        assert "Bookstore.Shelf" in error.message


class TestAuthorization:
    """Test suite for command authorization."""

    def test_anonymous_read_is_allowed(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that reads need no principal."""
        results = engine.execute([ReadCommand(BOOK)], unit_of_work, principal=None)

        assert results[0].is_success

    def test_anonymous_save_is_rejected_before_execution(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        db_session: Session,
    ) -> None:
        """Test that an anonymous save fails with an authorization error and writes nothing."""
        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                ReadCommand(BOOK),
                SaveCommand(BOOK, to_insert=({"title": "NewBook"},)),
            ],
            unit_of_work,
            principal=None,
        )

        assert results[0].is_success
        error = results[1].unwrap_error()
        assert error.kind is ErrorKind.AUTHORIZATION
        assert error.command_index == 1

        unit_of_work.commit()
        assert count_rows(db_session, models.Book) == 0


class TestRollbackOnFailure:
    """Test suite for failures that roll the unit of work back."""

    def test_infrastructure_failure_rolls_back(
        self,
        engine: ProcessingEngine,
        probe_handler: ProbeHandler,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that an infrastructure failure discards the effects of earlier commands."""
        unit_of_work = new_unit_of_work()
        results = engine.execute(
            [
                SaveCommand(BOOK, to_insert=({"title": "NewBook"},)),
                ProbeCommand("Test.Probe", behavior="infrastructure"),
                SaveCommand(BOOK, to_insert=({"title": "Never"},)),
            ],
            unit_of_work,
            principal,
        )

        assert len(results) == 2
        assert results[1].unwrap_error().kind is ErrorKind.INFRASTRUCTURE
        assert unit_of_work.state is UnitOfWorkState.ROLLED_BACK
        with pytest.raises(AlreadyTerminalError):
            unit_of_work.commit()

        unit_of_work.close()
        assert count_rows(db_session, models.Book) == 0

    def test_interruption_rolls_back_and_propagates(
        self,
        engine: ProcessingEngine,
        probe_handler: ProbeHandler,
        unit_of_work: SqlAlchemyUnitOfWork,
        principal: Principal,
    ) -> None:
        """Test that an interruption mid-batch rolls back and is re-raised."""
        with pytest.raises(KeyboardInterrupt):
            engine.execute(
                [
                    SaveCommand(BOOK, to_insert=({"title": "NewBook"},)),
                    ProbeCommand("Test.Probe", behavior="interrupt"),
                ],
                unit_of_work,
                principal,
            )

        assert unit_of_work.state is UnitOfWorkState.ROLLED_BACK


class TestContract:
    """Test suite for calls that break the engine's calling contract."""

    def test_empty_batch_is_rejected(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that executing no commands raises instead of returning an empty list."""
        with pytest.raises(ContractViolationError, match="at least one command"):
            engine.execute([], unit_of_work)

        assert unit_of_work.is_open

    def test_command_without_handler_is_rejected_before_anything_runs(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
        db_session: Session,
    ) -> None:
        """Test that an unregistered command type fails the call up front."""
        unit_of_work = new_unit_of_work()

        with pytest.raises(ContractViolationError, match="UnregisteredCommand"):
            engine.execute(
                [
                    SaveCommand(BOOK, to_insert=({"title": "NewBook"},)),
                    UnregisteredCommand("Test.Unregistered"),
                ],
                unit_of_work,
                principal,
            )

        unit_of_work.commit()
        assert count_rows(db_session, models.Book) == 0

    def test_committed_unit_of_work_is_rejected(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that executing in a committed unit of work raises."""
        unit_of_work.commit()

        with pytest.raises(InvalidStateError):
            engine.execute([ReadCommand(BOOK)], unit_of_work)

    def test_rolled_back_unit_of_work_is_rejected(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork
    ) -> None:
        """Test that executing in a rolled back unit of work raises."""
        unit_of_work.rollback()

        with pytest.raises(InvalidStateError):
            engine.execute([ReadCommand(BOOK)], unit_of_work)

    def test_second_commit_is_rejected(
        self, engine: ProcessingEngine, unit_of_work: SqlAlchemyUnitOfWork, principal: Principal
    ) -> None:
        """Test that a unit of work commits at most once."""
        engine.execute([SaveCommand(BOOK, to_insert=({"title": "A"},))], unit_of_work, principal)
        unit_of_work.commit()

        with pytest.raises(AlreadyTerminalError):
            unit_of_work.commit()

    def test_concurrent_use_is_rejected(
        self,
        engine: ProcessingEngine,
        probe_handler: ProbeHandler,
        unit_of_work: SqlAlchemyUnitOfWork,
        principal: Principal,
    ) -> None:
        """Test that a second thread cannot execute in a unit of work that is busy."""
        results: list[object] = []
        worker = threading.Thread(
            target=lambda: results.extend(
                engine.execute([ProbeCommand("Test.Probe", behavior="block")], unit_of_work, principal)
            )
        )
        worker.start()
        try:
            assert probe_handler.started.wait(timeout=5)
            with pytest.raises(InvalidStateError, match="already in use"):
                engine.execute([ReadCommand(BOOK)], unit_of_work)
        finally:
            probe_handler.release.set()
            worker.join(timeout=5)

        assert len(results) == 1
        assert unit_of_work.is_open


class TestIsolation:
    """Test suite for visibility of pending and committed effects."""

    def test_pending_effects_are_invisible_until_commit(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
    ) -> None:
        """Test that only the writing unit of work sees uncommitted records."""
        writer = new_unit_of_work()
        engine.execute([SaveCommand(BOOK, to_insert=({"title": "NewBook"},))], writer, principal)

        reader = new_unit_of_work()
        assert count_books(engine, reader) == 0
        reader.close()

        assert count_books(engine, writer) == 1
        writer.commit_and_close()

        assert count_books(engine, new_unit_of_work()) == 1

    def test_uncommitted_effects_are_rolled_back_on_close(
        self,
        engine: ProcessingEngine,
        new_unit_of_work: NewUnitOfWork,
        principal: Principal,
    ) -> None:
        """Test that ending the scope without a commit discards the batch."""
        writer = new_unit_of_work()
        engine.execute([SaveCommand(BOOK, to_insert=({"title": "NewBook"},))], writer, principal)
        writer.close()

        assert writer.state is UnitOfWorkState.ROLLED_BACK
        assert count_books(engine, new_unit_of_work()) == 0


class TestDescription:
    def test_describe_lists_commands_and_data_sources(self, engine: ProcessingEngine) -> None:
        description = engine.describe()

        assert "ReadCommand" in description
        assert "SaveCommand" in description
        assert "Bookstore.Book" in description
        assert str(engine) == description

    def test_registered_handler_is_listed(
        self, engine: ProcessingEngine, probe_handler: ProbeHandler
    ) -> None:
        assert engine.command_types == ["ProbeCommand", "ReadCommand", "SaveCommand"]
