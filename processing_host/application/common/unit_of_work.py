"""
Unit of Work interface.

A unit of work bounds one request scope. Commands executed by the
processing engine leave their effects pending in it until the request
handler decides to commit.

State machine:
    OPEN -> COMMITTED | ROLLED_BACK   (both terminal)

Example:
    with SqlAlchemyUnitOfWork(session) as uow:
        results = engine.execute([save_command], uow)
        if all(result.is_success for result in results):
            uow.commit()
    # rolled back on exit if commit was never reached
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from enum import StrEnum
from types import TracebackType
from typing import Self

from processing_host.domain.common import AlreadyTerminalError, InvalidStateError


class UnitOfWorkState(StrEnum):
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class UnitOfWork(ABC):
    """
    Unit of Work interface (Port).

    The base class owns the state machine; implementations only provide
    the storage-specific ``_commit``, ``_rollback``, ``_release`` and
    ``savepoint`` operations.

    A unit of work belongs to a single execution context. ``executing()``
    rejects a second caller instead of blocking.
    """

    def __init__(self) -> None:
        self._state = UnitOfWorkState.OPEN
        self._closed = False
        self._in_use = threading.Lock()

    @property
    def state(self) -> UnitOfWorkState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is UnitOfWorkState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._closed

    def ensure_open(self) -> None:
        """Raise InvalidStateError unless commands may still execute."""
        if not self.is_open:
            raise InvalidStateError(
                f"Cannot execute commands in a {self._state} unit of work",
                {"state": str(self._state)},
            )

    def commit(self) -> None:
        """
        Commit all pending effects.

        Raises:
            AlreadyTerminalError: If the unit of work was already committed or rolled back
        """
        self._ensure_not_terminal()
        self._commit()
        self._state = UnitOfWorkState.COMMITTED

    def rollback(self) -> None:
        """
        Discard all pending effects.

        Raises:
            AlreadyTerminalError: If the unit of work was already committed or rolled back
        """
        self._ensure_not_terminal()
        try:
            self._rollback()
        finally:
            self._state = UnitOfWorkState.ROLLED_BACK

    def commit_and_close(self) -> None:
        """Commit, then release held resources right away instead of at scope teardown."""
        self.commit()
        self.close()

    def close(self) -> None:
        """
        Release held resources.

        An open unit of work is rolled back first, so effects that were
        never explicitly committed do not leak. Closing twice is a no-op.
        """
        if self._closed:
            return
        try:
            if self.is_open:
                self.rollback()
        finally:
            self._closed = True
            self._release()

    @contextmanager
    def executing(self) -> Iterator[Self]:
        """
        Claim the unit of work for one batch of commands.

        Raises:
            InvalidStateError: If it is not OPEN or another caller is using it
        """
        if not self._in_use.acquire(blocking=False):
            raise InvalidStateError("Unit of work is already in use by another execution context")
        try:
            self.ensure_open()
            yield self
        finally:
            self._in_use.release()

    @abstractmethod
    def savepoint(self) -> AbstractContextManager[None]:
        """
        Scope the effects of a single command.

        Leaving the block normally keeps the effects pending in the unit of
        work; leaving it with an exception discards only the effects made
        inside the block. Storage errors are raised as DomainError subclasses.
        """
        raise NotImplementedError

    @abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def _rollback(self) -> None:
        raise NotImplementedError

    def _release(self) -> None:  # noqa: B027
        """Release connections. Default: nothing to release."""

    def _ensure_not_terminal(self) -> None:
        if not self.is_open:
            raise AlreadyTerminalError(str(self._state))

    def __enter__(self) -> Self:
        """Enter the unit of work context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """
        Exit the unit of work context.

        Whatever was not explicitly committed is rolled back.
        """
        self.close()
