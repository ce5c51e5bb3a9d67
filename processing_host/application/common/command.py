"""
Command and CommandHandler base classes.

Commands describe a single data operation against a named data source.
The data source name is namespaced as ``"<Module>.<Entity>"``.

Example:
    @dataclass(frozen=True)
    class ArchiveCommand(Command):
        record_id: str

    class ArchiveHandler(CommandHandler[ArchiveCommand, int]):
        def __init__(self, registry: DataSourceRegistry) -> None:
            self._registry = registry

        def handle(self, command: ArchiveCommand, unit_of_work: UnitOfWork) -> int:
            data_source = self._registry.open(command.data_source, unit_of_work)
            return data_source.update([{"id": command.record_id, "archived": True}])

    engine.register_handler(ArchiveCommand, ArchiveHandler(registry))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

# Input type (the command)
TCommand = TypeVar("TCommand", bound="Command")
# Output type (the payload of a successful command)
TResult = TypeVar("TResult")


def split_data_source(data_source: str) -> tuple[str, str]:
    """Split ``"<Module>.<Entity>"`` into its two parts, validating the shape."""
    module, separator, entity = data_source.partition(".")
    if not separator or not module or not entity or "." in entity:
        raise ValueError(f"Data source must be named '<Module>.<Entity>', got '{data_source}'")
    if not module.isidentifier() or not entity.isidentifier():
        raise ValueError(f"Data source name parts must be identifiers, got '{data_source}'")
    return module, entity


@dataclass(frozen=True)
class Command:
    """
    Base class for Commands.

    Commands are:
    - Immutable (frozen dataclass)
    - Bound to exactly one data source
    - Free of connection or transaction state

    Only the shape of a command is validated at construction.
    Business validation happens when the command is executed.
    """

    data_source: str

    def __post_init__(self) -> None:
        split_data_source(self.data_source)

    @property
    def module(self) -> str:
        return split_data_source(self.data_source)[0]

    @property
    def entity(self) -> str:
        return split_data_source(self.data_source)[1]


class CommandHandler(ABC, Generic[TCommand, TResult]):
    """
    Base class for Command Handlers.

    Command Handlers:
    - Execute a single command type
    - Work inside the unit of work handed to them
    - Never commit or roll back (that is the caller's decision)
    - Raise DomainError subclasses on failure

    The processing engine holds one handler per command type.
    """

    @abstractmethod
    def handle(self, command: TCommand, unit_of_work: "UnitOfWork") -> TResult:
        """
        Handle the command and return the success payload.

        Raises:
            DomainError: When the command cannot be executed
        """
        raise NotImplementedError
