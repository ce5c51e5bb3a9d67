"""
Application common module.

Contains base classes for application layer:
- Command: Base class for data operations
- CommandHandler: Executes one command type inside a unit of work
- Result: Success or Failure outcome of a command
- UnitOfWork: Transactional scope with an OPEN/COMMITTED/ROLLED_BACK lifecycle
"""

from .command import Command, CommandHandler, split_data_source
from .result import Failure, Result, Success
from .unit_of_work import UnitOfWork, UnitOfWorkState

__all__ = [
    "Command",
    "CommandHandler",
    "Failure",
    "Result",
    "Success",
    "UnitOfWork",
    "UnitOfWorkState",
    "split_data_source",
]
