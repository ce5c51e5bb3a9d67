"""Command authorization policies."""

from processing_host.application.common import Command
from processing_host.application.processing.commands import ReadCommand
from processing_host.domain.common import AuthorizationError
from processing_host.domain.identity import Principal


class AuthenticatedWriteAuthorizer:
    """
    Anyone may read; anything else needs an authenticated principal.

    Data sources listed in ``anonymous_writes`` accept saves without a
    principal.
    """

    def __init__(self, anonymous_writes: frozenset[str] = frozenset()) -> None:
        self._anonymous_writes = anonymous_writes

    def authorize(self, command: Command, principal: Principal | None) -> None:
        if isinstance(command, ReadCommand) or principal is not None:
            return
        if command.data_source in self._anonymous_writes:
            return
        raise AuthorizationError(
            f"Sign in is required to execute {type(command).__name__} on {command.data_source}"
        )


class AllowAllAuthorizer:
    def authorize(self, command: Command, principal: Principal | None) -> None:
        return None
