"""Application-level exceptions and the error kind to HTTP status mapping."""

from starlette import status

from processing_host.domain.common import ErrorKind

ERROR_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.ALREADY_TERMINAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INFRASTRUCTURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_kind(kind: ErrorKind, *, authenticated: bool = True) -> int:
    """
    Map an error kind to an HTTP status code.

    Authorization failures are 401 for anonymous callers (they should sign
    in) and 403 for signed-in callers.
    """
    if kind is ErrorKind.AUTHORIZATION and not authenticated:
        return status.HTTP_401_UNAUTHORIZED
    return ERROR_KIND_STATUS[kind]


class ProcessingHostError(Exception):
    """Base exception for errors raised by the HTTP layer."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        """Initialize exception with message and optional status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class CommandFailedError(ProcessingHostError):
    """A command returned a Failure result; carries its kind and position."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        command_index: int = 0,
        authenticated: bool = True,
    ) -> None:
        self.kind = kind
        self.command_index = command_index
        super().__init__(message, status_code=status_for_kind(kind, authenticated=authenticated))
