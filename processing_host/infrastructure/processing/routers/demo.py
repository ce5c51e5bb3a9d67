"""
Demo endpoints.

Each endpoint shows one step of the command-dispatch pattern: build a
command, execute it in the request's unit of work, and commit writes
explicitly.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette import status
from starlette.responses import PlainTextResponse

from processing_host.application.processing import ReadCommand, ReadResult, SaveCommand
from processing_host.config import get_settings
from processing_host.domain.identity import Principal
from processing_host.exceptions import ProcessingHostError
from processing_host.infrastructure.common.di import Engine, RequestUnitOfWork
from processing_host.infrastructure.common.rate_limit import limiter
from processing_host.infrastructure.identity.dependencies import (
    CurrentPrincipal,
    get_identity_session,
)
from processing_host.infrastructure.identity.services import CookieIdentitySession
from processing_host.infrastructure.processing.execution import execute_or_raise

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/demo", tags=["demo"])
settings = get_settings()

BOOK_DATA_SOURCE = "Bookstore.Book"


@router.get("/hello", response_class=PlainTextResponse)
def hello(engine: Engine) -> str:
    """Describe the processing engine this host is wired to."""
    return engine.describe()


@router.get("/read-books", response_class=PlainTextResponse)
def read_books(
    engine: Engine, unit_of_work: RequestUnitOfWork, principal: CurrentPrincipal
) -> str:
    """
    Count the books.

    Read-only: nothing is committed, the unit of work is rolled back when
    the request ends.
    """
    command = ReadCommand(BOOK_DATA_SOURCE, read_records=False, read_total_count=True)
    try:
        results = execute_or_raise(engine, [command], unit_of_work, principal)
    except ProcessingHostError:
        raise
    except Exception as e:
        logger.error(f"Failed to read books: {e!s}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again later.",
        ) from e

    payload: ReadResult = results[0].unwrap()
    return f"{payload.total_count} books."


@router.get("/write-book", response_class=PlainTextResponse)
def write_book(
    engine: Engine, unit_of_work: RequestUnitOfWork, principal: CurrentPrincipal
) -> str:
    """
    Insert one book and commit it.

    The connection is released right after the commit, so the new book is
    visible to other requests before this one finishes.
    """
    command = SaveCommand(BOOK_DATA_SOURCE, to_insert=({"title": "NewBook"},))
    try:
        execute_or_raise(engine, [command], unit_of_work, principal)
        unit_of_work.commit_and_close()
    except ProcessingHostError:
        raise
    except Exception as e:
        logger.error(f"Failed to write book: {e!s}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again later.",
        ) from e

    return "1 book inserted."


@router.get("/login")
@limiter.limit(settings.LOGIN_RATE_LIMIT)  # type: ignore[misc]
def login(
    request: Request,
    response: Response,
    identity_session: Annotated[CookieIdentitySession, Depends(get_identity_session)],
) -> dict[str, str]:
    """Sign in as a fixed predefined user with a persistent cookie, for demo purposes."""
    principal = Principal(name=settings.SAMPLE_USERNAME)
    identity_session.sign_in(response, principal, persistent=True)
    return {"message": f"Signed in as {principal.name}"}


@router.get("/logout")
def logout(
    response: Response,
    identity_session: Annotated[CookieIdentitySession, Depends(get_identity_session)],
) -> dict[str, str]:
    """Sign out by clearing the session cookie."""
    identity_session.sign_out(response)
    return {"message": "Logged out successfully"}
