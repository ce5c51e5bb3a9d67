"""FastAPI dependencies for identity and authentication."""

from typing import Annotated

from fastapi import Depends, Request

from processing_host.core import container
from processing_host.domain.identity import Principal
from processing_host.infrastructure.identity.services import CookieIdentitySession


def get_identity_session() -> CookieIdentitySession:
    return container.identity_session()


def get_current_principal(
    request: Request,
    identity_session: Annotated[CookieIdentitySession, Depends(get_identity_session)],
) -> Principal | None:
    """
    Get the signed-in principal, if any.

    Returns:
        Principal from a valid session cookie, or None for anonymous callers
    """
    return identity_session.current_principal(request)


CurrentPrincipal = Annotated[Principal | None, Depends(get_current_principal)]
