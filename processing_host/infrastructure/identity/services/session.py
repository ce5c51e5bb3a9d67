"""Cookie-based sign-in."""

import logging

from fastapi import Request, Response

from processing_host.config import Settings, get_settings
from processing_host.domain.identity import Principal
from processing_host.infrastructure.identity.services.token_service import (
    create_session_token,
    session_lifetime,
    verify_session_token,
)

logger = logging.getLogger(__name__)


class CookieIdentitySession:
    """Signs principals in and out by setting a signed httpOnly cookie."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def sign_in(self, response: Response, principal: Principal, persistent: bool) -> None:
        """
        Attach the principal to the caller's session.

        A persistent sign-in survives browser restarts (the cookie gets a
        max-age); otherwise the cookie lasts for the browser session.
        """
        token = create_session_token(principal, persistent)
        max_age = int(session_lifetime(persistent).total_seconds()) if persistent else None
        response.set_cookie(
            key=self.settings.AUTH_COOKIE_NAME,
            value=token,
            httponly=True,
            secure=self.settings.COOKIE_SECURE,
            samesite="lax",
            path="/",
            max_age=max_age,
        )
        logger.info(f"Signed in {principal.name} (persistent={persistent})")

    def sign_out(self, response: Response) -> None:
        response.delete_cookie(
            key=self.settings.AUTH_COOKIE_NAME,
            httponly=True,
            secure=self.settings.COOKIE_SECURE,
            samesite="lax",
            path="/",
        )

    def current_principal(self, request: Request) -> Principal | None:
        token = request.cookies.get(self.settings.AUTH_COOKIE_NAME)
        if not token:
            return None
        return verify_session_token(token)
