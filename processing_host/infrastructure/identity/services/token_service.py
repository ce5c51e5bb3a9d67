"""Signed session token creation and verification."""

from datetime import UTC, datetime, timedelta

import jwt
from jwt import InvalidTokenError

from processing_host.config import get_settings
from processing_host.domain.identity import Principal

ALGORITHM = "HS256"
TOKEN_TYPE = "session"
# Lifetime of a non-persistent (browser session) sign-in
SESSION_TOKEN_EXPIRE_HOURS = 12


def session_lifetime(persistent: bool) -> timedelta:
    """How long a sign-in stays valid."""
    if persistent:
        return timedelta(days=get_settings().AUTH_COOKIE_MAX_AGE_DAYS)
    return timedelta(hours=SESSION_TOKEN_EXPIRE_HOURS)


def create_session_token(principal: Principal, persistent: bool) -> str:
    """Create a signed token identifying the principal."""
    expire = datetime.now(UTC) + session_lifetime(persistent)
    to_encode = {
        "sub": principal.name,
        "claims": sorted(principal.claims),
        "exp": expire,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(to_encode, get_settings().signing_key, algorithm=ALGORITHM)


def verify_session_token(token: str) -> Principal | None:
    """Verify a session token and return its principal if valid."""
    try:
        payload = jwt.decode(token, get_settings().signing_key, algorithms=[ALGORITHM])
        if payload.get("type") != TOKEN_TYPE:
            return None
        name = payload.get("sub")
        if not name:
            return None
        return Principal(name=name, claims=frozenset(payload.get("claims") or ()))
    except (InvalidTokenError, ValueError, TypeError):
        return None
