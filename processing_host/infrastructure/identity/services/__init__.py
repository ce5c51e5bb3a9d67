from .session import CookieIdentitySession
from .token_service import create_session_token, verify_session_token

__all__ = ["CookieIdentitySession", "create_session_token", "verify_session_token"]
