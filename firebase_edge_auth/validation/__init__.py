"""
Token validation for ID tokens and session cookies.
"""

from .token_validator import (
    ID_TOKEN_ISSUER_PREFIX,
    SESSION_COOKIE_ISSUER_PREFIX,
    TokenVerifier,
)

__all__ = ["ID_TOKEN_ISSUER_PREFIX", "SESSION_COOKIE_ISSUER_PREFIX", "TokenVerifier"]
