"""
firebase-edge-auth: Firebase Auth REST client for edge functions.
"""

from .auth import FirebaseAuth
from .cache import Cache, InMemoryCache, RedisCache
from .models import (
    AuthResult,
    DecodedIdToken,
    FirebaseClaims,
    ProviderUserInfo,
    TokenResponse,
    User,
)
from .shared.config import FirebaseConfig, get_config
from .shared.errors import (
    AuthenticationError,
    ExternalServiceError,
    FirebaseAuthError,
    IdentityToolkitError,
    TokenExpiredError,
    TokenRevokedError,
    UserDisabledError,
    ValidationError,
)
from .shared.logging import configure_logging

__version__ = "0.1.0"

__all__ = [
    "AuthResult",
    "AuthenticationError",
    "Cache",
    "DecodedIdToken",
    "ExternalServiceError",
    "FirebaseAuth",
    "FirebaseAuthError",
    "FirebaseClaims",
    "FirebaseConfig",
    "IdentityToolkitError",
    "InMemoryCache",
    "ProviderUserInfo",
    "RedisCache",
    "TokenExpiredError",
    "TokenResponse",
    "TokenRevokedError",
    "User",
    "UserDisabledError",
    "ValidationError",
    "configure_logging",
    "get_config",
]
