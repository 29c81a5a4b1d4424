"""
Firebase Auth client for edge functions.

Talks to the Identity Toolkit REST API and verifies provider-issued JWTs with
the public certificates Google publishes.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from .adapters.identity_toolkit import IdentityToolkitClient
from .cache.base import Cache
from .cache.memory import InMemoryCache
from .cache.redis_cache import RedisCache
from .jwks.client import PublicKeyClient
from .models import AuthResult, DecodedIdToken, TokenResponse, User
from .oauth.service_account import ServiceAccountTokenProvider
from .shared.circuit_breaker import CircuitBreaker
from .shared.config import FirebaseConfig
from .shared.errors import (
    IdentityToolkitError,
    TokenRevokedError,
    UserDisabledError,
    ValidationError,
)
from .shared.logging import configure_logging, get_logger
from .shared.retry import RetryConfig
from .validation.token_validator import (
    ID_TOKEN_ISSUER_PREFIX,
    SESSION_COOKIE_ISSUER_PREFIX,
    TokenVerifier,
)

T = TypeVar("T")

OAUTH_TOKEN_CACHE_KEY = "google-oauth"

MIN_SESSION_COOKIE_DURATION = 5 * 60
MAX_SESSION_COOKIE_DURATION = 14 * 24 * 60 * 60

MAX_CUSTOM_CLAIMS_BYTES = 1000
RESERVED_CLAIMS = frozenset({
    "acr", "amr", "at_hash", "aud", "auth_time", "azp", "cnf", "c_hash",
    "exp", "iat", "iss", "jti", "nbf", "nonce", "sub", "firebase",
})


class FirebaseAuth:
    """Interact with the Firebase REST API and the Google Identity Toolkit API."""

    def __init__(
        self,
        config: FirebaseConfig,
        cache: Optional[Cache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        configure_logs: bool = False,
    ):
        self.config = config
        if configure_logs:
            configure_logging("firebase_auth", config.log_level)
        self.logger = get_logger("firebase_auth.client").bind(env=config.env)

        self._owned_cache: Optional[RedisCache] = None
        if cache is None and config.redis_url:
            cache = self._owned_cache = RedisCache(config.redis_url)
        self.cache = cache if cache is not None else InMemoryCache()

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.http_timeout)

        retry_config = RetryConfig(
            max_attempts=config.http_max_attempts,
            base_delay=config.http_retry_base_delay,
            max_delay=10.0,
        )

        def breaker(name: str) -> CircuitBreaker:
            return CircuitBreaker(
                failure_threshold=config.circuit_failure_threshold,
                recovery_timeout=config.circuit_recovery_timeout,
                name=name,
            )

        self.identity_toolkit = IdentityToolkitClient(
            config.api_key,
            self.http_client,
            base_url=config.identity_toolkit_url,
            secure_token_url=config.secure_token_url,
            retry_config=retry_config,
            circuit_breaker=breaker("identity-toolkit"),
        )
        self.token_provider = ServiceAccountTokenProvider(
            config.service_account_email,
            config.private_key.get_secret_value(),
            config.oauth_scope,
            self.http_client,
            token_url=config.oauth_token_url,
            retry_config=retry_config,
            circuit_breaker=breaker("oauth2"),
        )

        # Both certificate endpoints live on www.googleapis.com and share a breaker.
        keys_breaker = breaker("public-keys")
        self.id_token_keys = PublicKeyClient(
            config.id_token_certs_url,
            self.http_client,
            cache=self.cache,
            default_ttl=config.public_keys_default_ttl,
            retry_config=retry_config,
            circuit_breaker=keys_breaker,
        )
        self.session_cookie_keys = PublicKeyClient(
            config.session_cookie_certs_url,
            self.http_client,
            cache=self.cache,
            default_ttl=config.public_keys_default_ttl,
            retry_config=retry_config,
            circuit_breaker=keys_breaker,
        )
        self.id_token_verifier = TokenVerifier(
            self.id_token_keys,
            config.project_id,
            ID_TOKEN_ISSUER_PREFIX,
            token_kind="ID token",
            clock_skew=config.clock_skew_seconds,
        )
        self.session_cookie_verifier = TokenVerifier(
            self.session_cookie_keys,
            config.project_id,
            SESSION_COOKIE_ISSUER_PREFIX,
            token_kind="session cookie",
            clock_skew=config.clock_skew_seconds,
        )

    async def __aenter__(self) -> "FirebaseAuth":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and cache connection this instance created."""
        if self._owns_http_client:
            await self.http_client.aclose()
        if self._owned_cache is not None:
            await self._owned_cache.close()

    async def with_cache(self, action: Callable[[], Awaitable[T]], key: str, expiration: int) -> T:
        """Cache the result of an async function.

        Args:
            action: Function with result to be stored
            key: Where to find/store the value from/to the cache
            expiration: Cache expiration in seconds
        """
        result = await self.cache.get(key)
        if result is None:
            result = await action()
            await self.cache.put(key, result, expiration_ttl=expiration)

        return result

    async def get_token(self) -> str:
        """Service-account OAuth 2.0 token, cached until shortly before it expires."""
        return await self.with_cache(
            self.token_provider.get_access_token,
            OAUTH_TOKEN_CACHE_KEY,
            self.config.oauth_token_ttl,
        )

    async def lookup_user(self, id_token: str) -> User:
        """Retrieve the user linked to an ID token."""
        data = await self.identity_toolkit.post_with_api_key("lookup", {"idToken": id_token})
        return self._first_user(data)

    async def get_user(self, uid: str) -> User:
        """Retrieve a user by uid with admin credentials."""
        token = await self.get_token()
        data = await self.identity_toolkit.post_with_bearer(
            f"projects/{self.config.project_id}/accounts:lookup",
            {"localId": [uid]},
            token,
        )
        return self._first_user(data)

    async def sign_in_with_email_and_password(self, email: str, password: str) -> AuthResult:
        """Sign in a user with email and password.

        Returns the issued tokens together with the signed-in user's record.
        """
        data = await self.identity_toolkit.post_with_api_key(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        token = TokenResponse.model_validate(data)
        user = await self.lookup_user(token.id_token)

        self.logger.info("User signed in", uid=user.uid)
        return AuthResult(token=token, user=user)

    async def sign_up_with_email_and_password(self, email: str, password: str) -> AuthResult:
        """Create a user with email and password and sign them in."""
        data = await self.identity_toolkit.post_with_api_key(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        token = TokenResponse.model_validate(data)
        user = await self.lookup_user(token.id_token)

        self.logger.info("User signed up", uid=user.uid)
        return AuthResult(token=token, user=user)

    async def change_password(self, id_token: str, new_password: str) -> TokenResponse:
        """Change a user's password; the response carries fresh tokens."""
        data = await self.identity_toolkit.post_with_api_key(
            "update",
            {"idToken": id_token, "password": new_password, "returnSecureToken": True},
        )
        return TokenResponse.model_validate(data)

    async def delete_account(self, id_token: str) -> None:
        """Delete the user owning the ID token."""
        await self.identity_toolkit.post_with_api_key("delete", {"idToken": id_token})
        self.logger.info("User account deleted")

    async def refresh_id_token(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new ID token."""
        data = await self.identity_toolkit.refresh(refresh_token)
        return TokenResponse.model_validate(data)

    async def set_custom_user_claims(
        self, uid: str, custom_user_claims: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Set developer claims on an existing user, typically roles and access levels.

        The claims propagate to the user's ID tokens after the next refresh or
        sign-in. Passing None deletes existing claims. The JSON encoding of the
        claims must not exceed 1000 bytes, and reserved JWT claim names are
        rejected.
        """
        if custom_user_claims is None:
            custom_user_claims = {}

        reserved = sorted(RESERVED_CLAIMS.intersection(custom_user_claims))
        if reserved:
            raise ValidationError(
                "Custom claims use reserved claim names",
                details={"reserved": reserved},
            )

        custom_attributes = json.dumps(custom_user_claims)
        if len(custom_attributes.encode("utf-8")) > MAX_CUSTOM_CLAIMS_BYTES:
            raise ValidationError(
                f"Custom claims payload must not exceed {MAX_CUSTOM_CLAIMS_BYTES} bytes"
            )

        token = await self.get_token()
        data = await self.identity_toolkit.post_with_bearer(
            f"projects/{self.config.project_id}/accounts:update",
            {"localId": uid, "customAttributes": custom_attributes},
            token,
        )

        self.logger.info("Custom claims updated", uid=uid, claims=sorted(custom_user_claims))
        return data

    async def create_session_cookie(
        self, id_token: str, expires_in: int = MAX_SESSION_COOKIE_DURATION
    ) -> str:
        """Create a session cookie for an ID token.

        Args:
            id_token: A valid ID token
            expires_in: Seconds until the cookie expires, between five minutes
                and fourteen days inclusive.
        """
        if not MIN_SESSION_COOKIE_DURATION <= expires_in <= MAX_SESSION_COOKIE_DURATION:
            raise ValidationError(
                "Session cookie duration must be between 5 minutes and 14 days",
                details={"expires_in": expires_in},
            )

        token = await self.get_token()
        data = await self.identity_toolkit.post_with_bearer(
            f"projects/{self.config.project_id}:createSessionCookie",
            {"idToken": id_token, "validDuration": str(expires_in)},
            token,
        )

        session_cookie = data.get("sessionCookie")
        if not session_cookie:
            raise IdentityToolkitError(200, "INVALID_RESPONSE", "Response is missing sessionCookie")
        return session_cookie

    async def verify_session_cookie(self, session_cookie: str, check_revoked: bool = False) -> DecodedIdToken:
        """Verify a session cookie created by ``create_session_cookie``."""
        decoded = await self.session_cookie_verifier.verify(session_cookie)
        if check_revoked:
            await self._check_revoked(decoded)
        return decoded

    async def verify_id_token(self, id_token: str, check_revoked: bool = False) -> DecodedIdToken:
        """Verify an ID token and return its decoded claims."""
        decoded = await self.id_token_verifier.verify(id_token)
        if check_revoked:
            await self._check_revoked(decoded)
        return decoded

    async def _check_revoked(self, decoded: DecodedIdToken) -> None:
        user = await self.get_user(decoded.uid)
        if user.disabled:
            raise UserDisabledError(details={"uid": decoded.uid})

        # valid_since is in seconds; tokens minted before it are revoked.
        issued = decoded.auth_time if decoded.auth_time is not None else decoded.iat
        if user.valid_since is not None and issued < user.valid_since:
            raise TokenRevokedError(details={"uid": decoded.uid})

    @staticmethod
    def _first_user(data: Dict[str, Any]) -> User:
        users = data.get("users") or []
        if not users:
            raise IdentityToolkitError(400, "USER_NOT_FOUND")
        return User.model_validate(users[0])
