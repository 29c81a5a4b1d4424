"""
OAuth 2.0 access tokens for a Google service account (JWT bearer grant).
"""

import time
from typing import Optional

import httpx
from jose import jwt
from jose.exceptions import JWKError, JWSError

from ..adapters.base import HttpAdapter
from ..shared.circuit_breaker import CircuitBreaker
from ..shared.errors import ExternalServiceError, ValidationError
from ..shared.retry import RetryConfig

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME = 3600


class ServiceAccountTokenProvider(HttpAdapter):
    """Exchanges a signed service-account assertion for an access token."""

    def __init__(
        self,
        service_account_email: str,
        private_key: str,
        scope: str,
        http_client: httpx.AsyncClient,
        token_url: str,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__("oauth2", http_client, retry_config, circuit_breaker)
        self.service_account_email = service_account_email
        self.private_key = private_key
        self.scope = scope
        self.token_url = token_url

    def create_assertion(self, now: Optional[int] = None) -> str:
        """Sign the JWT presented to the token endpoint."""
        issued_at = int(time.time()) if now is None else now
        claims = {
            "iss": self.service_account_email,
            "scope": self.scope,
            "aud": self.token_url,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME,
        }
        try:
            return jwt.encode(claims, self.private_key, algorithm="RS256")
        except (JWKError, JWSError) as e:
            raise ValidationError(
                "Service account private key is not a valid RSA key",
                details={"error": str(e)},
            ) from e

    async def get_access_token(self) -> str:
        """Request a new OAuth 2.0 access token."""
        response = await self.request(
            "POST",
            self.token_url,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self.create_assertion()},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        data = self.decode_json(response)

        access_token = data.get("access_token")
        if not access_token:
            raise ExternalServiceError(self.service, "token response missing access_token")

        self.logger.info(
            "Obtained service account access token",
            service_account=self.service_account_email,
            expires_in=data.get("expires_in"),
        )
        return access_token

    def error_for_response(self, response: httpx.Response) -> ExternalServiceError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        return ExternalServiceError(
            self.service,
            f"token request rejected ({response.status_code}): {error or 'unknown error'}",
            details={
                "status_code": response.status_code,
                "error": error,
                "error_description": body.get("error_description") if isinstance(body, dict) else None,
            },
        )
