"""
Identity Toolkit and Secure Token REST client.
"""

from typing import Any, Dict, Optional

import httpx

from ..shared.circuit_breaker import CircuitBreaker
from ..shared.errors import IdentityToolkitError
from ..shared.retry import RetryConfig
from .base import HttpAdapter


class IdentityToolkitClient(HttpAdapter):
    """Client for ``identitytoolkit.googleapis.com`` and token refresh."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        base_url: str,
        secure_token_url: str,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__("identity-toolkit", http_client, retry_config, circuit_breaker)
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.secure_token_url = secure_token_url

    async def post_with_api_key(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to ``accounts:<endpoint>`` authenticated by the web API key."""
        url = f"{self.base_url}accounts:{endpoint}"
        response = await self.request("POST", url, params={"key": self.api_key}, json=payload)
        data = self.decode_json(response)
        self.logger.debug("Identity Toolkit call succeeded", endpoint=endpoint)
        return data

    async def post_with_bearer(self, path: str, payload: Dict[str, Any], access_token: str) -> Dict[str, Any]:
        """POST to an admin endpoint authenticated by an OAuth 2.0 token."""
        response = await self.request(
            "POST",
            self.base_url + path,
            json=payload,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        data = self.decode_json(response)
        self.logger.debug("Identity Toolkit admin call succeeded", path=path)
        return data

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new ID token."""
        response = await self.request(
            "POST",
            self.secure_token_url,
            params={"key": self.api_key},
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        data = self.decode_json(response)
        if not data.get("id_token"):
            raise IdentityToolkitError(200, "INVALID_RESPONSE", "Response is missing id_token")
        # The secure token API answers in snake_case; normalise to the
        # Identity Toolkit field names.
        return {
            "idToken": data.get("id_token"),
            "refreshToken": data.get("refresh_token"),
            "expiresIn": data.get("expires_in"),
            "localId": data.get("user_id"),
        }

    def error_for_response(self, response: httpx.Response) -> IdentityToolkitError:
        """Translate a Google API error body into an IdentityToolkitError.

        Bodies look like ``{"error": {"code": 400, "message": "EMAIL_EXISTS"}}``;
        the message may carry a human readable suffix after ``" : "``
        (``WEAK_PASSWORD : Password should be at least 6 characters``).
        """
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            message = str(error.get("message") or "UNKNOWN_ERROR")
            details = {"errors": error.get("errors", [])}
        elif isinstance(error, str):
            # Secure token endpoint: {"error": "invalid_grant", "error_description": ...}
            message = error.upper()
            if body.get("error_description"):
                message = f"{message} : {body['error_description']}"
            details = {}
        else:
            message = "UNKNOWN_ERROR"
            details = {"body": response.text[:500]}

        reason = message.split(" : ", 1)[0].strip()
        self.logger.warning(
            "Identity Toolkit request rejected",
            status_code=response.status_code,
            reason=reason,
        )
        return IdentityToolkitError(response.status_code, reason, message, details)
