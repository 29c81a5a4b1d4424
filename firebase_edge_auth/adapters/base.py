"""
Base HTTP adapter with retry and circuit breaker protection.
"""

from typing import Any, Optional

import httpx

from ..shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from ..shared.errors import ExternalServiceError, FirebaseAuthError
from ..shared.logging import get_logger
from ..shared.retry import RetryConfig, RetryError, retry_on_exception


class HttpAdapter:
    """Sends requests to one remote service.

    Transport errors and 5xx responses are retried and count against the
    circuit breaker. Any other response is handed back to the caller.
    """

    retry_exceptions: tuple = (httpx.TransportError, httpx.HTTPStatusError)

    def __init__(
        self,
        service: str,
        http_client: httpx.AsyncClient,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.service = service
        self.http_client = http_client
        self.retry_config = retry_config or RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name=service)
        self.logger = get_logger(f"firebase_auth.adapters.{service}")

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and return the response."""

        async def _send() -> httpx.Response:
            response = await self.http_client.request(method, url, **kwargs)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        @retry_on_exception(self.retry_exceptions, config=self.retry_config)
        async def _send_with_breaker() -> httpx.Response:
            return await self.circuit_breaker.call(_send)

        try:
            return await _send_with_breaker()
        except CircuitBreakerOpenException as e:
            self.logger.warning("Request blocked by open circuit", url=_redact(url))
            raise ExternalServiceError(self.service, str(e), details={"circuit": "open"}) from e
        except RetryError as e:
            last = e.last_exception
            if isinstance(last, httpx.HTTPStatusError):
                raise self.error_for_response(last.response) from e
            self.logger.error("Request failed", url=_redact(url), error=str(last))
            raise ExternalServiceError(
                self.service,
                f"request failed after {e.attempts} attempts: {last}",
                details={"attempts": e.attempts},
            ) from e

    def error_for_response(self, response: httpx.Response) -> FirebaseAuthError:
        """Map an unsuccessful response to an exception."""
        return ExternalServiceError(
            self.service,
            f"unexpected HTTP status {response.status_code}",
            details={"status_code": response.status_code},
        )

    def decode_json(self, response: httpx.Response) -> Any:
        """Return the JSON body of a successful response."""
        if response.status_code != 200:
            raise self.error_for_response(response)
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(self.service, "response body is not valid JSON") from e


def _redact(url: str) -> str:
    # The Identity Toolkit API key travels in the query string.
    return url.split("?", 1)[0]
