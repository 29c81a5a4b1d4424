"""
Client for the provider's public signing certificates.
"""

import asyncio
import re
import time
from typing import Dict, Optional

import httpx

from ..adapters.base import HttpAdapter
from ..cache.base import Cache
from ..shared.circuit_breaker import CircuitBreaker
from ..shared.errors import ExternalServiceError, FirebaseAuthError
from ..shared.retry import RetryConfig

_MAX_AGE = re.compile(r"max-age=(\d+)")


def parse_max_age(cache_control: Optional[str]) -> Optional[int]:
    """Return the ``max-age`` directive of a Cache-Control header, if any."""
    if not cache_control:
        return None
    match = _MAX_AGE.search(cache_control)
    return int(match.group(1)) if match else None


class PublicKeyClient(HttpAdapter):
    """Fetches and caches a ``{kid: x509 certificate}`` map.

    Keys are kept until the response's ``max-age`` expires. When an external
    cache is supplied the map is shared through it as well.
    """

    def __init__(
        self,
        keys_url: str,
        http_client: httpx.AsyncClient,
        cache: Optional[Cache] = None,
        default_ttl: int = 3600,
        min_refresh_interval: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__("public-keys", http_client, retry_config, circuit_breaker)
        self.keys_url = keys_url
        self.cache = cache
        self.cache_key = f"public-keys:{keys_url}"
        self.default_ttl = default_ttl
        self.min_refresh_interval = min_refresh_interval

        self._keys: Optional[Dict[str, str]] = None
        self._expires_at: float = 0.0
        self._fetched_at: float = 0.0
        self._lock: Optional[asyncio.Lock] = None

    @property
    def lock(self) -> asyncio.Lock:
        # Created on first use so it belongs to the running event loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _is_fresh(self) -> bool:
        return self._keys is not None and time.time() < self._expires_at

    async def get_public_keys(self) -> Dict[str, str]:
        """Get the certificate map from cache or from the provider."""
        if self._is_fresh():
            return self._keys

        async with self.lock:
            if self._is_fresh():
                return self._keys

            if await self._load_from_cache():
                return self._keys

            return await self._fetch_keys()

    async def get_key(self, kid: str) -> Optional[str]:
        """Get the PEM certificate for a key id."""
        keys = await self.get_public_keys()
        if kid in keys:
            return keys[kid]

        # Keys rotate; refresh once unless we just did.
        if self._refresh_due():
            async with self.lock:
                # Another waiter may have refreshed while we queued.
                if self._keys is not None and kid in self._keys:
                    return self._keys[kid]
                if self._refresh_due():
                    keys = await self._fetch_keys()
                    if kid in keys:
                        return keys[kid]

        self.logger.warning("Key not found", kid=kid)
        return None

    async def clear_cache(self):
        """Clear the in-process keys and the shared cache entry."""
        self._keys = None
        self._expires_at = 0.0
        self._fetched_at = 0.0
        if self.cache is not None:
            await self.cache.delete(self.cache_key)
        self.logger.info("Public key cache cleared")

    def _refresh_due(self) -> bool:
        return time.time() - self._fetched_at >= self.min_refresh_interval

    async def _load_from_cache(self) -> bool:
        if self.cache is None:
            return False

        cached = await self.cache.get(self.cache_key)
        if not isinstance(cached, dict):
            return False

        keys = cached.get("keys")
        expires_at = cached.get("expires_at", 0)
        if not isinstance(keys, dict) or not keys or expires_at <= time.time():
            return False

        self._keys = keys
        self._expires_at = expires_at
        self.logger.debug("Public keys loaded from shared cache", keys_count=len(keys))
        return True

    async def _fetch_keys(self) -> Dict[str, str]:
        try:
            response = await self.request("GET", self.keys_url)
            keys = self.decode_json(response)
            if not isinstance(keys, dict) or not all(
                isinstance(kid, str) and isinstance(cert, str) for kid, cert in keys.items()
            ):
                raise ExternalServiceError(self.service, "public key response is not a certificate map")
        except FirebaseAuthError as e:
            self.logger.error("Failed to fetch public keys", error=str(e))
            if self._keys is not None:
                self._fetched_at = time.time()
                self.logger.warning("Using stale public keys due to fetch failure")
                return self._keys
            raise

        ttl = parse_max_age(response.headers.get("cache-control")) or self.default_ttl
        now = time.time()
        self._keys = keys
        self._fetched_at = now
        self._expires_at = now + ttl

        self.logger.info("Public keys refreshed", keys_count=len(keys), ttl=ttl)

        if self.cache is not None:
            await self.cache.put(
                self.cache_key,
                {"keys": keys, "expires_at": self._expires_at},
                expiration_ttl=ttl,
            )

        return keys
