"""
Process-local cache.
"""

import time
from typing import Any, Dict, Optional, Tuple

from .base import Cache


class InMemoryCache(Cache):
    """Dict-backed cache with monotonic-clock expiry."""

    def __init__(self):
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: Any, expiration_ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + expiration_ttl if expiration_ttl else None
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
