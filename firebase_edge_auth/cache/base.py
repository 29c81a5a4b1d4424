"""
Cache interface consumed by the auth client.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Cache(ABC):
    """Key-value store with get / put-with-expiry semantics.

    Values must be JSON-serialisable so that remote backends can store them.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired."""

    @abstractmethod
    async def put(self, key: str, value: Any, expiration_ttl: Optional[int] = None) -> None:
        """Store a value, expiring after ``expiration_ttl`` seconds when given."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value if present."""
