from __future__ import annotations

import time

from app.domain.ports import CacheBackendPort


class InMemoryCacheBackend(CacheBackendPort):
    """
    Einfacher TTL-basierter In-Memory Cache.
    Fallback, wenn kein Redis konfiguriert ist, und Stub für Tests.
    """

    def __init__(self) -> None:
        # Key: cache key, Value: (payload, expires_at)
        self._storage: dict[str, tuple[bytes, float]] = {}

    async def get(self, key: str) -> bytes | None:
        """Holt einen Wert aus dem Cache, sofern vorhanden und nicht abgelaufen."""
        if key not in self._storage:
            return None

        value, expires_at = self._storage[key]
        if time.time() > expires_at:
            del self._storage[key]
            return None

        return value

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Speichert einen Wert, der nach `ttl_seconds` verfällt."""
        if not isinstance(value, bytes):
            raise TypeError(f"Cache values must be bytes, got {type(value).__name__}")
        self._storage[key] = (value, time.time() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._storage.pop(key, None)
