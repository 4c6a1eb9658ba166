# src/app/adapters/redis_cache.py
from __future__ import annotations

from redis.asyncio import Redis

from app.domain.ports import CacheBackendPort


class RedisCacheBackend(CacheBackendPort):
    """
    Adapter für Redis als Cache-Backend.
    Fehler (ConnectionError, TimeoutError, ...) werden hier nicht behandelt;
    das übernimmt die Retry-Schicht in app.services.cache_service.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCacheBackend:
        return cls(Redis.from_url(url, socket_timeout=2.0, socket_connect_timeout=2.0))

    async def get(self, key: str) -> bytes | None:
        value = await self._client.get(key)
        if value is None:
            return None
        return bytes(value)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()
