"""Invalidation of cached aggregate views (home page projects, author listings).

Key pattern: ``<prefix>:<view>``, e.g. ``registry:cache:home_projects``.
"""

from __future__ import annotations

import redis.asyncio as aioredis

HOME_PROJECTS = "home_projects"
AUTHORS = "authors"


class CacheInvalidator:
    """Abstract cache invalidator interface."""
    async def invalidate(self, *views: str) -> None: ...


class InMemoryCacheInvalidator(CacheInvalidator):
    def __init__(self) -> None:
        self.invalidated: list[str] = []

    async def invalidate(self, *views: str) -> None:
        self.invalidated.extend(views)


class RedisCacheInvalidator(CacheInvalidator):
    def __init__(self, url: str, prefix: str = "registry:cache") -> None:
        self.url = url
        self.prefix = prefix
        self._client: aioredis.Redis | None = None

    def build_key(self, view: str) -> str:
        return f"{self.prefix}:{view}"

    async def get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(self.url, decode_responses=False)
        return self._client

    async def invalidate(self, *views: str) -> None:
        if not views:
            return
        client = await self.get_client()
        await client.delete(*(self.build_key(v) for v in views))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
