"""Platform version catalog."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import PlatformVersion
from plugin_registry.errors import PlatformVersionNotFound
from plugin_registry.models import Platform


class PlatformCatalog:
    """Abstract platform catalog interface."""
    async def versions_for_platform(self, platform: Platform) -> set[str]: ...
    async def lookup(self, platform: Platform, version: str) -> int: ...


class PlatformVersionCatalog(PlatformCatalog):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def versions_for_platform(self, platform: Platform) -> set[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PlatformVersion.version).where(PlatformVersion.platform == platform.value)
            )
            return set(result.scalars().all())

    async def lookup(self, platform: Platform, version: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PlatformVersion.id).where(
                    PlatformVersion.platform == platform.value,
                    PlatformVersion.version == version,
                )
            )
            platform_version_id = result.scalar_one_or_none()
        if platform_version_id is None:
            raise PlatformVersionNotFound(f"{platform.value} {version}")
        return platform_version_id

    async def add(self, platform: Platform, *versions: str) -> None:
        async with self._session_factory() as session, session.begin():
            known = await session.execute(
                select(PlatformVersion.version).where(PlatformVersion.platform == platform.value)
            )
            existing = set(known.scalars().all())
            session.add_all(
                PlatformVersion(platform=platform.value, version=v) for v in versions if v not in existing
            )
