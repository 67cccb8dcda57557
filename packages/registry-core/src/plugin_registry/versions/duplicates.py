"""Duplicate detection for (project, version string, platform)."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import (
    PlatformVersion,
    ProjectVersion,
    ProjectVersionPlatformDependency,
    ProjectVersionPlatformKey,
)
from plugin_registry.models import Platform


class DuplicateDetector:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def platforms_for_version_string(self, project_id: int, version_string: str) -> set[Platform]:
        """Platforms already committed for *version_string* in the project."""
        via_dependencies = (
            select(PlatformVersion.platform)
            .join(ProjectVersionPlatformDependency, ProjectVersionPlatformDependency.platform_version_id == PlatformVersion.id)
            .join(ProjectVersion, ProjectVersion.id == ProjectVersionPlatformDependency.version_id)
            .where(
                ProjectVersion.project_id == project_id,
                ProjectVersion.version_string == version_string,
            )
        )
        via_keys = select(ProjectVersionPlatformKey.platform).where(
            ProjectVersionPlatformKey.project_id == project_id,
            ProjectVersionPlatformKey.version_string == version_string,
        )
        async with self._session_factory() as session:
            result = await session.execute(union(via_dependencies, via_keys))
            return {Platform(p) for p in result.scalars().all()}

    async def exists(self, project_id: int, version_string: str, platforms: Iterable[Platform]) -> bool:
        existing = await self.platforms_for_version_string(project_id, version_string)
        return not existing.isdisjoint(platforms)
