"""Recommended version per (project, platform)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import RecommendedVersion
from plugin_registry.models import Platform


class RecommendedVersionService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def set_recommended(self, project_id: int, version_id: int, platform: Platform) -> None:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(RecommendedVersion).where(
                    RecommendedVersion.project_id == project_id,
                    RecommendedVersion.platform == platform.value,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(RecommendedVersion(project_id=project_id, platform=platform.value, version_id=version_id))
            else:
                row.version_id = version_id

    async def get_recommended(self, project_id: int, platform: Platform) -> int | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RecommendedVersion.version_id).where(
                    RecommendedVersion.project_id == project_id,
                    RecommendedVersion.platform == platform.value,
                )
            )
            return result.scalar_one_or_none()
