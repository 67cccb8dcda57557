"""Project lookup and visibility changes."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import Project
from plugin_registry.models import ProjectInfo, Visibility

logger = logging.getLogger(__name__)


class ProjectProvider:
    """Abstract project provider interface."""
    async def get_project(self, project_id: int) -> ProjectInfo | None: ...
    async def change_visibility(self, project_id: int, visibility: Visibility, comment: str) -> None: ...


class ProjectService(ProjectProvider):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_project(self, project_id: int) -> ProjectInfo | None:
        async with self._session_factory() as session:
            row = await session.get(Project, project_id)
            if row is None:
                return None
            return ProjectInfo(
                id=row.id,
                owner_name=row.owner_name,
                name=row.name,
                visibility=Visibility(row.visibility),
                forum_sync=row.forum_sync,
            )

    async def change_visibility(self, project_id: int, visibility: Visibility, comment: str) -> None:
        async with self._session_factory() as session, session.begin():
            row = await session.get(Project, project_id)
            if row is None:
                raise LookupError(f"Project {project_id} not found")
            previous = row.visibility
            row.visibility = visibility.value
        logger.info("Project %s visibility %s -> %s (%s)", project_id, previous, visibility.value, comment)
