"""Release channel lookup/creation."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import ProjectChannel
from plugin_registry.models import ChannelInfo

DEFAULT_CHANNEL_NAME = "Release"
DEFAULT_CHANNEL_COLOR = "#009600"


def _to_info(row: ProjectChannel) -> ChannelInfo:
    return ChannelInfo(
        id=row.id,
        project_id=row.project_id,
        name=row.name,
        color=row.color,
        non_reviewed=row.non_reviewed,
    )


class ChannelProvider:
    """Abstract channel provider interface."""
    async def first_channel(self, project_id: int) -> ChannelInfo: ...
    async def resolve_or_create(self, project_id: int, name: str, color: str, non_reviewed: bool) -> ChannelInfo: ...


class ChannelService(ChannelProvider):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def first_channel(self, project_id: int) -> ChannelInfo:
        """Oldest channel of the project; a default one is created for projects without channels."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProjectChannel)
                .where(ProjectChannel.project_id == project_id)
                .order_by(ProjectChannel.id)
                .limit(1)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                return _to_info(row)
        return await self.resolve_or_create(project_id, DEFAULT_CHANNEL_NAME, DEFAULT_CHANNEL_COLOR, False)

    async def resolve_or_create(self, project_id: int, name: str, color: str, non_reviewed: bool) -> ChannelInfo:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(ProjectChannel).where(
                    ProjectChannel.project_id == project_id,
                    ProjectChannel.name == name,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = ProjectChannel(project_id=project_id, name=name, color=color, non_reviewed=non_reviewed)
                session.add(row)
                await session.flush()
            return _to_info(row)
