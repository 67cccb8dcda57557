"""Pending version builder — stages an upload or URL into an editable draft.

Nothing here writes to the database; an uploaded file only reaches the
uploader's staging area.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import BinaryIO
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.config import RegistryConfig
from plugin_registry.db.models import ProjectVersion
from plugin_registry.errors import ErrorCode, MetadataParseError, VersionError
from plugin_registry.metadata import MetadataExtractor
from plugin_registry.models import FileInfo, FileSource, PendingVersion, Uploader, UrlSource
from plugin_registry.services.channels import ChannelProvider
from plugin_registry.services.projects import ProjectProvider
from plugin_registry.storage import LocalArtifactStore
from plugin_registry.versions.duplicates import DuplicateDetector

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def slugify(value: str) -> str:
    """Collapse whitespace runs and join the words with dashes."""
    return _WHITESPACE.sub(" ", value.strip()).replace(" ", "-")


@dataclass
class StageResult:
    success: bool
    pending: PendingVersion | None = None
    error: VersionError | None = None

    @classmethod
    def fail(cls, code: ErrorCode, detail: str = "") -> StageResult:
        return cls(success=False, error=VersionError.of(code, detail))


class PendingVersionBuilder:
    def __init__(
        self,
        config: RegistryConfig,
        session_factory: async_sessionmaker[AsyncSession],
        store: LocalArtifactStore,
        extractor: MetadataExtractor,
        projects: ProjectProvider,
        channels: ChannelProvider,
        duplicates: DuplicateDetector,
    ) -> None:
        self._config = config
        self._session_factory = session_factory
        self._store = store
        self._extractor = extractor
        self._projects = projects
        self._channels = channels
        self._duplicates = duplicates

    async def stage_upload(
        self,
        project_id: int,
        uploader: Uploader,
        filename: str | None,
        stream: BinaryIO,
    ) -> StageResult:
        project = await self._projects.get_project(project_id)
        if project is None:
            return StageResult.fail(ErrorCode.UNKNOWN_PROJECT, str(project_id))

        if not filename or not self._config.has_archive_suffix(filename):
            return StageResult.fail(ErrorCode.INVALID_EXTENSION, filename or "")

        try:
            staged = await asyncio.to_thread(self._store.stage, uploader.name, filename, stream)
        except OSError as e:
            logger.error("Error while staging %s for %s", filename, uploader.name, exc_info=True)
            return StageResult.fail(ErrorCode.STAGING_IO_ERROR, str(e))

        try:
            metadata = await asyncio.to_thread(self._extractor.extract, staged, uploader.user_id)
        except (MetadataParseError, OSError) as e:
            logger.error("Error while reading metadata of %s for %s", filename, uploader.name, exc_info=True)
            return StageResult.fail(ErrorCode.UNEXPECTED_UPLOAD_ERROR, str(e))

        version_string = slugify(metadata.version)
        if not self._config.is_valid_version_name(version_string):
            return StageResult.fail(ErrorCode.INVALID_VERSION_STRING, version_string)

        if await self._duplicates.exists(project_id, version_string, metadata.platform_dependencies.keys()):
            return StageResult.fail(ErrorCode.DUPLICATE_NAME_AND_PLATFORM, version_string)

        if self._config.file_validate and await self._artifact_exists(project_id, metadata.md5_hash, version_string):
            return StageResult.fail(ErrorCode.DUPLICATE_ARTIFACT, version_string)

        channel = await self._channels.first_channel(project_id)
        pending = PendingVersion(
            version_string=version_string,
            description=metadata.description,
            platform_dependencies=metadata.platform_dependencies,
            plugin_dependencies=metadata.plugin_dependencies,
            source=FileSource(
                file=FileInfo(
                    name=staged.name,
                    size_bytes=await asyncio.to_thread(self._store.size, staged),
                    md5_hash=metadata.md5_hash,
                )
            ),
            channel_name=channel.name,
            channel_color=channel.color,
            channel_non_reviewed=channel.non_reviewed,
            forum_sync=project.forum_sync,
        )
        logger.info("Staged %s %s for project %s", staged.name, version_string, project_id)
        return StageResult(success=True, pending=pending)

    async def stage_url(self, project_id: int, url: str) -> StageResult:
        """Draft for an externally hosted artifact; the caller fills in the version."""
        project = await self._projects.get_project(project_id)
        if project is None:
            return StageResult.fail(ErrorCode.UNKNOWN_PROJECT, str(project_id))

        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return StageResult.fail(ErrorCode.INVALID_URL, url or "")

        channel = await self._channels.first_channel(project_id)
        pending = PendingVersion(
            source=UrlSource(external_url=url),
            channel_name=channel.name,
            channel_color=channel.color,
            channel_non_reviewed=channel.non_reviewed,
            forum_sync=project.forum_sync,
        )
        return StageResult(success=True, pending=pending)

    async def _artifact_exists(self, project_id: int, md5_hash: str, version_string: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProjectVersion.id).where(
                    ProjectVersion.project_id == project_id,
                    ProjectVersion.file_hash == md5_hash,
                    ProjectVersion.version_string == version_string,
                ).limit(1)
            )
            return result.scalar_one_or_none() is not None
