"""Publication pipeline — turns an approved draft into committed registry state.

Transactional core (any failure once rows may exist rolls everything back):

1. Verify the staged file against its descriptor (file drafts)
2. Re-check (project, version, platform) duplicates
3. Check every platform version against the catalog
4. Resolve or create the target channel
5. Insert the version and all child rows in one transaction
6. Copy the staged file into the permanent tree, then drop the staging copy

Post-commit, best-effort (failures are logged and reported, never rolled back):

7. First-version visibility, recommended marking, notification, audit,
   cache invalidation
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.config import RegistryConfig
from plugin_registry.db.models import (
    ProjectVersion,
    ProjectVersionDependency,
    ProjectVersionPlatformDependency,
    ProjectVersionPlatformKey,
    ProjectVersionTag,
)
from plugin_registry.errors import ErrorCode, ErrorKind, UnsafePathError, VersionError
from plugin_registry.models import (
    UNSTABLE_TAG,
    UNSTABLE_TAG_COLOR,
    ChannelInfo,
    FileInfo,
    PendingVersion,
    ProjectInfo,
    Uploader,
    Visibility,
)
from plugin_registry.services.audit import VERSION_UPLOADED, AuditEntry, AuditSink
from plugin_registry.services.cache import AUTHORS, HOME_PROJECTS, CacheInvalidator
from plugin_registry.services.channels import ChannelProvider
from plugin_registry.services.notifications import NotificationSink
from plugin_registry.services.platforms import PlatformCatalog
from plugin_registry.services.projects import ProjectProvider
from plugin_registry.services.recommended import RecommendedVersionService
from plugin_registry.storage import LocalArtifactStore
from plugin_registry.versions.duplicates import DuplicateDetector
from plugin_registry.versions.state import PublishState, PublishStateMachine

logger = logging.getLogger(__name__)

_CHILD_TABLES = (
    ProjectVersionTag,
    ProjectVersionPlatformDependency,
    ProjectVersionDependency,
    ProjectVersionPlatformKey,
)


@dataclass
class PublishedVersion:
    id: int
    project_id: int
    version_string: str
    channel_id: int
    artifact_paths: list[Path] = field(default_factory=list)


@dataclass
class PublishResult:
    success: bool
    state: PublishState
    history: list[PublishState]
    version: PublishedVersion | None = None
    error: VersionError | None = None
    side_effect_failures: list[str] = field(default_factory=list)


class _UniqueKeyConflict(Exception):
    pass


class PublicationPipeline:
    def __init__(
        self,
        config: RegistryConfig,
        session_factory: async_sessionmaker[AsyncSession],
        store: LocalArtifactStore,
        projects: ProjectProvider,
        channels: ChannelProvider,
        platforms: PlatformCatalog,
        duplicates: DuplicateDetector,
        recommended: RecommendedVersionService,
        notifications: NotificationSink,
        audit: AuditSink,
        cache: CacheInvalidator,
    ) -> None:
        self._config = config
        self._session_factory = session_factory
        self._store = store
        self._projects = projects
        self._channels = channels
        self._platforms = platforms
        self._duplicates = duplicates
        self._recommended = recommended
        self._notifications = notifications
        self._audit = audit
        self._cache = cache

    async def publish(self, project_id: int, pending: PendingVersion, uploader: Uploader) -> PublishResult:
        machine = PublishStateMachine()
        machine.transition(PublishState.VERIFYING)

        project = await self._projects.get_project(project_id)
        if project is None:
            return self._failed(machine, VersionError.of(ErrorCode.UNKNOWN_PROJECT, str(project_id)))

        staged = None
        if pending.is_file:
            try:
                staged = self._store.temp_path(uploader.name, pending.file_info.name)
            except UnsafePathError as e:
                return self._failed(machine, VersionError.of(ErrorCode.MISSING_FILE, str(e)))
        error = await self._verify(project_id, pending, staged)
        if error is not None:
            return self._failed(machine, error)

        machine.transition(PublishState.COMMITTING)
        version_id: int | None = None
        channel: ChannelInfo | None = None
        written: list[Path] = []
        try:
            channel = await self._channels.resolve_or_create(
                project_id, pending.channel_name, pending.channel_color, pending.channel_non_reviewed
            )
            platform_version_ids = await self._resolve_platform_versions(pending)
            version_id = await self._insert_version(project_id, pending, channel, uploader, platform_version_ids)

            machine.transition(PublishState.RELOCATING)
            if staged is not None:
                await self._relocate_within_timeout(project, pending, staged, written)
        except _UniqueKeyConflict:
            logger.warning("Lost publish race for %s in project %s", pending.version_string, project_id)
            error = VersionError.of(ErrorCode.DUPLICATE_NAME_AND_PLATFORM, pending.version_string)
        except TimeoutError:
            logger.error("Relocation of %s for %s timed out", pending.version_string, uploader.name)
            error = VersionError.of(
                ErrorCode.FILE_IO_ERROR, f"relocation timed out after {self._config.io_timeout_seconds}s"
            )
        except OSError as e:
            logger.error("Unable to create version %s for %s", pending.version_string, uploader.name, exc_info=True)
            error = VersionError.of(ErrorCode.FILE_IO_ERROR, str(e))
        except Exception as e:
            logger.error("Unable to create version %s for %s", pending.version_string, uploader.name, exc_info=True)
            error = VersionError.of(ErrorCode.UNKNOWN_PUBLISH_ERROR, f"{type(e).__name__}: {e}")

        if error is not None:
            machine.transition(PublishState.ROLLING_BACK)
            await self._rollback(version_id, self._owned_paths(project, pending, staged, version_id, written))
            return self._failed(machine, error)

        machine.transition(PublishState.SIDE_EFFECTS)
        failures = await self._run_side_effects(project, pending, version_id, uploader)

        machine.transition(PublishState.PUBLISHED)
        logger.info("Published %s for project %s (version id %s)", pending.version_string, project_id, version_id)
        return PublishResult(
            success=True,
            state=machine.state,
            history=list(machine.history),
            version=PublishedVersion(
                id=version_id,
                project_id=project_id,
                version_string=pending.version_string,
                channel_id=channel.id,
                artifact_paths=written,
            ),
            side_effect_failures=failures,
        )

    # ── Steps 1-3: checks before any mutation ──────────────────────────────

    async def _verify(self, project_id: int, pending: PendingVersion, staged: Path | None) -> VersionError | None:
        if not self._config.is_valid_version_name(pending.version_string):
            return VersionError.of(ErrorCode.INVALID_VERSION_STRING, pending.version_string)

        if staged is not None:
            try:
                error = await asyncio.to_thread(self._check_staged_file, staged, pending.file_info)
            except OSError as e:
                logger.error("Could not verify %s for publishing", staged, exc_info=True)
                if self._config.strict_verification:
                    return VersionError.of(ErrorCode.FILE_IO_ERROR, str(e), kind=ErrorKind.INTEGRITY)
                error = None
            if error is not None:
                return error

        if await self._duplicates.exists(project_id, pending.version_string, pending.platforms):
            return VersionError.of(ErrorCode.DUPLICATE_NAME_AND_PLATFORM, pending.version_string)

        for platform, versions in pending.platform_dependencies.items():
            unknown = versions - await self._platforms.versions_for_platform(platform)
            if unknown:
                return VersionError.of(
                    ErrorCode.INVALID_PLATFORM_VERSION,
                    f"{platform.value}: {', '.join(sorted(unknown))}",
                )
        return None

    def _check_staged_file(self, staged: Path, file_info: FileInfo) -> VersionError | None:
        if not self._store.exists(staged):
            return VersionError.of(ErrorCode.MISSING_FILE, file_info.name)
        if self._store.size(staged) != file_info.size_bytes:
            return VersionError.of(ErrorCode.SIZE_MISMATCH, file_info.name)
        if self._store.md5(staged) != file_info.md5_hash:
            return VersionError.of(ErrorCode.HASH_MISMATCH, file_info.name)
        return None

    # ── Steps 5-6: transactional core ──────────────────────────────────────

    async def _resolve_platform_versions(self, pending: PendingVersion) -> list[int]:
        ids: list[int] = []
        for platform, versions in pending.platform_dependencies.items():
            for version in sorted(versions):
                ids.append(await self._platforms.lookup(platform, version))
        return list(dict.fromkeys(ids))

    async def _insert_version(
        self,
        project_id: int,
        pending: PendingVersion,
        channel: ChannelInfo,
        uploader: Uploader,
        platform_version_ids: list[int],
    ) -> int:
        file_info = pending.file_info
        try:
            async with self._session_factory() as session, session.begin():
                version = ProjectVersion(
                    version_string=pending.version_string,
                    description=pending.description,
                    project_id=project_id,
                    channel_id=channel.id,
                    file_size=file_info.size_bytes if file_info else None,
                    file_hash=file_info.md5_hash if file_info else None,
                    file_name=file_info.name if file_info else None,
                    author_id=uploader.user_id,
                    forum_sync=pending.forum_sync,
                    external_url=pending.external_url,
                )
                session.add(version)
                await session.flush()

                tags = [
                    ProjectVersionTag(
                        version_id=version.id,
                        name=platform.display_name,
                        data=sorted(versions),
                        color=platform.tag_color,
                    )
                    for platform, versions in pending.platform_dependencies.items()
                ]
                if pending.unstable:
                    tags.append(ProjectVersionTag(version_id=version.id, name=UNSTABLE_TAG, data=[], color=UNSTABLE_TAG_COLOR))
                session.add_all(tags)

                session.add_all(
                    ProjectVersionPlatformDependency(version_id=version.id, platform_version_id=pv_id)
                    for pv_id in platform_version_ids
                )
                session.add_all(
                    ProjectVersionDependency(
                        version_id=version.id,
                        platform=platform.value,
                        name=dependency.name,
                        required=dependency.required,
                        project_id=dependency.project_id,
                        external_url=dependency.external_url,
                    )
                    for platform, dependencies in pending.plugin_dependencies.items()
                    for dependency in dependencies
                )
                session.add_all(
                    ProjectVersionPlatformKey(
                        version_id=version.id,
                        project_id=project_id,
                        version_string=pending.version_string,
                        platform=platform.value,
                    )
                    for platform in pending.platform_dependencies
                )
                version_id = version.id
        except IntegrityError as e:
            raise _UniqueKeyConflict(str(e)) from e
        return version_id

    async def _relocate_within_timeout(
        self, project: ProjectInfo, pending: PendingVersion, staged: Path, written: list[Path]
    ) -> None:
        """Run relocation under the IO timeout.

        A copy already handed to a worker thread cannot be cancelled, so on
        timeout no further copies are started and the in-flight one is allowed
        to land before the caller rolls back.
        """
        abandoned = asyncio.Event()
        task = asyncio.ensure_future(self._relocate(project, pending, staged, written, abandoned))
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._config.io_timeout_seconds)
        except TimeoutError:
            abandoned.set()
            try:
                await task
            except Exception:
                logger.warning("Relocation of %s failed after timing out", staged, exc_info=True)
            raise

    async def _relocate(
        self,
        project: ProjectInfo,
        pending: PendingVersion,
        staged: Path,
        written: list[Path],
        abandoned: asyncio.Event,
    ) -> None:
        for platform, versions in pending.platform_dependencies.items():
            if not versions:
                continue
            if abandoned.is_set():
                return
            destination = await asyncio.to_thread(
                self._store.relocate, staged, project.owner_name, project.name, pending.version_string, platform
            )
            written.append(destination)
        if abandoned.is_set():
            return
        await asyncio.to_thread(self._store.delete, staged)

    def _owned_paths(
        self,
        project: ProjectInfo,
        pending: PendingVersion,
        staged: Path | None,
        version_id: int | None,
        written: list[Path],
    ) -> list[Path]:
        """Copies to remove on rollback.

        Once the version row exists this attempt holds the unique key for every
        declared platform, so each permanent location belongs to it even if the
        copy was never recorded in *written*.
        """
        paths = list(written)
        if staged is None or version_id is None:
            return paths
        for platform, versions in pending.platform_dependencies.items():
            if not versions:
                continue
            try:
                destination = self._store.destination(
                    staged.name, project.owner_name, project.name, pending.version_string, platform
                )
            except UnsafePathError:
                continue
            if destination not in paths:
                paths.append(destination)
        return paths

    async def _rollback(self, version_id: int | None, paths: list[Path]) -> None:
        for path in paths:
            try:
                await asyncio.to_thread(self._store.delete, path)
            except OSError:
                logger.error("Could not remove relocated artifact %s", path, exc_info=True)

        if version_id is None:
            return
        try:
            async with self._session_factory() as session, session.begin():
                for table in _CHILD_TABLES:
                    await session.execute(delete(table).where(table.version_id == version_id))
                await session.execute(delete(ProjectVersion).where(ProjectVersion.id == version_id))
        except Exception:
            logger.critical("Rollback of version %s failed; row left behind", version_id, exc_info=True)
            return
        logger.info("Rolled back version %s", version_id)

    # ── Step 7: best-effort side effects ───────────────────────────────────

    async def _run_side_effects(
        self,
        project: ProjectInfo,
        pending: PendingVersion,
        version_id: int,
        uploader: Uploader,
    ) -> list[str]:
        failures: list[str] = []

        async def attempt(name: str, action: Callable[[], Awaitable[None]]) -> None:
            try:
                await action()
            except Exception:
                logger.error("Post-publish step %s failed for version %s", name, version_id, exc_info=True)
                failures.append(name)

        if project.visibility == Visibility.NEW:
            await attempt(
                "visibility",
                lambda: self._projects.change_visibility(project.id, Visibility.PUBLIC, "First version"),
            )

        if pending.recommended:
            for platform in pending.platform_dependencies:
                await attempt(
                    f"recommended:{platform.value}",
                    lambda platform=platform: self._recommended.set_recommended(project.id, version_id, platform),
                )

        await attempt(
            "notification",
            lambda: self._notifications.notify_new_version(project, version_id, pending.version_string),
        )
        await attempt(
            "audit",
            lambda: self._audit.record(
                AuditEntry(
                    action=VERSION_UPLOADED,
                    actor=uploader.name,
                    project_id=project.id,
                    version_id=version_id,
                    details={"version_string": pending.version_string, "result": "published"},
                )
            ),
        )
        await attempt("cache", lambda: self._cache.invalidate(HOME_PROJECTS, AUTHORS))
        return failures

    @staticmethod
    def _failed(machine: PublishStateMachine, error: VersionError) -> PublishResult:
        machine.transition(PublishState.FAILED)
        return PublishResult(
            success=False,
            state=machine.state,
            history=list(machine.history),
            error=error,
        )
