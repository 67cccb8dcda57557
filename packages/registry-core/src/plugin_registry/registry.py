"""Wires the builder, pipeline and their default collaborators from one config."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.config import RegistryConfig
from plugin_registry.metadata import ArchiveMetadataExtractor, MetadataExtractor
from plugin_registry.services.audit import AuditSink, SqlAuditSink
from plugin_registry.services.cache import CacheInvalidator, InMemoryCacheInvalidator
from plugin_registry.services.channels import ChannelService
from plugin_registry.services.notifications import InMemoryNotificationSink, NotificationSink
from plugin_registry.services.platforms import PlatformVersionCatalog
from plugin_registry.services.projects import ProjectService
from plugin_registry.services.recommended import RecommendedVersionService
from plugin_registry.storage import LocalArtifactStore
from plugin_registry.versions.builder import PendingVersionBuilder
from plugin_registry.versions.duplicates import DuplicateDetector
from plugin_registry.versions.pipeline import PublicationPipeline


@dataclass
class VersionRegistry:
    config: RegistryConfig
    store: LocalArtifactStore
    projects: ProjectService
    channels: ChannelService
    platforms: PlatformVersionCatalog
    recommended: RecommendedVersionService
    duplicates: DuplicateDetector
    notifications: NotificationSink
    audit: AuditSink
    cache: CacheInvalidator
    builder: PendingVersionBuilder
    pipeline: PublicationPipeline


def create_registry(
    config: RegistryConfig,
    session_factory: async_sessionmaker[AsyncSession],
    extractor: MetadataExtractor | None = None,
    notifications: NotificationSink | None = None,
    audit: AuditSink | None = None,
    cache: CacheInvalidator | None = None,
) -> VersionRegistry:
    store = LocalArtifactStore(config.uploads_dir, config.plugins_dir)
    projects = ProjectService(session_factory)
    channels = ChannelService(session_factory)
    platforms = PlatformVersionCatalog(session_factory)
    recommended = RecommendedVersionService(session_factory)
    duplicates = DuplicateDetector(session_factory)
    notifications = notifications or InMemoryNotificationSink()
    audit = audit or SqlAuditSink(session_factory)
    cache = cache or InMemoryCacheInvalidator()

    builder = PendingVersionBuilder(
        config=config,
        session_factory=session_factory,
        store=store,
        extractor=extractor or ArchiveMetadataExtractor(config.metadata_file_name),
        projects=projects,
        channels=channels,
        duplicates=duplicates,
    )
    pipeline = PublicationPipeline(
        config=config,
        session_factory=session_factory,
        store=store,
        projects=projects,
        channels=channels,
        platforms=platforms,
        duplicates=duplicates,
        recommended=recommended,
        notifications=notifications,
        audit=audit,
        cache=cache,
    )
    return VersionRegistry(
        config=config,
        store=store,
        projects=projects,
        channels=channels,
        platforms=platforms,
        recommended=recommended,
        duplicates=duplicates,
        notifications=notifications,
        audit=audit,
        cache=cache,
        builder=builder,
        pipeline=pipeline,
    )
