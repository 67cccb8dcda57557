"""Collaborators consumed by the version builder and publication pipeline."""

from plugin_registry.services.audit import AuditEntry, AuditSink, InMemoryAuditSink, SqlAuditSink
from plugin_registry.services.cache import CacheInvalidator, InMemoryCacheInvalidator, RedisCacheInvalidator
from plugin_registry.services.channels import ChannelProvider, ChannelService
from plugin_registry.services.notifications import InMemoryNotificationSink, NotificationSink
from plugin_registry.services.platforms import PlatformCatalog, PlatformVersionCatalog
from plugin_registry.services.projects import ProjectProvider, ProjectService
from plugin_registry.services.recommended import RecommendedVersionService

__all__ = [
    "AuditEntry",
    "AuditSink",
    "CacheInvalidator",
    "ChannelProvider",
    "ChannelService",
    "InMemoryAuditSink",
    "InMemoryCacheInvalidator",
    "InMemoryNotificationSink",
    "NotificationSink",
    "PlatformCatalog",
    "PlatformVersionCatalog",
    "ProjectProvider",
    "ProjectService",
    "RecommendedVersionService",
    "RedisCacheInvalidator",
    "SqlAuditSink",
]
