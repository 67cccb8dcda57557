"""Tests for collaborator services."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from plugin_registry.db.models import AuditLog
from plugin_registry.errors import PlatformVersionNotFound
from plugin_registry.models import Platform, Visibility
from plugin_registry.services.audit import AuditEntry, SqlAuditSink
from plugin_registry.services.cache import RedisCacheInvalidator
from plugin_registry.services.channels import DEFAULT_CHANNEL_NAME


class TestProjectService:
    async def test_get_project(self, registry, project_id):
        project = await registry.projects.get_project(project_id)
        assert project.owner_name == "alice"
        assert project.visibility == Visibility.NEW

    async def test_missing_project(self, registry, project_id):
        assert await registry.projects.get_project(project_id + 50) is None

    async def test_change_visibility(self, registry, project_id):
        await registry.projects.change_visibility(project_id, Visibility.PUBLIC, "test")
        assert (await registry.projects.get_project(project_id)).visibility == Visibility.PUBLIC

    async def test_change_visibility_unknown_project(self, registry, project_id):
        with pytest.raises(LookupError):
            await registry.projects.change_visibility(project_id + 50, Visibility.PUBLIC, "test")


class TestChannelService:
    async def test_first_channel_created_on_demand(self, registry, project_id):
        channel = await registry.channels.first_channel(project_id)
        assert channel.name == DEFAULT_CHANNEL_NAME
        assert (await registry.channels.first_channel(project_id)).id == channel.id

    async def test_first_channel_is_oldest(self, registry, project_id):
        snapshot = await registry.channels.resolve_or_create(project_id, "Snapshot", "#AA0000", True)
        await registry.channels.resolve_or_create(project_id, "Release", "#009600", False)
        assert (await registry.channels.first_channel(project_id)).id == snapshot.id

    async def test_resolve_existing_keeps_color(self, registry, project_id):
        created = await registry.channels.resolve_or_create(project_id, "Beta", "#FFAA00", True)
        resolved = await registry.channels.resolve_or_create(project_id, "Beta", "#000000", False)
        assert resolved.id == created.id
        assert resolved.color == "#FFAA00"
        assert resolved.non_reviewed is True


class TestPlatformVersionCatalog:
    async def test_versions_for_platform(self, registry, project_id):
        assert await registry.platforms.versions_for_platform(Platform.PAPER) == {"1.19", "1.20"}

    async def test_add_is_idempotent(self, registry, project_id):
        await registry.platforms.add(Platform.PAPER, "1.20", "1.21")
        assert await registry.platforms.versions_for_platform(Platform.PAPER) == {"1.19", "1.20", "1.21"}

    async def test_lookup(self, registry, project_id):
        first = await registry.platforms.lookup(Platform.VELOCITY, "3.2")
        assert first == await registry.platforms.lookup(Platform.VELOCITY, "3.2")
        assert first != await registry.platforms.lookup(Platform.VELOCITY, "3.3")

    async def test_lookup_missing(self, registry, project_id):
        with pytest.raises(PlatformVersionNotFound):
            await registry.platforms.lookup(Platform.WATERFALL, "0.1")


class TestSqlAuditSink:
    async def test_record_writes_row(self, session_factory, project_id):
        sink = SqlAuditSink(session_factory)
        await sink.record(AuditEntry(action="version_uploaded", actor="alice", project_id=project_id, version_id=9,
                                     details={"version_string": "1.0.0"}))
        async with session_factory() as session:
            row = (await session.execute(select(AuditLog))).scalar_one()
        assert row.action == "version_uploaded"
        assert row.resource == f"project:{project_id}/version:9"
        assert json.loads(row.details_json) == {"version_string": "1.0.0"}


class TestRedisCacheInvalidator:
    def test_build_key(self):
        cache = RedisCacheInvalidator("redis://localhost:6379/0", prefix="registry:cache")
        assert cache.build_key("authors") == "registry:cache:authors"

    async def test_invalidate_deletes_keys(self):
        cache = RedisCacheInvalidator("redis://localhost:6379/0")
        mock_client = AsyncMock()
        with patch.object(cache, "get_client", return_value=mock_client):
            await cache.invalidate("home_projects", "authors")
        mock_client.delete.assert_awaited_once_with("registry:cache:home_projects", "registry:cache:authors")

    async def test_invalidate_nothing(self):
        cache = RedisCacheInvalidator("redis://localhost:6379/0")
        with patch.object(cache, "get_client") as get_client:
            await cache.invalidate()
        get_client.assert_not_called()

    async def test_close(self):
        cache = RedisCacheInvalidator("redis://localhost:6379/0")
        client = AsyncMock()
        cache._client = client
        await cache.close()
        client.aclose.assert_awaited_once()
        assert cache._client is None
