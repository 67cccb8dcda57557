"""Shared fixtures: temp SQLite database, wired registry, seeded project, archives."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
import yaml
from sqlalchemy import func, select

from plugin_registry.config import RegistryConfig
from plugin_registry.db.engine import create_engine, get_session_factory
from plugin_registry.db.models import Base, Project
from plugin_registry.models import Platform, Uploader
from plugin_registry.registry import create_registry
from plugin_registry.services.audit import InMemoryAuditSink
from plugin_registry.services.cache import InMemoryCacheInvalidator
from plugin_registry.services.notifications import InMemoryNotificationSink


@pytest.fixture
def config(tmp_path):
    return RegistryConfig(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        uploads_dir=str(tmp_path / "uploads"),
        plugins_dir=str(tmp_path / "plugins"),
    )


@pytest.fixture
async def db_engine(config):
    engine = create_engine(config.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory(db_engine)


@pytest.fixture
def registry(config, session_factory):
    return create_registry(
        config,
        session_factory,
        notifications=InMemoryNotificationSink(),
        audit=InMemoryAuditSink(),
        cache=InMemoryCacheInvalidator(),
    )


@pytest.fixture
async def project_id(session_factory, registry):
    async with session_factory() as session, session.begin():
        project = Project(owner_name="alice", name="Sprinkles", visibility="new", forum_sync=True)
        session.add(project)
        await session.flush()
        new_id = project.id
    await registry.platforms.add(Platform.PAPER, "1.19", "1.20")
    await registry.platforms.add(Platform.WATERFALL, "1.20")
    await registry.platforms.add(Platform.VELOCITY, "3.2", "3.3")
    return new_id


@pytest.fixture
def uploader():
    return Uploader(user_id=7, name="alice")


@pytest.fixture
def make_archive(tmp_path):
    """Build a plugin archive with a plugin.yml and return its path."""
    src_dir = tmp_path / "src"
    src_dir.mkdir(exist_ok=True)

    def _make(
        name: str = "sprinkles.jar",
        version: str = "1.0.0",
        platforms: dict | None = None,
        dependencies: dict | None = None,
        description: str = "Sprinkles on everything",
        metadata: bool = True,
    ) -> Path:
        path = src_dir / name
        with zipfile.ZipFile(path, "w") as archive:
            if metadata:
                block = {
                    "name": "Sprinkles",
                    "version": version,
                    "description": description,
                    "platforms": platforms if platforms is not None else {"paper": ["1.19", "1.20"]},
                }
                if dependencies:
                    block["dependencies"] = dependencies
                archive.writestr("plugin.yml", yaml.safe_dump(block))
            archive.writestr("com/example/sprinkles/Main.class", b"\xca\xfe\xba\xbe" + version.encode())
        return path

    return _make


@pytest.fixture
def stage(registry, project_id, uploader, make_archive):
    """Stage a freshly built archive; returns the StageResult."""

    async def _stage(**kwargs):
        path = make_archive(**kwargs)
        with open(path, "rb") as f:
            return await registry.builder.stage_upload(project_id, uploader, path.name, f)

    return _stage


@pytest.fixture
def count_rows(session_factory):
    async def _count(model) -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    return _count
