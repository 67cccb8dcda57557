"""API fixtures: temp database, wired registry and an ASGI test client."""
from __future__ import annotations

import io
import zipfile

import pytest
import yaml
from httpx import ASGITransport, AsyncClient

from plugin_registry.config import RegistryConfig
from plugin_registry.db.engine import create_engine, get_session_factory
from plugin_registry.db.models import Base, Project
from plugin_registry.models import Platform
from plugin_registry.registry import create_registry
from plugin_registry.services.audit import InMemoryAuditSink
from plugin_registry.services.cache import InMemoryCacheInvalidator
from plugin_registry.services.notifications import InMemoryNotificationSink
from registry_api.app import create_app
from registry_api.deps import get_registry



@pytest.fixture
def config(tmp_path):
    return RegistryConfig(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        uploads_dir=str(tmp_path / "uploads"),
        plugins_dir=str(tmp_path / "plugins"),
    )


@pytest.fixture
async def session_factory(config):
    engine = create_engine(config.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory(engine)
    await engine.dispose()


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
    return new_id


@pytest.fixture
async def client(config, registry):
    """Async HTTP client wired to the FastAPI app with the test registry."""
    app = create_app(config)
    app.dependency_overrides[get_registry] = lambda: registry
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def archive_bytes():
    def _make(version: str = "1.0.0") -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("plugin.yml", yaml.safe_dump({
                "name": "Sprinkles",
                "version": version,
                "platforms": {"paper": ["1.20"]},
            }))
            archive.writestr("com/example/sprinkles/Main.class", b"\xca\xfe\xba\xbe" + version.encode())
        return buffer.getvalue()

    return _make
