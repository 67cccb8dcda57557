"""FastAPI application -- entry point for the registry API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from plugin_registry.config import RegistryConfig
from plugin_registry.db.engine import create_engine, get_session_factory
from plugin_registry.db.models import Base
from plugin_registry.registry import create_registry
from plugin_registry.services.cache import RedisCacheInvalidator
from registry_api.routes import versions

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def create_app(config: RegistryConfig | None = None) -> FastAPI:
    config = config or RegistryConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(config.database_url, echo=config.database_echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        cache = RedisCacheInvalidator(config.redis_url, prefix=config.cache_key_prefix)
        app.state.registry = create_registry(config, get_session_factory(engine), cache=cache)
        logger.info("Registry ready (database %s)", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            await cache.close()
            await engine.dispose()

    app = FastAPI(
        title="Plugin Registry API",
        version="0.1.0",
        description="Stage and publish plugin versions.",
        lifespan=lifespan,
    )
    app.include_router(versions.router)

    @app.get("/health")
    async def health():
        """Unauthenticated health-check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
