"""Shared dependencies -- registry wiring and uploader identity."""
from __future__ import annotations

from fastapi import Header, Request

from plugin_registry.models import Uploader
from plugin_registry.registry import VersionRegistry


def get_registry(request: Request) -> VersionRegistry:
    """Return the registry built during application startup."""
    return request.app.state.registry


async def get_uploader(
    x_user_id: int = Header(...),
    x_user_name: str = Header(...),
) -> Uploader:
    """Uploader identity as forwarded by the authenticating proxy."""
    return Uploader(user_id=x_user_id, name=x_user_name)
