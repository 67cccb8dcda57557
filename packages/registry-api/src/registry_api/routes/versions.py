"""Version staging and publishing endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile
from pydantic import BaseModel

from plugin_registry.errors import ErrorKind, VersionError
from plugin_registry.models import PendingVersion, Uploader
from plugin_registry.registry import VersionRegistry
from registry_api.deps import get_registry, get_uploader

router = APIRouter(prefix="/api/projects/{project_id}/versions", tags=["versions"])

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTEGRITY: 400,
    ErrorKind.TRANSACTION: 400,
    ErrorKind.INFRASTRUCTURE: 400,
}


class UrlUpload(BaseModel):
    """Request body for staging an externally hosted artifact."""
    url: str


class PublishResponse(BaseModel):
    version_id: int
    version_string: str
    channel_id: int
    state: str
    side_effect_failures: list[str]


def _raise(error: VersionError) -> None:
    raise HTTPException(
        status_code=_STATUS_BY_KIND[error.kind],
        detail={"code": error.message_key, "kind": error.kind.value, "detail": error.detail},
    )


@router.post("/upload", response_model=PendingVersion)
async def stage_upload(
    project_id: int,
    file: UploadFile,
    uploader: Uploader = Depends(get_uploader),
    registry: VersionRegistry = Depends(get_registry),
):
    """Stage an uploaded archive and return the extracted draft."""
    result = await registry.builder.stage_upload(project_id, uploader, file.filename, file.file)
    if not result.success:
        _raise(result.error)
    return result.pending


@router.post("/url", response_model=PendingVersion)
async def stage_url(
    project_id: int,
    body: UrlUpload,
    registry: VersionRegistry = Depends(get_registry),
):
    """Draft a version that points at an external download."""
    result = await registry.builder.stage_url(project_id, body.url)
    if not result.success:
        _raise(result.error)
    return result.pending


@router.post("/publish", response_model=PublishResponse)
async def publish(
    project_id: int,
    pending: PendingVersion,
    uploader: Uploader = Depends(get_uploader),
    registry: VersionRegistry = Depends(get_registry),
):
    """Commit a (possibly edited) draft."""
    result = await registry.pipeline.publish(project_id, pending, uploader)
    if not result.success:
        _raise(result.error)
    return PublishResponse(
        version_id=result.version.id,
        version_string=result.version.version_string,
        channel_id=result.version.channel_id,
        state=result.state.value,
        side_effect_failures=result.side_effect_failures,
    )
