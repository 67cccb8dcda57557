"""Pydantic v2 models for drafts, dependencies and collaborator records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class Platform(Enum):
    PAPER = "PAPER"
    WATERFALL = "WATERFALL"
    VELOCITY = "VELOCITY"

    @property
    def tag_color(self) -> str:
        return _PLATFORM_TAG_COLORS[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_PLATFORM_TAG_COLORS = {
    Platform.PAPER: "#F7CF0D",
    Platform.WATERFALL: "#F7CF0D",
    Platform.VELOCITY: "#1BB9E2",
}

UNSTABLE_TAG = "Unstable"
UNSTABLE_TAG_COLOR = "#FFDAB9"


class Visibility(Enum):
    PUBLIC = "public"
    NEW = "new"
    NEEDS_CHANGES = "needs_changes"
    NEEDS_APPROVAL = "needs_approval"
    SOFT_DELETE = "soft_delete"


# ── Draft version ───────────────────────────────────────────────────────────


class PluginDependency(BaseModel):
    """A dependency declared by the artifact on another plugin.

    Resolved when ``project_id`` points at a registry project, external when
    only ``external_url`` is known.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = True
    project_id: int | None = None
    external_url: str | None = None


class FileInfo(BaseModel):
    name: str
    size_bytes: int
    md5_hash: str


class FileSource(BaseModel):
    kind: Literal["file"] = "file"
    file: FileInfo


class UrlSource(BaseModel):
    kind: Literal["url"] = "url"
    external_url: str


ArtifactSource = Annotated[Union[FileSource, UrlSource], Field(discriminator="kind")]


class PendingVersion(BaseModel):
    """Uncommitted draft of a version, returned by staging and edited by the caller."""

    version_string: str = ""
    description: str | None = None
    platform_dependencies: dict[Platform, set[str]] = Field(default_factory=dict)
    plugin_dependencies: dict[Platform, set[PluginDependency]] = Field(default_factory=dict)
    source: ArtifactSource
    channel_name: str
    channel_color: str
    channel_non_reviewed: bool = False
    forum_sync: bool = True
    unstable: bool = False
    recommended: bool = True

    @property
    def is_file(self) -> bool:
        return isinstance(self.source, FileSource)

    @property
    def file_info(self) -> FileInfo | None:
        return self.source.file if isinstance(self.source, FileSource) else None

    @property
    def external_url(self) -> str | None:
        return self.source.external_url if isinstance(self.source, UrlSource) else None

    @property
    def platforms(self) -> set[Platform]:
        return set(self.platform_dependencies)


# ── Collaborator records ────────────────────────────────────────────────────


@dataclass
class Uploader:
    user_id: int
    name: str


@dataclass
class ProjectInfo:
    id: int
    owner_name: str
    name: str
    visibility: Visibility
    forum_sync: bool = True


@dataclass
class ChannelInfo:
    id: int
    project_id: int
    name: str
    color: str
    non_reviewed: bool = False


@dataclass
class PluginMetadata:
    """Declared metadata block read from an artifact."""

    version: str
    description: str | None = None
    platform_dependencies: dict[Platform, set[str]] = field(default_factory=dict)
    plugin_dependencies: dict[Platform, set[PluginDependency]] = field(default_factory=dict)
    md5_hash: str = ""
