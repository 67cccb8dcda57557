"""SQLAlchemy models for projects, channels, platform versions and versions.

A committed version is one ``project_versions`` row plus its children:
tags, platform dependencies, plugin dependencies and platform keys. Every
child references the version with ON DELETE CASCADE.

``project_version_platform_keys`` carries the unique (project, version string,
platform) constraint that decides which of two racing publishes wins.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, String, Text, Boolean, Integer, BigInteger, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_name: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="new")
    forum_sync: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("owner_name", "name", name="uq_projects_owner_name"),
    )


class ProjectChannel(Base):
    __tablename__ = "project_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False)
    non_reviewed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_channels_project_name"),
    )


class PlatformVersion(Base):
    """Catalog of concrete platform versions (e.g. PAPER 1.20)."""
    __tablename__ = "platform_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    version: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("platform", "version", name="uq_platform_versions"),
    )


class ProjectVersion(Base):
    __tablename__ = "project_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    version_string: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    channel_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_channels.id"), nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    file_hash: Mapped[str | None] = mapped_column(String(32))
    file_name: Mapped[str | None] = mapped_column(String(255))
    author_id: Mapped[int] = mapped_column(Integer, nullable=False)
    forum_sync: Mapped[bool] = mapped_column(Boolean, default=True)
    external_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_versions_project_string", "project_id", "version_string"),
        Index("ix_versions_project_hash", "project_id", "file_hash"),
    )


class ProjectVersionTag(Base):
    __tablename__ = "project_version_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    data: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    color: Mapped[str] = mapped_column(String(16), nullable=False)


class ProjectVersionPlatformDependency(Base):
    __tablename__ = "project_version_platform_dependencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    platform_version_id: Mapped[int] = mapped_column(Integer, ForeignKey("platform_versions.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("version_id", "platform_version_id", name="uq_version_platform_dependency"),
    )


class ProjectVersionDependency(Base):
    """Plugin dependency declared by a version."""
    __tablename__ = "project_version_dependencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False)
    project_id: Mapped[int | None] = mapped_column(Integer)
    external_url: Mapped[str | None] = mapped_column(Text)


class ProjectVersionPlatformKey(Base):
    """One row per platform a version targets; the uniqueness guard for publishes."""
    __tablename__ = "project_version_platform_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    version_string: Mapped[str] = mapped_column(String(64), nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "version_string", "platform", name="uq_project_version_platform"),
    )


class RecommendedVersion(Base):
    __tablename__ = "recommended_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "platform", name="uq_recommended_project_platform"),
    )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    actor: Mapped[str] = mapped_column(String(256), nullable=False)
    resource: Mapped[str] = mapped_column(String(256), nullable=False)
    details_json: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
