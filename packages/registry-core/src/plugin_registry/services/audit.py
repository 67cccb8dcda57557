"""Audit logging for version uploads."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plugin_registry.db.models import AuditLog

VERSION_UPLOADED = "version_uploaded"


@dataclass
class AuditEntry:
    action: str
    actor: str
    project_id: int
    version_id: int
    details: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def resource(self) -> str:
        return f"project:{self.project_id}/version:{self.version_id}"


class AuditSink:
    """Abstract audit sink interface."""
    async def record(self, entry: AuditEntry) -> None: ...


class InMemoryAuditSink(AuditSink):
    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)


class SqlAuditSink(AuditSink):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, entry: AuditEntry) -> None:
        async with self._session_factory() as session, session.begin():
            session.add(
                AuditLog(
                    id=str(uuid.uuid4()),
                    action=entry.action,
                    actor=entry.actor,
                    resource=entry.resource,
                    details_json=json.dumps(entry.details) if entry.details else None,
                    created_at=entry.timestamp,
                )
            )
