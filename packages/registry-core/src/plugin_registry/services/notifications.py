"""New-version notifications.

In-memory implementation records what would be delivered; delivery itself is
owned by the notification service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from plugin_registry.models import ProjectInfo


@dataclass
class VersionNotification:
    project_id: int
    project_name: str
    version_id: int
    version_string: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationSink:
    """Abstract notification sink interface."""
    async def notify_new_version(self, project: ProjectInfo, version_id: int, version_string: str) -> None: ...


class InMemoryNotificationSink(NotificationSink):
    def __init__(self) -> None:
        self.sent: list[VersionNotification] = []

    async def notify_new_version(self, project: ProjectInfo, version_id: int, version_string: str) -> None:
        self.sent.append(
            VersionNotification(
                project_id=project.id,
                project_name=project.name,
                version_id=version_id,
                version_string=version_string,
            )
        )
