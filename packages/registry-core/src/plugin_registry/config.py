"""Registry configuration via environment variables."""

from __future__ import annotations

import re
from functools import cached_property

from pydantic_settings import BaseSettings


class RegistryConfig(BaseSettings):
    """All settings consumed by the version builder and publication pipeline.

    Loaded from ``REGISTRY_*`` env vars or a ``.env`` file and passed explicitly
    to the components that need it.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///data/registry.db"
    database_echo: bool = False

    # Storage roots
    uploads_dir: str = "data/uploads"
    plugins_dir: str = "data/plugins"

    # Version naming
    version_name_regex: str = r"^[a-zA-Z0-9_+-][a-zA-Z0-9._+-]{0,29}$"
    archive_suffixes: tuple[str, ...] = (".jar", ".zip")
    metadata_file_name: str = "plugin.yml"

    # Reject an upload whose md5 + version string already exist for the project
    file_validate: bool = True
    # Verification read errors fail the publish (False keeps the old log-and-continue path)
    strict_verification: bool = True

    # Relocation of a staged artifact, per attempt
    io_timeout_seconds: float = 30.0

    # Cache
    redis_url: str = "redis://localhost:6379/0"
    cache_key_prefix: str = "registry:cache"

    model_config = {
        "env_prefix": "REGISTRY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @cached_property
    def version_name_pattern(self) -> re.Pattern[str]:
        return re.compile(self.version_name_regex)

    def is_valid_version_name(self, version_string: str) -> bool:
        return bool(version_string) and self.version_name_pattern.fullmatch(version_string) is not None

    def has_archive_suffix(self, filename: str) -> bool:
        return filename.lower().endswith(tuple(s.lower() for s in self.archive_suffixes))
