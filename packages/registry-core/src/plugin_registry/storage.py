"""Local artifact store — per-uploader staging area and permanent plugin tree.

Layout:
  <uploads_dir>/tmp/<uploader>/<file>                                  staging
  <plugins_dir>/<owner>/<project>/versions/<version>/<PLATFORM>/<file> permanent

All methods are blocking; async callers run them with ``asyncio.to_thread``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from plugin_registry.errors import ArtifactStoreError, UnsafePathError
from plugin_registry.models import Platform

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def safe_component(value: str) -> str:
    """Return *value* if it names exactly one entry inside its parent directory."""
    if value in ("", ".", "..") or "/" in value or "\\" in value or "\0" in value:
        raise UnsafePathError(f"Unsafe path component: {value!r}")
    return value


def md5_hex(path: Path) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class LocalArtifactStore:
    def __init__(self, uploads_dir: str | Path, plugins_dir: str | Path) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.plugins_dir = Path(plugins_dir)

    def temp_dir(self, uploader_name: str) -> Path:
        return self.uploads_dir / "tmp" / safe_component(uploader_name)

    def temp_path(self, uploader_name: str, filename: str) -> Path:
        return self.temp_dir(uploader_name) / safe_component(Path(filename).name)

    def version_dir(self, owner_name: str, project_name: str, version_string: str) -> Path:
        return (
            self.plugins_dir
            / safe_component(owner_name)
            / safe_component(project_name)
            / "versions"
            / safe_component(version_string)
        )

    def destination(
        self,
        filename: str,
        owner_name: str,
        project_name: str,
        version_string: str,
        platform: Platform,
    ) -> Path:
        """Permanent location of *filename* for one platform of a version."""
        return self.version_dir(owner_name, project_name, version_string) / platform.value / safe_component(filename)

    def stage(self, uploader_name: str, filename: str, stream: BinaryIO) -> Path:
        """Write *stream* into the uploader's staging area and return its path.

        Bytes land in a private temporary file first and are moved over the
        final name with ``os.replace``; two uploads of the same name never
        interleave, the last one to finish wins.
        """
        target = self.temp_path(uploader_name, filename)
        tmp_dir = target.parent
        tmp_dir.mkdir(parents=True, exist_ok=True)

        fd, partial = tempfile.mkstemp(dir=tmp_dir, prefix=".upload-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(stream, out, _CHUNK_SIZE)
            os.replace(partial, target)
        except BaseException:
            Path(partial).unlink(missing_ok=True)
            raise
        return target

    def relocate(
        self,
        src: Path,
        owner_name: str,
        project_name: str,
        version_string: str,
        platform: Platform,
    ) -> Path:
        """Copy a staged file into the permanent tree, overwriting any previous copy."""
        destination = self.destination(src.name, owner_name, project_name, version_string, platform)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, destination)
        if not destination.exists():
            raise ArtifactStoreError(f"Didn't successfully move {src.name} to {destination}")
        logger.debug("Relocated %s to %s", src, destination)
        return destination

    def exists(self, path: Path) -> bool:
        return path.exists()

    def size(self, path: Path) -> int:
        return path.stat().st_size

    def md5(self, path: Path) -> str:
        return md5_hex(path)

    def delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)
