"""Metadata extraction: reads the declared metadata block out of an artifact.

The archive is treated as opaque apart from one YAML file (``plugin.yml`` by
default) at its root:

    version: 1.4.0
    description: Adds things
    platforms:
      paper: ["1.19", "1.20"]
    dependencies:
      paper:
        - name: Vault
          required: false
"""

from __future__ import annotations

import json
import logging
import zipfile
from pathlib import Path

import jsonschema
import yaml

from plugin_registry.errors import MetadataParseError
from plugin_registry.models import Platform, PluginDependency, PluginMetadata
from plugin_registry.storage import md5_hex

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schemas" / "plugin-metadata.schema.json"

_NUMERIC_TAGS = {"tag:yaml.org,2002:int", "tag:yaml.org,2002:float"}


class _MetadataLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted numbers as the text they were written as.

    Version strings such as ``1.10`` or ``010`` must survive verbatim.
    """


_MetadataLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _load_schema() -> dict:
    with open(SCHEMA_PATH) as f:
        return json.load(f)


def _parse_platform(raw: str) -> Platform:
    try:
        return Platform(str(raw).upper())
    except ValueError:
        raise MetadataParseError(f"Unknown platform: {raw}") from None


class MetadataExtractor:
    """Interface: ``extract(path, uploader_id) -> PluginMetadata``, raising MetadataParseError."""
    def extract(self, artifact_path: Path, uploader_id: int) -> PluginMetadata: ...


class ArchiveMetadataExtractor(MetadataExtractor):
    def __init__(self, metadata_file_name: str = "plugin.yml") -> None:
        self.metadata_file_name = metadata_file_name
        self._schema = _load_schema()

    def extract(self, artifact_path: Path, uploader_id: int) -> PluginMetadata:
        raw = self._read_block(artifact_path)
        try:
            data = yaml.load(raw, Loader=_MetadataLoader) or {}
        except yaml.YAMLError as e:
            raise MetadataParseError(f"{self.metadata_file_name}: {e}") from e

        try:
            jsonschema.validate(instance=data, schema=self._schema)
        except jsonschema.ValidationError as e:
            raise MetadataParseError(f"{self.metadata_file_name}: {e.json_path}: {e.message}") from e

        platform_dependencies = {
            _parse_platform(platform): {str(v) for v in versions}
            for platform, versions in (data.get("platforms") or {}).items()
        }
        plugin_dependencies = {
            _parse_platform(platform): {PluginDependency(**dep) for dep in deps}
            for platform, deps in (data.get("dependencies") or {}).items()
        }

        logger.debug("Read metadata from %s for user %s", artifact_path.name, uploader_id)
        return PluginMetadata(
            version=str(data["version"]),
            description=data.get("description"),
            platform_dependencies=platform_dependencies,
            plugin_dependencies=plugin_dependencies,
            md5_hash=md5_hex(artifact_path),
        )

    def _read_block(self, artifact_path: Path) -> bytes:
        try:
            with zipfile.ZipFile(artifact_path) as archive:
                return archive.read(self.metadata_file_name)
        except KeyError:
            raise MetadataParseError(f"{self.metadata_file_name} not found in {artifact_path.name}") from None
        except zipfile.BadZipFile as e:
            raise MetadataParseError(f"{artifact_path.name} is not a valid archive") from e
