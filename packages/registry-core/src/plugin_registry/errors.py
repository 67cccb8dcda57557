"""Error taxonomy for staging and publishing versions.

Operations return these as values inside their result objects; the kind tells
the caller whether anything was written:

  VALIDATION      bad input, detected before any mutation
  CONFLICT        the version (or artifact) already exists, no mutation
  INTEGRITY       staged file does not match its descriptor, no mutation
  TRANSACTION     failed during or after the version insert, fully rolled back
  INFRASTRUCTURE  staging write or metadata extraction failed
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    INTEGRITY = "integrity"
    TRANSACTION = "transaction"
    INFRASTRUCTURE = "infrastructure"


class ErrorCode(Enum):
    INVALID_EXTENSION = "version.new.error.fileExtension"
    INVALID_VERSION_STRING = "version.new.error.invalidVersionString"
    INVALID_PLATFORM_VERSION = "version.new.error.invalidPlatformVersion"
    INVALID_URL = "version.new.error.invalidUrl"
    UNKNOWN_PROJECT = "version.new.error.unknownProject"
    DUPLICATE_NAME_AND_PLATFORM = "version.new.error.duplicateNameAndPlatform"
    DUPLICATE_ARTIFACT = "version.new.error.duplicate"
    MISSING_FILE = "version.new.error.noFile"
    SIZE_MISMATCH = "version.new.error.mismatchedFileSize"
    HASH_MISMATCH = "version.new.error.hashMismatch"
    FILE_IO_ERROR = "version.new.error.fileIOError"
    UNKNOWN_PUBLISH_ERROR = "version.new.error.unknown"
    STAGING_IO_ERROR = "version.new.error.stagingIO"
    UNEXPECTED_UPLOAD_ERROR = "version.new.error.unexpected"


_DEFAULT_KINDS: dict[ErrorCode, ErrorKind] = {
    ErrorCode.INVALID_EXTENSION: ErrorKind.VALIDATION,
    ErrorCode.INVALID_VERSION_STRING: ErrorKind.VALIDATION,
    ErrorCode.INVALID_PLATFORM_VERSION: ErrorKind.VALIDATION,
    ErrorCode.INVALID_URL: ErrorKind.VALIDATION,
    ErrorCode.UNKNOWN_PROJECT: ErrorKind.VALIDATION,
    ErrorCode.DUPLICATE_NAME_AND_PLATFORM: ErrorKind.CONFLICT,
    ErrorCode.DUPLICATE_ARTIFACT: ErrorKind.CONFLICT,
    ErrorCode.MISSING_FILE: ErrorKind.INTEGRITY,
    ErrorCode.SIZE_MISMATCH: ErrorKind.INTEGRITY,
    ErrorCode.HASH_MISMATCH: ErrorKind.INTEGRITY,
    ErrorCode.FILE_IO_ERROR: ErrorKind.TRANSACTION,
    ErrorCode.UNKNOWN_PUBLISH_ERROR: ErrorKind.TRANSACTION,
    ErrorCode.STAGING_IO_ERROR: ErrorKind.INFRASTRUCTURE,
    ErrorCode.UNEXPECTED_UPLOAD_ERROR: ErrorKind.INFRASTRUCTURE,
}


@dataclass(frozen=True)
class VersionError:
    code: ErrorCode
    kind: ErrorKind
    detail: str = ""

    @property
    def message_key(self) -> str:
        return self.code.value

    @classmethod
    def of(cls, code: ErrorCode, detail: str = "", kind: ErrorKind | None = None) -> VersionError:
        return cls(code=code, kind=kind or _DEFAULT_KINDS[code], detail=detail)


class MetadataParseError(Exception):
    """The artifact's declared metadata block is missing or malformed."""


class PlatformVersionNotFound(LookupError):
    pass


class ArtifactStoreError(OSError):
    """A storage operation reported success but the result is not on disk."""


class UnsafePathError(OSError):
    """A name would resolve outside the storage root it is joined onto."""
