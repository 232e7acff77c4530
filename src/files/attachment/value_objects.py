"""File attachment value objects.

Checksum, metadata, storage key and scan status. Each one is built through a
named factory that validates raw input first, and each carries post
invariants so that no instance can hold an invalid value.
"""

import hashlib
import re
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from files.domain import files
from shared.errors import InvalidStateTransitionError

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10 MiB

_SHA256_PATTERN = re.compile(r"^[a-f0-9]{64}$")
_MIME_TYPE_PATTERN = re.compile(r"^[a-z]+/[a-z0-9\-\+\.]+$")
_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
    }
)


def format_size(size_bytes: int) -> str:
    """Render a byte count as ``"1.50 MB"``."""
    units = ["B", "KB", "MB", "GB"]
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f} {units[unit_index]}"


# ---------------------------------------------------------------------------
# Checksum
# ---------------------------------------------------------------------------
@files.value_object
class FileChecksum:
    """SHA-256 digest of a file's content, stored as 64 lowercase hex characters."""

    value = String(required=True, max_length=64, sanitize=False)

    @invariant.post
    def value_must_be_sha256_hex(self):
        if self.value and not _SHA256_PATTERN.match(self.value):
            raise ValidationError(
                {"checksum": ["Invalid checksum format: must be a valid SHA-256 hexadecimal string"]}
            )

    @classmethod
    def from_string(cls, value: str) -> "FileChecksum":
        if value is None or not value.strip():
            raise ValidationError({"checksum": ["Checksum cannot be empty"]})

        normalized = value.strip().lower()
        if len(normalized) != 64:
            raise ValidationError(
                {"checksum": [f"Invalid checksum length: expected 64 characters, got {len(normalized)}"]}
            )
        if not _SHA256_PATTERN.match(normalized):
            raise ValidationError(
                {"checksum": ["Invalid checksum format: must be a valid SHA-256 hexadecimal string"]}
            )
        return cls(value=normalized)

    @classmethod
    def from_bytes(cls, content: bytes) -> "FileChecksum":
        return cls(value=hashlib.sha256(content).hexdigest())

    def matches(self, other: "FileChecksum") -> bool:
        return other is not None and self.value == other.value

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------
@files.value_object
class FileMetadata:
    """Name, MIME type and size of an uploaded file.

    Sizes are capped at ``MAX_FILE_SIZE_BYTES`` and empty files are refused.
    """

    filename = String(required=True, max_length=255, sanitize=False)
    mime_type = String(required=True, max_length=255, sanitize=False)
    size_bytes = Integer(required=True)

    @invariant.post
    def mime_type_must_have_type_and_subtype(self):
        if self.mime_type and not _MIME_TYPE_PATTERN.match(self.mime_type):
            raise ValidationError({"mime_type": [f"Invalid MIME type format: {self.mime_type}"]})

    @invariant.post
    def size_must_be_within_limits(self):
        if self.size_bytes is None:
            return
        if self.size_bytes <= 0 or self.size_bytes > MAX_FILE_SIZE_BYTES:
            raise ValidationError({"size_bytes": [_size_error(self.size_bytes)]})

    @classmethod
    def create(cls, filename: str, mime_type: str, size_bytes: int) -> "FileMetadata":
        errors: dict[str, list[str]] = {}

        if filename is None or not filename.strip():
            errors["filename"] = ["Filename cannot be empty"]
        elif len(filename.strip()) > 255:
            errors["filename"] = ["Filename cannot exceed 255 characters"]

        if mime_type is None or not mime_type.strip():
            errors["mime_type"] = ["MIME type cannot be empty"]
        elif not _MIME_TYPE_PATTERN.match(mime_type.strip().lower()):
            errors["mime_type"] = [f"Invalid MIME type format: {mime_type}"]

        if size_bytes is None:
            errors["size_bytes"] = ["File size is required"]
        elif size_bytes <= 0 or size_bytes > MAX_FILE_SIZE_BYTES:
            errors["size_bytes"] = [_size_error(size_bytes)]

        if errors:
            raise ValidationError(errors)

        return cls(
            filename=filename.strip(),
            mime_type=mime_type.strip().lower(),
            size_bytes=size_bytes,
        )

    @property
    def extension(self) -> str | None:
        """Lowercased text after the last dot, or None when there is none."""
        if "." not in self.filename:
            return None
        ext = self.filename.rsplit(".", 1)[1]
        return ext.lower() if ext else None

    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"

    def is_document(self) -> bool:
        return self.mime_type in _DOCUMENT_MIME_TYPES

    @property
    def human_readable_size(self) -> str:
        return format_size(self.size_bytes)

    def is_near_size_limit(self, threshold_percent: float = 90) -> bool:
        return self.size_bytes / MAX_FILE_SIZE_BYTES * 100 >= threshold_percent


def _size_error(size_bytes: int) -> str:
    if size_bytes < 0:
        return "File size cannot be negative"
    if size_bytes == 0:
        return "File cannot be empty (0 bytes)"
    return "File size exceeds maximum allowed size of 10MB"


# ---------------------------------------------------------------------------
# Storage key
# ---------------------------------------------------------------------------
@files.value_object
class S3ObjectKey:
    """Object storage key of the shape ``prefix/uuid/filename``.

    The random UUID segment keeps keys unique even when two uploads share a
    filename. Path separators in the filename are replaced with ``_``.
    """

    key = String(required=True, max_length=1024, sanitize=False)

    @invariant.post
    def key_must_have_three_segments(self):
        if not self.key:
            return
        parts = self.key.split("/")
        if len(parts) != 3 or not all(parts):
            raise ValidationError(
                {"s3_key": [f"Invalid S3 key format: {self.key}. Expected format: prefix/uuid/filename"]}
            )
        if not _UUID_PATTERN.match(parts[1]):
            raise ValidationError({"s3_key": [f"Invalid UUID in S3 key: {parts[1]}"]})

    @classmethod
    def generate(cls, prefix: str, filename: str) -> "S3ObjectKey":
        """Mint a fresh key for ``filename`` under ``prefix``."""
        if prefix is None or not prefix.strip():
            raise ValidationError({"prefix": ["S3 prefix cannot be empty"]})
        if filename is None or not filename.strip():
            raise ValidationError({"filename": ["Filename cannot be empty"]})
        if "/" in prefix:
            raise ValidationError({"prefix": ["Prefix cannot contain forward slashes"]})

        sanitized = filename.strip().replace("/", "_").replace("\\", "_")
        return cls(key=f"{prefix.strip()}/{uuid4()}/{sanitized}")

    @classmethod
    def from_string(cls, key: str) -> "S3ObjectKey":
        """Rebuild a key read back from storage, validating its shape."""
        if key is None or not key.strip():
            raise ValidationError({"s3_key": ["S3 key cannot be empty"]})

        parts = key.split("/")
        if len(parts) != 3 or not all(parts):
            raise ValidationError(
                {"s3_key": [f"Invalid S3 key format: {key}. Expected format: prefix/uuid/filename"]}
            )
        if not _UUID_PATTERN.match(parts[1]):
            raise ValidationError({"s3_key": [f"Invalid UUID in S3 key: {parts[1]}"]})
        return cls(key=key)

    @property
    def prefix(self) -> str:
        return self.key.split("/")[0]

    @property
    def uuid(self) -> str:
        return self.key.split("/")[1]

    @property
    def filename(self) -> str:
        return self.key.split("/")[2]

    def __str__(self) -> str:
        return self.key


# ---------------------------------------------------------------------------
# Virus scan status
# ---------------------------------------------------------------------------
class ScanStatus(Enum):
    PENDING = "PENDING"
    CLEAN = "CLEAN"
    INFECTED = "INFECTED"


_VALID_TRANSITIONS = {
    ScanStatus.PENDING: {ScanStatus.CLEAN, ScanStatus.INFECTED},
    ScanStatus.CLEAN: set(),  # terminal
    ScanStatus.INFECTED: set(),  # terminal
}


@files.value_object
class VirusScanStatus:
    """Scan lifecycle: PENDING, then CLEAN or INFECTED for good.

    Only CLEAN counts as safe. INFECTED is a completed scan, not a safe one.
    """

    value = String(required=True, max_length=20, choices=ScanStatus)

    @classmethod
    def from_string(cls, value: str) -> "VirusScanStatus":
        if value not in {s.value for s in ScanStatus}:
            valid = ", ".join(s.value for s in ScanStatus)
            raise ValidationError(
                {"virus_scan_status": [f"Invalid virus scan status: {value}. Valid statuses are: {valid}"]}
            )
        return cls(value=value)

    @classmethod
    def pending(cls) -> "VirusScanStatus":
        return cls(value=ScanStatus.PENDING.value)

    @classmethod
    def clean(cls) -> "VirusScanStatus":
        return cls(value=ScanStatus.CLEAN.value)

    @classmethod
    def infected(cls) -> "VirusScanStatus":
        return cls(value=ScanStatus.INFECTED.value)

    def can_transition_to(self, target: "VirusScanStatus") -> bool:
        return ScanStatus(target.value) in _VALID_TRANSITIONS[ScanStatus(self.value)]

    def transition_to(self, target: "VirusScanStatus") -> "VirusScanStatus":
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(
                f"Cannot transition virus scan status from {self.value} to {target.value}"
            )
        return target

    def is_pending(self) -> bool:
        return self.value == ScanStatus.PENDING.value

    def is_clean(self) -> bool:
        return self.value == ScanStatus.CLEAN.value

    def is_infected(self) -> bool:
        return self.value == ScanStatus.INFECTED.value

    def is_scan_complete(self) -> bool:
        return not self.is_pending()

    def is_safe(self) -> bool:
        return self.is_clean()

    def __str__(self) -> str:
        return self.value
