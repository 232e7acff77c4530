"""FileVersion — frozen snapshot of a file attachment before it was replaced.

Each replacement archives the outgoing state (key, checksum, size and
version number) together with who replaced it, when and why. Versions are
written once and never change afterwards.
"""

from datetime import UTC, datetime
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text, ValueObject

from files.attachment.value_objects import FileChecksum, S3ObjectKey, format_size
from files.domain import files
from shared.errors import ImmutableEntityError


@files.aggregate
class FileVersion:
    file_attachment_id = Identifier(required=True)
    version_number = Integer(required=True)
    s3_key = ValueObject(S3ObjectKey)
    checksum = ValueObject(FileChecksum)
    size_bytes = Integer(required=True)
    replaced_by = String(required=True, max_length=255)
    replaced_at = DateTime(required=True)
    replacement_reason = Text()

    @invariant.pre
    def versions_are_immutable(self):
        raise ImmutableEntityError(
            f"Version {self.version_number} of file {self.file_attachment_id} cannot be modified"
        )

    @classmethod
    def create(
        cls,
        file_attachment_id: str,
        version_number: int,
        s3_key: S3ObjectKey | str,
        checksum: FileChecksum | str,
        size_bytes: int,
        replaced_by: str,
        replacement_reason: str | None = None,
        replaced_at: datetime | None = None,
        id: str | None = None,
    ) -> "FileVersion":
        errors: dict[str, list[str]] = {}
        if id is not None and not str(id).strip():
            errors["id"] = ["FileVersion ID is required"]
        if file_attachment_id is None or not str(file_attachment_id).strip():
            errors["file_attachment_id"] = ["File attachment ID is required"]
        if version_number is None or version_number < 1:
            errors["version_number"] = ["Version number must be at least 1"]
        if size_bytes is None or size_bytes < 0:
            errors["size_bytes"] = ["File size cannot be negative"]
        if replaced_by is None or not replaced_by.strip():
            errors["replaced_by"] = ["Replaced by is required"]
        if replaced_at is not None and not isinstance(replaced_at, datetime):
            errors["replaced_at"] = ["Valid replacement date is required"]
        if replacement_reason is not None and not replacement_reason.strip():
            errors["replacement_reason"] = ["Replacement reason cannot be empty string (use None instead)"]
        if errors:
            raise ValidationError(errors)

        return cls(
            id=id or str(uuid4()),
            file_attachment_id=file_attachment_id,
            version_number=version_number,
            s3_key=s3_key if isinstance(s3_key, S3ObjectKey) else S3ObjectKey.from_string(s3_key),
            checksum=checksum if isinstance(checksum, FileChecksum) else FileChecksum.from_string(checksum),
            size_bytes=size_bytes,
            replaced_by=replaced_by.strip(),
            replaced_at=replaced_at or datetime.now(UTC),
            replacement_reason=replacement_reason.strip() if replacement_reason else None,
        )

    @classmethod
    def archive(cls, attachment, replaced_by: str, replacement_reason: str | None = None) -> "FileVersion":
        """Snapshot ``attachment`` as it stands right before being replaced."""
        return cls.create(
            file_attachment_id=str(attachment.id),
            version_number=attachment.current_version,
            s3_key=attachment.s3_key,
            checksum=attachment.checksum,
            size_bytes=attachment.size_bytes,
            replaced_by=replaced_by,
            replacement_reason=replacement_reason,
        )

    def has_replacement_reason(self) -> bool:
        return bool(self.replacement_reason)

    @property
    def human_readable_size(self) -> str:
        return format_size(self.size_bytes)

    def get_display_info(self) -> dict:
        return {
            "version_number": self.version_number,
            "size": self.human_readable_size,
            "replaced_by": self.replaced_by,
            "replaced_at": self.replaced_at,
            "reason": self.replacement_reason,
        }
