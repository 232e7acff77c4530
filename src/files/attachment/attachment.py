"""FileAttachment aggregate (CQRS) — one uploaded file and its scan lifecycle.

A file attachment describes bytes held in object storage: where they live,
what they are, and their SHA-256 digest. The bytes themselves never pass
through the aggregate.

State Machine:
    PENDING → CLEAN (terminal)
    PENDING → INFECTED (terminal)

Completing the virus scan is the only change a file attachment accepts after
construction: any other attribute assignment raises ``ImmutableEntityError``,
even while the scan is PENDING. Replacing a file produces a successor
attachment (same id, next version number) rather than mutating the existing
one.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String, ValueObject

from files.attachment.value_objects import (
    FileChecksum,
    FileMetadata,
    S3ObjectKey,
    ScanStatus,
    VirusScanStatus,
)
from files.domain import files
from shared.errors import ImmutableEntityError


def _validate_identity(id, uploaded_by, uploaded_at=None, current_version=1) -> None:
    errors: dict[str, list[str]] = {}
    if id is None or not str(id).strip():
        errors["id"] = ["FileAttachment ID is required"]
    if uploaded_by is None or not uploaded_by.strip():
        errors["uploaded_by"] = ["Uploaded by is required"]
    if uploaded_at is not None and not isinstance(uploaded_at, datetime):
        errors["uploaded_at"] = ["Valid upload date is required"]
    if current_version is None or current_version < 1:
        errors["current_version"] = ["Current version must be at least 1"]
    if errors:
        raise ValidationError(errors)


def _as_checksum(checksum) -> FileChecksum:
    if isinstance(checksum, FileChecksum):
        return checksum
    return FileChecksum.from_string(checksum)


@files.aggregate
class FileAttachment:
    s3_key = ValueObject(S3ObjectKey)
    metadata = ValueObject(FileMetadata)
    checksum = ValueObject(FileChecksum)
    virus_scan_status = String(
        max_length=20,
        choices=ScanStatus,
        default=ScanStatus.PENDING.value,
    )
    uploaded_by = String(required=True, max_length=255)
    uploaded_at = DateTime(required=True)
    current_version = Integer(default=1)
    scanned_at = DateTime()

    @invariant.pre
    def scanned_file_cannot_be_modified(self):
        if self.virus_scan_status != ScanStatus.PENDING.value:
            raise ImmutableEntityError(
                f"File {self.filename} virus scan already complete with status: {self.virus_scan_status}"
            )

    @invariant.pre
    def only_scan_completion_changes_a_file(self):
        if not getattr(self, "_completing_scan", False):
            raise ImmutableEntityError(
                f"File {self.filename} can only change by completing its virus scan"
            )

    @invariant.post
    def version_must_be_positive(self):
        if self.current_version is None or self.current_version < 1:
            raise ValidationError({"current_version": ["Current version must be at least 1"]})

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        id: str,
        prefix: str,
        filename: str,
        mime_type: str,
        size_bytes: int,
        checksum: FileChecksum | str,
        uploaded_by: str,
    ) -> "FileAttachment":
        """Describe a freshly uploaded file.

        A new storage key is generated under ``prefix``. The scan starts out
        PENDING and the version at 1.
        """
        _validate_identity(id, uploaded_by)
        metadata = FileMetadata.create(filename, mime_type, size_bytes)
        return cls(
            id=id,
            s3_key=S3ObjectKey.generate(prefix, filename),
            metadata=metadata,
            checksum=_as_checksum(checksum),
            virus_scan_status=VirusScanStatus.pending().value,
            uploaded_by=uploaded_by.strip(),
            uploaded_at=datetime.now(UTC),
            current_version=1,
        )

    @classmethod
    def reconstitute(
        cls,
        id: str,
        s3_key: S3ObjectKey | str,
        filename: str,
        mime_type: str,
        size_bytes: int,
        checksum: FileChecksum | str,
        virus_scan_status: str,
        uploaded_by: str,
        uploaded_at: datetime,
        current_version: int,
        scanned_at: datetime | None = None,
    ) -> "FileAttachment":
        """Rebuild an attachment around an existing key. Nothing is regenerated."""
        if uploaded_at is None:
            raise ValidationError({"uploaded_at": ["Valid upload date is required"]})
        _validate_identity(id, uploaded_by, uploaded_at, current_version)
        return cls(
            id=id,
            s3_key=s3_key if isinstance(s3_key, S3ObjectKey) else S3ObjectKey.from_string(s3_key),
            metadata=FileMetadata.create(filename, mime_type, size_bytes),
            checksum=_as_checksum(checksum),
            virus_scan_status=VirusScanStatus.from_string(virus_scan_status).value,
            uploaded_by=uploaded_by.strip(),
            uploaded_at=uploaded_at,
            current_version=current_version,
            scanned_at=scanned_at,
        )

    @classmethod
    def successor(
        cls,
        current: "FileAttachment",
        *,
        filename: str,
        mime_type: str,
        size_bytes: int,
        checksum: FileChecksum | str,
        replaced_by: str,
        replaced_at: datetime,
    ) -> "FileAttachment":
        """Build the next version of ``current`` around a fresh storage key.

        The successor keeps the id and continues the aggregate's version and
        event stream, so events it raises follow the ones already stored for
        ``current``. Its scan starts over as PENDING.
        """
        next_version = current.current_version + 1
        _validate_identity(current.id, replaced_by, replaced_at, next_version)
        metadata = FileMetadata.create(filename, mime_type, size_bytes)

        replacement = cls(
            id=str(current.id),
            s3_key=S3ObjectKey.generate(current.s3_key.prefix, metadata.filename),
            metadata=metadata,
            checksum=_as_checksum(checksum),
            virus_scan_status=VirusScanStatus.pending().value,
            uploaded_by=replaced_by.strip(),
            uploaded_at=replaced_at,
            current_version=next_version,
            _version=current._version,
        )
        replacement._event_position = current._event_position
        return replacement

    # -------------------------------------------------------------------
    # Scan completion
    # -------------------------------------------------------------------
    def mark_scan_complete(self, result: VirusScanStatus | str) -> None:
        """Record the scanner's verdict. Allowed exactly once per file."""
        verdict = result if isinstance(result, VirusScanStatus) else VirusScanStatus.from_string(result)
        current = self.scan_status
        if current.is_scan_complete():
            raise ImmutableEntityError(
                f"File {self.filename} virus scan already complete with status: {current.value}"
            )

        target = current.transition_to(verdict)
        self._completing_scan = True
        try:
            with atomic_change(self):
                self.virus_scan_status = target.value
                self.scanned_at = datetime.now(UTC)
        finally:
            self._completing_scan = False

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def scan_status(self) -> VirusScanStatus:
        return VirusScanStatus(value=self.virus_scan_status)

    @property
    def filename(self) -> str:
        return self.metadata.filename

    @property
    def mime_type(self) -> str:
        return self.metadata.mime_type

    @property
    def size_bytes(self) -> int:
        return self.metadata.size_bytes

    @property
    def file_extension(self) -> str | None:
        return self.metadata.extension

    @property
    def human_readable_size(self) -> str:
        return self.metadata.human_readable_size

    def is_safe(self) -> bool:
        return self.scan_status.is_safe()

    def is_ready(self) -> bool:
        # Same as is_safe until readiness needs more than a clean scan
        return self.is_safe()

    def is_quarantined(self) -> bool:
        return self.scan_status.is_infected()

    def is_pending_scan(self) -> bool:
        return self.scan_status.is_pending()

    def is_original_version(self) -> bool:
        return self.current_version == 1

    def get_display_info(self) -> dict:
        return {
            "filename": self.filename,
            "size": self.human_readable_size,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at,
            "status": self.virus_scan_status,
            "is_safe": self.is_safe(),
        }
