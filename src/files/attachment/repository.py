"""Repositories for FileAttachment, FileVersion and FileAttachmentLink."""

from datetime import datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.link import FileAttachmentLink, parse_entity_type
from files.attachment.value_objects import ScanStatus, VirusScanStatus
from files.attachment.version import FileVersion
from files.domain import files


@files.repository(part_of=FileAttachment)
class FileAttachmentRepository:
    """Repository for FileAttachment aggregates.

    ``replace`` swaps the stored attachment for a new one carrying the same
    id, which is how a file replacement is persisted without mutating the
    original aggregate.
    """

    def save(self, attachment: FileAttachment) -> FileAttachment:
        if self.get_or_none(attachment.id) is not None:
            raise ValidationError({"id": [f"File attachment {attachment.id} already exists"]})
        return self.add(attachment)

    def update(self, attachment: FileAttachment) -> FileAttachment:
        # Raises ObjectNotFoundError for unknown ids
        self.get(attachment.id)
        return self.add(attachment)

    def replace(self, current: FileAttachment, replacement: FileAttachment) -> FileAttachment:
        if str(current.id) != str(replacement.id):
            raise ValidationError(
                {"id": [f"Replacement {replacement.id} does not match file attachment {current.id}"]}
            )
        self._dao.delete(current)
        return self.add(replacement)

    def find_by_id(self, file_id: str) -> FileAttachment | None:
        return self.get_or_none(file_id)

    def find_by_s3_key(self, s3_key) -> FileAttachment | None:
        return self._dao.query.filter(s3_key_key=str(s3_key)).all().first

    def find_by_virus_scan_status(self, status: str) -> list[FileAttachment]:
        return self._newest_first(virus_scan_status=VirusScanStatus.from_string(status).value)

    def find_by_uploaded_by(self, uploaded_by: str) -> list[FileAttachment]:
        return self._newest_first(uploaded_by=uploaded_by)

    def find_by_upload_date_range(self, start: datetime, end: datetime) -> list[FileAttachment]:
        return self._newest_first(uploaded_at__gte=start, uploaded_at__lte=end)

    def find_pending_scans(self) -> list[FileAttachment]:
        """Files still waiting for a verdict, oldest upload first."""
        return (
            self._dao.query.filter(virus_scan_status=ScanStatus.PENDING.value)
            .order_by("uploaded_at")
            .limit(None)
            .all()
            .items
        )

    def find_infected_files(self) -> list[FileAttachment]:
        return self._newest_first(virus_scan_status=ScanStatus.INFECTED.value)

    def exists_by_id(self, file_id: str) -> bool:
        return self.get_or_none(file_id) is not None

    def delete(self, attachment: FileAttachment) -> None:
        self._dao.delete(attachment)

    def count(self) -> int:
        return self._dao.query.count()

    def total_storage_used(self) -> int:
        return sum(a.size_bytes for a in self._newest_first())

    def _newest_first(self, **filters) -> list[FileAttachment]:
        return self._dao.query.filter(**filters).order_by("-uploaded_at").limit(None).all().items


@files.repository(part_of=FileVersion)
class FileVersionRepository:
    """Repository for archived FileVersion records. Versions are insert-only."""

    def save(self, version: FileVersion) -> FileVersion:
        if self.get_or_none(version.id) is not None:
            raise ValidationError({"id": [f"File version {version.id} already exists"]})
        return self.add(version)

    def find_by_id(self, version_id: str) -> FileVersion | None:
        return self.get_or_none(version_id)

    def find_by_file_attachment_id(self, file_attachment_id: str) -> list[FileVersion]:
        """All archived versions of a file, newest first."""
        return (
            self._dao.query.filter(file_attachment_id=file_attachment_id)
            .order_by("-version_number")
            .limit(None)
            .all()
            .items
        )

    def find_by_file_attachment_id_and_version(self, file_attachment_id: str, version_number: int) -> FileVersion | None:
        return (
            self._dao.query.filter(file_attachment_id=file_attachment_id, version_number=version_number)
            .all()
            .first
        )

    def find_latest_by_file_attachment_id(self, file_attachment_id: str) -> FileVersion | None:
        versions = self.find_by_file_attachment_id(file_attachment_id)
        return versions[0] if versions else None

    def find_by_replaced_by(self, replaced_by: str) -> list[FileVersion]:
        return self._dao.query.filter(replaced_by=replaced_by).order_by("-replaced_at").limit(None).all().items

    def find_by_replacement_date_range(self, start: datetime, end: datetime) -> list[FileVersion]:
        return (
            self._dao.query.filter(replaced_at__gte=start, replaced_at__lte=end)
            .order_by("-replaced_at")
            .limit(None)
            .all()
            .items
        )

    def count_by_file_attachment_id(self, file_attachment_id: str) -> int:
        return self._dao.query.filter(file_attachment_id=file_attachment_id).count()

    def has_versions(self, file_attachment_id: str) -> bool:
        return self.count_by_file_attachment_id(file_attachment_id) > 0

    def delete(self, version: FileVersion) -> None:
        self._dao.delete(version)

    def delete_by_file_attachment_id(self, file_attachment_id: str) -> int:
        versions = self.find_by_file_attachment_id(file_attachment_id)
        for version in versions:
            self._dao.delete(version)
        return len(versions)

    def total_storage_used(self) -> int:
        return sum(v.size_bytes for v in self._dao.query.limit(None).all().items)

    def total_storage_used_by_file_attachment(self, file_attachment_id: str) -> int:
        return sum(v.size_bytes for v in self.find_by_file_attachment_id(file_attachment_id))


@files.repository(part_of=FileAttachmentLink)
class FileAttachmentLinkRepository:
    """Repository for links between files and business records."""

    def link(
        self,
        file_attachment_id: str,
        entity_type: str,
        entity_id: str,
        attached_by: str | None = None,
    ) -> FileAttachmentLink:
        if self.exists_link(file_attachment_id, entity_type, entity_id):
            raise ValidationError(
                {"link": [f"File {file_attachment_id} is already attached to {entity_type} {entity_id}"]}
            )
        link = FileAttachmentLink.create(
            file_attachment_id=file_attachment_id,
            entity_type=entity_type,
            entity_id=entity_id,
            attached_by=attached_by,
        )
        return self.add(link)

    def unlink(self, file_attachment_id: str, entity_type: str, entity_id: str) -> None:
        link = self._find_link(file_attachment_id, entity_type, entity_id)
        if link is None:
            raise ValidationError(
                {"link": [f"File {file_attachment_id} is not attached to {entity_type} {entity_id}"]}
            )
        self._dao.delete(link)

    def exists_link(self, file_attachment_id: str, entity_type: str, entity_id: str) -> bool:
        return self._find_link(file_attachment_id, entity_type, entity_id) is not None

    def find_links_by_entity(self, entity_type: str, entity_id: str) -> list[FileAttachmentLink]:
        return self._in_attach_order(entity_type=parse_entity_type(entity_type).value, entity_id=entity_id)

    def find_links_by_file_attachment(self, file_attachment_id: str) -> list[FileAttachmentLink]:
        return self._in_attach_order(file_attachment_id=file_attachment_id)

    def find_file_attachment_ids_by_entity(self, entity_type: str, entity_id: str) -> list[str]:
        return [str(link.file_attachment_id) for link in self.find_links_by_entity(entity_type, entity_id)]

    def find_entities_by_file_attachment_id(self, file_attachment_id: str) -> list[dict]:
        return [
            {"entity_type": link.entity_type, "entity_id": str(link.entity_id)}
            for link in self.find_links_by_file_attachment(file_attachment_id)
        ]

    def count_by_entity(self, entity_type: str, entity_id: str) -> int:
        return len(self.find_links_by_entity(entity_type, entity_id))

    def count_by_file_attachment(self, file_attachment_id: str) -> int:
        return len(self.find_links_by_file_attachment(file_attachment_id))

    def delete_by_entity(self, entity_type: str, entity_id: str) -> int:
        links = self.find_links_by_entity(entity_type, entity_id)
        for link in links:
            self._dao.delete(link)
        return len(links)

    def delete_by_file_attachment(self, file_attachment_id: str) -> int:
        links = self.find_links_by_file_attachment(file_attachment_id)
        for link in links:
            self._dao.delete(link)
        return len(links)

    def find_orphaned_file_attachments(self) -> list[str]:
        """Ids of stored files that are not attached to anything."""
        linked = {str(link.file_attachment_id) for link in self._in_attach_order()}
        attachments = current_domain.repository_for(FileAttachment)._dao.query.limit(None).all().items
        return [str(a.id) for a in attachments if str(a.id) not in linked]

    def _find_link(self, file_attachment_id: str, entity_type: str, entity_id: str) -> FileAttachmentLink | None:
        return (
            self._dao.query.filter(
                file_attachment_id=file_attachment_id,
                entity_type=parse_entity_type(entity_type).value,
                entity_id=entity_id,
            )
            .all()
            .first
        )

    def _in_attach_order(self, **filters) -> list[FileAttachmentLink]:
        return self._dao.query.filter(**filters).order_by("attached_at").limit(None).all().items
