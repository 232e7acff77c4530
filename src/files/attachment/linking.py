"""Attaching files to business records — commands and handler."""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.events import FileAttached, FileDetached
from files.attachment.link import FileAttachmentLink
from files.domain import files
from shared.errors import BusinessRuleViolationError

logger = structlog.get_logger(__name__)


@files.command(part_of="FileAttachment")
class AttachFile:
    """Attach a file to an invoice, delivery note, purchase order or vendor."""

    file_id = Identifier(required=True)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier(required=True)
    attached_by = String(max_length=255)


@files.command(part_of="FileAttachment")
class DetachFile:
    """Remove a file from a business record. The file itself is kept."""

    file_id = Identifier(required=True)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier(required=True)


@files.command_handler(part_of=FileAttachment)
class LinkingHandler:
    @handle(AttachFile)
    def attach_file(self, command):
        repo = current_domain.repository_for(FileAttachment)
        attachment = repo.get(command.file_id)
        if attachment.is_quarantined():
            raise BusinessRuleViolationError(
                {"file_id": [f"File {attachment.filename} is infected and cannot be attached"]}
            )

        link = current_domain.repository_for(FileAttachmentLink).link(
            file_attachment_id=str(attachment.id),
            entity_type=command.entity_type,
            entity_id=command.entity_id,
            attached_by=command.attached_by,
        )
        attachment.raise_(
            FileAttached(
                file_attachment_id=str(attachment.id),
                entity_type=link.entity_type,
                entity_id=str(link.entity_id),
                attached_by=link.attached_by,
                attached_at=link.attached_at,
            )
        )
        repo.add(attachment)

        logger.info(
            "File attached",
            file_id=str(attachment.id),
            entity_type=link.entity_type,
            entity_id=str(link.entity_id),
        )
        return str(link.id)

    @handle(DetachFile)
    def detach_file(self, command):
        repo = current_domain.repository_for(FileAttachment)
        attachment = repo.get(command.file_id)

        current_domain.repository_for(FileAttachmentLink).unlink(
            file_attachment_id=str(attachment.id),
            entity_type=command.entity_type,
            entity_id=command.entity_id,
        )
        attachment.raise_(
            FileDetached(
                file_attachment_id=str(attachment.id),
                entity_type=command.entity_type,
                entity_id=command.entity_id,
                detached_at=datetime.now(UTC),
            )
        )
        repo.add(attachment)

        logger.info(
            "File detached",
            file_id=str(attachment.id),
            entity_type=command.entity_type,
            entity_id=command.entity_id,
        )
