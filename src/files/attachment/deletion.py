"""File deletion — command and handler.

Deleting a file removes everything that refers to it: the current object
and every archived version in storage, the version records, the links to
business records and finally the attachment itself.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.events import FileDeleted
from files.attachment.link import FileAttachmentLink
from files.attachment.version import FileVersion
from files.domain import files
from files.storage import get_storage

logger = structlog.get_logger(__name__)


@files.command(part_of="FileAttachment")
class DeleteFile:
    """Delete a file, its history and its links."""

    file_id = Identifier(required=True)


@files.command_handler(part_of=FileAttachment)
class DeleteFileHandler:
    @handle(DeleteFile)
    def delete_file(self, command):
        repo = current_domain.repository_for(FileAttachment)
        attachment = repo.get(command.file_id)
        file_id = str(attachment.id)

        storage = get_storage()
        version_repo = current_domain.repository_for(FileVersion)
        versions = version_repo.find_by_file_attachment_id(file_id)
        storage.delete(str(attachment.s3_key))
        for version in versions:
            storage.delete(str(version.s3_key))

        deleted_versions = version_repo.delete_by_file_attachment_id(file_id)
        deleted_links = current_domain.repository_for(FileAttachmentLink).delete_by_file_attachment(file_id)

        attachment.raise_(
            FileDeleted(
                file_attachment_id=file_id,
                s3_key=str(attachment.s3_key),
                deleted_at=datetime.now(UTC),
            )
        )
        repo.delete(attachment)

        logger.info(
            "File deleted",
            file_id=file_id,
            versions_deleted=deleted_versions,
            links_deleted=deleted_links,
        )
