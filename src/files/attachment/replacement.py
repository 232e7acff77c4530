"""File replacement — command and handler.

Replacing a file never edits the stored attachment. The outgoing state is
archived as a FileVersion, a PENDING successor attachment with the same id
and the next version number is built around a fresh key, and the repository
swaps one for the other. The old object stays in storage so that archived
versions remain downloadable.
"""

import base64

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.events import FileReplaced
from files.attachment.value_objects import FileChecksum, FileMetadata
from files.attachment.version import FileVersion
from files.domain import files
from files.storage import get_storage

logger = structlog.get_logger(__name__)


@files.command(part_of="FileAttachment")
class ReplaceFile:
    """Upload a new version of an existing file."""

    file_id = Identifier(required=True)
    filename = String(required=True, max_length=255, sanitize=False)
    content_type = String(required=True, max_length=255)
    content = Text(required=True, sanitize=False)  # base64-encoded bytes
    replaced_by = String(required=True, max_length=255)
    reason = Text()


@files.command_handler(part_of=FileAttachment)
class ReplaceFileHandler:
    @handle(ReplaceFile)
    def replace_file(self, command):
        repo = current_domain.repository_for(FileAttachment)
        current = repo.get(command.file_id)

        content = base64.b64decode(command.content)
        metadata = FileMetadata.create(command.filename, command.content_type, len(content))
        checksum = FileChecksum.from_bytes(content)
        version = FileVersion.archive(current, replaced_by=command.replaced_by, replacement_reason=command.reason)

        replacement = FileAttachment.successor(
            current,
            filename=metadata.filename,
            mime_type=metadata.mime_type,
            size_bytes=metadata.size_bytes,
            checksum=checksum,
            replaced_by=command.replaced_by,
            replaced_at=version.replaced_at,
        )

        get_storage().upload(str(replacement.s3_key), content, replacement.mime_type)
        current_domain.repository_for(FileVersion).save(version)

        replacement.raise_(
            FileReplaced(
                file_attachment_id=str(replacement.id),
                filename=replacement.filename,
                old_version_number=current.current_version,
                new_version_number=replacement.current_version,
                old_s3_key=str(current.s3_key),
                new_s3_key=str(replacement.s3_key),
                old_checksum=str(current.checksum),
                new_checksum=str(replacement.checksum),
                replaced_by=version.replaced_by,
                replaced_at=version.replaced_at,
                replacement_reason=version.replacement_reason,
            )
        )
        repo.replace(current, replacement)

        logger.info(
            "File replaced",
            file_id=str(replacement.id),
            old_version=current.current_version,
            new_version=replacement.current_version,
        )
        return str(replacement.id)
