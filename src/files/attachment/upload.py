"""File upload — commands and handler.

Two upload paths are supported:

- Direct-to-storage: ``RequestUpload`` hands the client a presigned URL and
  a freshly minted key, and ``ConfirmUpload`` records the attachment once the
  client has put the bytes there.
- Server-side: ``UploadFile`` receives the bytes (base64 encoded), computes
  the checksum, stores the object and records the attachment in one step.

Either way the file starts PENDING and ``FileUploaded`` is raised, which
kicks off the virus scan.
"""

import base64
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.events import FileUploaded
from files.attachment.value_objects import FileChecksum, S3ObjectKey, ScanStatus
from files.domain import files
from files.storage import get_storage

logger = structlog.get_logger(__name__)


def default_prefix() -> str:
    return f"uploads-{datetime.now(UTC).year}"


def file_uploaded_event(attachment: FileAttachment) -> FileUploaded:
    return FileUploaded(
        file_attachment_id=str(attachment.id),
        filename=attachment.filename,
        mime_type=attachment.mime_type,
        size_bytes=attachment.size_bytes,
        s3_key=str(attachment.s3_key),
        uploaded_by=attachment.uploaded_by,
        uploaded_at=attachment.uploaded_at,
    )


@files.command(part_of="FileAttachment")
class RequestUpload:
    """Reserve a storage key and obtain a presigned upload URL."""

    filename = String(required=True, max_length=255, sanitize=False)
    content_type = String(required=True, max_length=255)
    uploaded_by = String(required=True, max_length=255)
    prefix = String(max_length=100)


@files.command(part_of="FileAttachment")
class ConfirmUpload:
    """Record a file the client has already put at its presigned URL."""

    file_id = Identifier(required=True)
    s3_key = String(required=True, max_length=1024, sanitize=False)
    filename = String(required=True, max_length=255, sanitize=False)
    content_type = String(required=True, max_length=255)
    size_bytes = Integer(required=True)
    checksum = String(required=True, max_length=64)
    uploaded_by = String(required=True, max_length=255)


@files.command(part_of="FileAttachment")
class UploadFile:
    """Store a file's bytes and record the attachment."""

    filename = String(required=True, max_length=255, sanitize=False)
    content_type = String(required=True, max_length=255)
    content = Text(required=True, sanitize=False)  # base64-encoded bytes
    uploaded_by = String(required=True, max_length=255)
    prefix = String(max_length=100)


@files.command_handler(part_of=FileAttachment)
class UploadHandler:
    @handle(RequestUpload)
    def request_upload(self, command):
        file_id = str(uuid4())
        s3_key = S3ObjectKey.generate(command.prefix or default_prefix(), command.filename)
        upload_url = get_storage().get_presigned_upload_url(str(s3_key), command.content_type)

        logger.info(
            "Upload requested",
            file_id=file_id,
            s3_key=str(s3_key),
            uploaded_by=command.uploaded_by,
        )
        return {"file_id": file_id, "s3_key": str(s3_key), "upload_url": upload_url}

    @handle(ConfirmUpload)
    def confirm_upload(self, command):
        attachment = FileAttachment.reconstitute(
            id=command.file_id,
            s3_key=command.s3_key,
            filename=command.filename,
            mime_type=command.content_type,
            size_bytes=command.size_bytes,
            checksum=FileChecksum.from_string(command.checksum),
            virus_scan_status=ScanStatus.PENDING.value,
            uploaded_by=command.uploaded_by,
            uploaded_at=datetime.now(UTC),
            current_version=1,
        )
        attachment.raise_(file_uploaded_event(attachment))
        current_domain.repository_for(FileAttachment).save(attachment)

        logger.info("Upload confirmed", file_id=str(attachment.id), s3_key=str(attachment.s3_key))
        return str(attachment.id)

    @handle(UploadFile)
    def upload_file(self, command):
        content = base64.b64decode(command.content)
        attachment = FileAttachment.create(
            id=str(uuid4()),
            prefix=command.prefix or default_prefix(),
            filename=command.filename,
            mime_type=command.content_type,
            size_bytes=len(content),
            checksum=FileChecksum.from_bytes(content),
            uploaded_by=command.uploaded_by,
        )
        get_storage().upload(str(attachment.s3_key), content, attachment.mime_type)

        attachment.raise_(file_uploaded_event(attachment))
        current_domain.repository_for(FileAttachment).save(attachment)

        logger.info(
            "File uploaded",
            file_id=str(attachment.id),
            filename=attachment.filename,
            size_bytes=attachment.size_bytes,
        )
        return str(attachment.id)
