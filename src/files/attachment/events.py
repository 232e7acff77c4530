"""File attachment domain events — immutable facts about uploaded files.

Events are built by command handlers from the aggregate's state after a
successful change and raised on the FileAttachment they describe.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from files.domain import files


@files.event(part_of="FileAttachment")
class FileUploaded:
    """A file was stored and is waiting for its virus scan."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    filename = String(required=True, max_length=255, sanitize=False)
    mime_type = String(required=True)
    size_bytes = Integer(required=True)
    s3_key = String(required=True, max_length=1024, sanitize=False)
    uploaded_by = String(required=True)
    uploaded_at = DateTime(required=True)


@files.event(part_of="FileAttachment")
class FileScanCompleted:
    """The virus scanner returned a verdict for a file."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    filename = String(required=True, max_length=255, sanitize=False)
    scan_result = String(required=True)
    threat_name = String()
    s3_key = String(required=True, max_length=1024, sanitize=False)
    scanned_at = DateTime(required=True)


@files.event(part_of="FileAttachment")
class FileReplaced:
    """A new version of a file superseded the previous one."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    filename = String(required=True, max_length=255, sanitize=False)
    old_version_number = Integer(required=True)
    new_version_number = Integer(required=True)
    old_s3_key = String(required=True, max_length=1024, sanitize=False)
    new_s3_key = String(required=True, max_length=1024, sanitize=False)
    old_checksum = String(required=True)
    new_checksum = String(required=True)
    replaced_by = String(required=True)
    replaced_at = DateTime(required=True)
    replacement_reason = Text()


@files.event(part_of="FileAttachment")
class FileAttached:
    """A file was attached to a business record."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    entity_type = String(required=True)
    entity_id = Identifier(required=True)
    attached_by = String()
    attached_at = DateTime(required=True)


@files.event(part_of="FileAttachment")
class FileDetached:
    """A file was detached from a business record."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    entity_type = String(required=True)
    entity_id = Identifier(required=True)
    detached_at = DateTime(required=True)


@files.event(part_of="FileAttachment")
class FileDeleted:
    """A file, its archived versions and its links were removed."""

    __version__ = 1

    file_attachment_id = Identifier(required=True)
    s3_key = String(required=True, max_length=1024, sanitize=False)
    deleted_at = DateTime(required=True)
