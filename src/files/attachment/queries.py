"""Read helpers for file attachments.

Plain functions rather than commands: they change nothing and return data
straight to the caller.
"""

from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.version import FileVersion
from files.storage import get_storage
from files.storage.port import DEFAULT_URL_EXPIRY_SECONDS
from shared.errors import BusinessRuleViolationError


def get_download_url(file_id: str, expires_in: int = DEFAULT_URL_EXPIRY_SECONDS) -> str:
    """Presigned download URL for the current version of a file.

    Infected files are never handed out.
    """
    attachment = current_domain.repository_for(FileAttachment).get(file_id)
    if attachment.is_quarantined():
        raise BusinessRuleViolationError(
            {"file_id": [f"File {attachment.filename} is infected and cannot be downloaded"]}
        )
    return get_storage().get_presigned_download_url(str(attachment.s3_key), expires_in=expires_in)


def get_file_versions(file_id: str) -> list[FileVersion]:
    """Archived versions of a file, newest first."""
    current_domain.repository_for(FileAttachment).get(file_id)
    return current_domain.repository_for(FileVersion).find_by_file_attachment_id(file_id)
