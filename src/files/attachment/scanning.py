"""Virus scanning — command, handlers and the scan trigger.

``FileUploadedHandler`` reacts to every new upload: it pulls the bytes from
object storage, asks the scanner for a verdict and records it. Infected
objects are also quarantined.

Completion is idempotent at this level. A file that already has a verdict is
left alone, so a redelivered ``FileUploaded`` or a second scanner callback
does no harm. The aggregate itself still refuses a second completion.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from files.attachment.attachment import FileAttachment
from files.attachment.events import FileReplaced, FileScanCompleted, FileUploaded
from files.attachment.value_objects import ScanStatus, VirusScanStatus
from files.domain import files
from files.scanner import get_scanner
from files.storage import get_storage
from shared.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


@files.command(part_of="FileAttachment")
class CompleteVirusScan:
    """Record the scanner's verdict for a file."""

    file_id = Identifier(required=True)
    result = String(required=True, max_length=20)
    threat_name = String(max_length=255)


def complete_scan(file_id: str, result: str, threat_name: str | None = None) -> FileAttachment:
    """Apply a scan verdict unless the file already has one."""
    verdict = VirusScanStatus.from_string(result)
    repo = current_domain.repository_for(FileAttachment)
    attachment = repo.get(file_id)

    if not attachment.is_pending_scan():
        logger.info(
            "Virus scan already complete, ignoring verdict",
            file_id=str(attachment.id),
            status=attachment.virus_scan_status,
            verdict=verdict.value,
        )
        return attachment

    attachment.mark_scan_complete(verdict)
    attachment.raise_(
        FileScanCompleted(
            file_attachment_id=str(attachment.id),
            filename=attachment.filename,
            scan_result=attachment.virus_scan_status,
            threat_name=threat_name,
            s3_key=str(attachment.s3_key),
            scanned_at=attachment.scanned_at,
        )
    )
    repo.update(attachment)

    log = logger.warning if attachment.is_quarantined() else logger.info
    log(
        "Virus scan completed",
        file_id=str(attachment.id),
        scan_result=attachment.virus_scan_status,
        threat_name=threat_name,
    )
    return attachment


@files.command_handler(part_of=FileAttachment)
class CompleteVirusScanHandler:
    @handle(CompleteVirusScan)
    def complete_virus_scan(self, command):
        complete_scan(command.file_id, command.result, command.threat_name)


@files.event_handler(part_of=FileAttachment)
class FileUploadedHandler:
    """Scans every uploaded file, including new versions of replaced files."""

    @handle(FileUploaded)
    def on_file_uploaded(self, event: FileUploaded) -> None:
        self._scan(str(event.file_attachment_id), str(event.s3_key))

    @handle(FileReplaced)
    def on_file_replaced(self, event: FileReplaced) -> None:
        self._scan(str(event.file_attachment_id), str(event.new_s3_key))

    def _scan(self, file_id: str, s3_key: str) -> None:
        # Every log line emitted while scanning carries the file and its key
        add_context(file_id=file_id, s3_key=s3_key)
        try:
            self._scan_and_record(file_id, s3_key)
        finally:
            clear_context()

    def _scan_and_record(self, file_id: str, s3_key: str) -> None:
        try:
            content = get_storage().download(s3_key)
            report = get_scanner().scan(s3_key, content)
        except Exception as exc:
            logger.error("Virus scan failed", error=str(exc))
            raise

        result = ScanStatus.CLEAN.value if report["is_clean"] else ScanStatus.INFECTED.value
        attachment = complete_scan(file_id, result, report.get("threat_name"))

        if attachment.is_quarantined():
            get_scanner().quarantine(s3_key)
            logger.warning("Infected file quarantined", threat_name=report.get("threat_name"))
