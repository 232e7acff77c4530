"""Application tests for virus scanning — the upload trigger and scan completion."""

import base64

import pytest
import structlog
from files.attachment.attachment import FileAttachment
from files.attachment.scanning import CompleteVirusScan, FileUploadedHandler
from files.attachment.upload import UploadFile, file_uploaded_event
from files.scanner import get_scanner
from files.scanner.fake_adapter import EICAR_SIGNATURE
from files.storage import get_storage
from files.storage.port import StorageError
from protean import current_domain
from protean.exceptions import ValidationError


def _upload(content=b"%PDF-1.7 invoice"):
    return current_domain.process(
        UploadFile(
            filename="inv.pdf",
            content_type="application/pdf",
            content=base64.b64encode(content).decode(),
            uploaded_by="clerk",
        ),
        asynchronous=False,
    )


def _get(file_id):
    return current_domain.repository_for(FileAttachment).get(file_id)


def _deliver_upload_event(file_id):
    FileUploadedHandler().on_file_uploaded(file_uploaded_event(_get(file_id)))


class TestFileUploadedHandler:
    def test_clean_file_is_marked_clean(self):
        file_id = _upload()
        _deliver_upload_event(file_id)

        attachment = _get(file_id)
        assert attachment.is_safe()
        assert attachment.scanned_at is not None
        assert get_scanner().scanned_keys == [str(attachment.s3_key)]
        assert get_scanner().quarantined_keys == []

    def test_eicar_file_is_infected_and_quarantined(self):
        file_id = _upload(b"X5O!P%@AP " + EICAR_SIGNATURE)
        _deliver_upload_event(file_id)

        attachment = _get(file_id)
        assert attachment.is_quarantined()
        assert get_scanner().quarantined_keys == [str(attachment.s3_key)]

    def test_redelivered_event_keeps_first_verdict(self):
        file_id = _upload()
        _deliver_upload_event(file_id)
        get_scanner().configure(infected=True)
        _deliver_upload_event(file_id)

        assert _get(file_id).is_safe()
        assert get_scanner().quarantined_keys == []

    def test_storage_failure_leaves_file_pending(self):
        file_id = _upload()
        get_storage().configure(should_succeed=False)

        with pytest.raises(StorageError):
            _deliver_upload_event(file_id)
        assert _get(file_id).is_pending_scan()

    def test_scan_logs_carry_file_context(self, monkeypatch):
        file_id = _upload()
        scanner = get_scanner()
        scan = scanner.scan
        bound = {}

        def recording_scan(key, content):
            bound.update(structlog.contextvars.get_contextvars())
            return scan(key, content)

        monkeypatch.setattr(scanner, "scan", recording_scan)
        _deliver_upload_event(file_id)

        assert bound["file_id"] == file_id
        assert bound["s3_key"] == str(_get(file_id).s3_key)
        assert "file_id" not in structlog.contextvars.get_contextvars()

    def test_failed_scan_clears_file_context(self):
        file_id = _upload()
        get_storage().configure(should_succeed=False)

        with pytest.raises(StorageError):
            _deliver_upload_event(file_id)
        assert "file_id" not in structlog.contextvars.get_contextvars()


class TestCompleteVirusScan:
    def test_complete_with_clean(self):
        file_id = _upload()
        current_domain.process(CompleteVirusScan(file_id=file_id, result="CLEAN"), asynchronous=False)
        assert _get(file_id).is_safe()

    def test_complete_with_infected(self):
        file_id = _upload()
        current_domain.process(
            CompleteVirusScan(file_id=file_id, result="INFECTED", threat_name="Win.Test.EICAR_HDB-1"),
            asynchronous=False,
        )
        assert _get(file_id).is_quarantined()

    def test_second_completion_is_ignored(self):
        file_id = _upload()
        current_domain.process(CompleteVirusScan(file_id=file_id, result="CLEAN"), asynchronous=False)
        current_domain.process(CompleteVirusScan(file_id=file_id, result="INFECTED"), asynchronous=False)
        assert _get(file_id).virus_scan_status == "CLEAN"

    def test_unknown_result_is_rejected(self):
        file_id = _upload()
        with pytest.raises(ValidationError):
            current_domain.process(CompleteVirusScan(file_id=file_id, result="MAYBE"), asynchronous=False)
        assert _get(file_id).is_pending_scan()

    def test_completion_stores_event(self):
        file_id = _upload()
        current_domain.process(CompleteVirusScan(file_id=file_id, result="CLEAN"), asynchronous=False)
        messages = current_domain.event_store.store.read("files::file_attachment")
        completed = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Files.FileScanCompleted.v1"
        ]
        assert len(completed) >= 1
