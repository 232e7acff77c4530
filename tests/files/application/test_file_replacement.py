"""Application tests for ReplaceFile — versioning of uploaded files."""

import base64
import hashlib

import pytest
from files.attachment.attachment import FileAttachment
from files.attachment.events import FileReplaced
from files.attachment.queries import get_file_versions
from files.attachment.replacement import ReplaceFile
from files.attachment.scanning import CompleteVirusScan, FileUploadedHandler
from files.attachment.upload import UploadFile
from files.scanner import get_scanner
from files.storage import get_storage
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _upload(content=b"invoice v1"):
    return current_domain.process(
        UploadFile(
            filename="inv.pdf",
            content_type="application/pdf",
            content=base64.b64encode(content).decode(),
            uploaded_by="clerk",
            prefix="invoices",
        ),
        asynchronous=False,
    )


def _replace(file_id, content=b"invoice v2", reason="Corrected totals", **overrides):
    data = {
        "file_id": file_id,
        "filename": "inv-corrected.pdf",
        "content_type": "application/pdf",
        "content": base64.b64encode(content).decode(),
        "replaced_by": "manager",
        "reason": reason,
    }
    data.update(overrides)
    return current_domain.process(ReplaceFile(**data), asynchronous=False)


def _get(file_id):
    return current_domain.repository_for(FileAttachment).get(file_id)


class TestReplaceFile:
    def test_replacement_bumps_version_and_key(self):
        file_id = _upload()
        original = _get(file_id)

        _replace(file_id)

        current = _get(file_id)
        assert current.current_version == 2
        assert not current.is_original_version()
        assert str(current.s3_key) != str(original.s3_key)
        assert current.s3_key.prefix == "invoices"
        assert current.filename == "inv-corrected.pdf"
        assert str(current.checksum) == hashlib.sha256(b"invoice v2").hexdigest()
        assert current.uploaded_by == "manager"

    def test_replacement_is_rescanned(self):
        file_id = _upload()
        current_domain.process(CompleteVirusScan(file_id=file_id, result="CLEAN"), asynchronous=False)

        _replace(file_id)

        assert _get(file_id).is_pending_scan()

    def test_outgoing_state_is_archived(self):
        file_id = _upload()
        original = _get(file_id)

        _replace(file_id)

        versions = get_file_versions(file_id)
        assert len(versions) == 1
        archived = versions[0]
        assert archived.version_number == 1
        assert str(archived.s3_key) == str(original.s3_key)
        assert archived.checksum == original.checksum
        assert archived.replaced_by == "manager"
        assert archived.replacement_reason == "Corrected totals"

    def test_both_objects_remain_in_storage(self):
        file_id = _upload()
        original = _get(file_id)
        _replace(file_id)
        current = _get(file_id)

        storage = get_storage()
        assert storage.download(str(original.s3_key)) == b"invoice v1"
        assert storage.download(str(current.s3_key)) == b"invoice v2"

    def test_versions_are_listed_newest_first(self):
        file_id = _upload()
        _replace(file_id, content=b"invoice v2")
        _replace(file_id, content=b"invoice v3", reason=None)

        assert _get(file_id).current_version == 3
        assert [v.version_number for v in get_file_versions(file_id)] == [2, 1]

    def test_replacement_stores_event_after_earlier_ones(self):
        file_id = _upload()
        current_domain.process(CompleteVirusScan(file_id=file_id, result="CLEAN"), asynchronous=False)

        _replace(file_id)

        messages = current_domain.event_store.store.read(f"files::file_attachment-{file_id}")
        types = [m.metadata.headers.type for m in messages if m.metadata and m.metadata.headers]
        assert types == ["Files.FileUploaded.v1", "Files.FileScanCompleted.v1", "Files.FileReplaced.v1"]

    def test_second_replacement_continues_the_stream(self):
        file_id = _upload()
        _replace(file_id, content=b"invoice v2")
        _replace(file_id, content=b"invoice v3")

        messages = current_domain.event_store.store.read(f"files::file_attachment-{file_id}")
        replaced = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Files.FileReplaced.v1"
        ]
        assert len(replaced) == 2

    def test_replace_unknown_file_raises(self):
        with pytest.raises(ObjectNotFoundError):
            _replace("missing")

    def test_invalid_replacement_is_rejected(self):
        file_id = _upload()
        with pytest.raises(ValidationError):
            _replace(file_id, content_type="not a mime type")
        assert _get(file_id).current_version == 1

    def test_replaced_event_triggers_scan_of_new_key(self):
        file_id = _upload()
        _replace(file_id)
        current = _get(file_id)

        FileUploadedHandler().on_file_replaced(
            FileReplaced(
                file_attachment_id=file_id,
                filename=current.filename,
                old_version_number=1,
                new_version_number=2,
                old_s3_key=str(get_file_versions(file_id)[0].s3_key),
                new_s3_key=str(current.s3_key),
                old_checksum=str(get_file_versions(file_id)[0].checksum),
                new_checksum=str(current.checksum),
                replaced_by="manager",
                replaced_at=current.uploaded_at,
            )
        )

        assert _get(file_id).is_safe()
        assert get_scanner().scanned_keys == [str(current.s3_key)]
