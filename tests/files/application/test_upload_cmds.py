"""Application tests for the upload commands via domain.process()."""

import base64
import hashlib
from datetime import UTC, datetime

import pytest
from files.attachment.attachment import FileAttachment
from files.attachment.upload import ConfirmUpload, RequestUpload, UploadFile
from files.storage import get_storage
from protean import current_domain
from protean.exceptions import ValidationError


def _upload(content=b"%PDF-1.7 invoice 001", **overrides):
    data = {
        "filename": "inv-001.pdf",
        "content_type": "application/pdf",
        "content": base64.b64encode(content).decode(),
        "uploaded_by": "clerk",
    }
    data.update(overrides)
    return current_domain.process(UploadFile(**data), asynchronous=False)


def _confirm(reserved, content):
    return current_domain.process(
        ConfirmUpload(
            file_id=reserved["file_id"],
            s3_key=reserved["s3_key"],
            filename="inv.pdf",
            content_type="application/pdf",
            size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            uploaded_by="clerk",
        ),
        asynchronous=False,
    )


class TestUploadFile:
    def test_upload_records_pending_attachment(self):
        content = b"%PDF-1.7 invoice 001"
        file_id = _upload(content)

        attachment = current_domain.repository_for(FileAttachment).get(file_id)
        assert attachment.is_pending_scan()
        assert attachment.filename == "inv-001.pdf"
        assert attachment.size_bytes == len(content)
        assert str(attachment.checksum) == hashlib.sha256(content).hexdigest()
        assert attachment.uploaded_by == "clerk"

    def test_upload_stores_bytes(self):
        content = b"delivery note scan"
        file_id = _upload(content, filename="dn.png", content_type="image/png")

        attachment = current_domain.repository_for(FileAttachment).get(file_id)
        assert get_storage().download(str(attachment.s3_key)) == content

    def test_upload_uses_default_prefix(self):
        file_id = _upload()
        attachment = current_domain.repository_for(FileAttachment).get(file_id)
        assert attachment.s3_key.prefix == f"uploads-{datetime.now(UTC).year}"

    def test_upload_uses_given_prefix(self):
        file_id = _upload(prefix="invoices")
        attachment = current_domain.repository_for(FileAttachment).get(file_id)
        assert attachment.s3_key.prefix == "invoices"

    def test_invalid_mime_type_is_rejected(self):
        with pytest.raises(ValidationError):
            _upload(content_type="pdf")
        assert get_storage().objects == {}

    def test_upload_stores_event(self):
        _upload()
        messages = current_domain.event_store.store.read("files::file_attachment")
        uploaded = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Files.FileUploaded.v1"
        ]
        assert len(uploaded) >= 1


class TestDirectUpload:
    def test_request_upload_returns_key_and_url(self):
        result = current_domain.process(
            RequestUpload(filename="inv.pdf", content_type="application/pdf", uploaded_by="clerk", prefix="invoices"),
            asynchronous=False,
        )
        assert set(result) == {"file_id", "s3_key", "upload_url"}
        assert result["s3_key"].startswith("invoices/")
        assert result["s3_key"].endswith("/inv.pdf")
        assert "X-Operation=put" in result["upload_url"]

    def test_request_upload_records_nothing(self):
        current_domain.process(
            RequestUpload(filename="inv.pdf", content_type="application/pdf", uploaded_by="clerk"),
            asynchronous=False,
        )
        assert current_domain.repository_for(FileAttachment).count() == 0

    def test_confirm_upload_records_attachment_at_reserved_key(self):
        content = b"%PDF-1.7 direct upload"
        reserved = current_domain.process(
            RequestUpload(filename="inv.pdf", content_type="application/pdf", uploaded_by="clerk"),
            asynchronous=False,
        )
        get_storage().upload(reserved["s3_key"], content, "application/pdf")

        file_id = _confirm(reserved, content)

        assert file_id == reserved["file_id"]
        attachment = current_domain.repository_for(FileAttachment).get(file_id)
        assert str(attachment.s3_key) == reserved["s3_key"]
        assert attachment.is_pending_scan()
        assert attachment.current_version == 1

    def test_confirm_upload_twice_is_rejected(self):
        content = b"twice"
        reserved = current_domain.process(
            RequestUpload(filename="inv.pdf", content_type="application/pdf", uploaded_by="clerk"),
            asynchronous=False,
        )
        _confirm(reserved, content)
        with pytest.raises(ValidationError) as exc:
            _confirm(reserved, content)
        assert "already exists" in str(exc.value)
