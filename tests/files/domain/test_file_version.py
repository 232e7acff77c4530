"""Tests for FileVersion snapshots and FileAttachmentLink."""

import hashlib
from uuid import uuid4

import pytest
from files.attachment.attachment import FileAttachment
from files.attachment.link import EntityType, FileAttachmentLink, parse_entity_type
from files.attachment.value_objects import S3ObjectKey
from files.attachment.version import FileVersion
from protean.exceptions import ValidationError
from shared.errors import ImmutableEntityError

CHECKSUM = hashlib.sha256(b"v1").hexdigest()


def _make_version(**overrides):
    data = {
        "file_attachment_id": str(uuid4()),
        "version_number": 1,
        "s3_key": str(S3ObjectKey.generate("invoices", "inv.pdf")),
        "checksum": CHECKSUM,
        "size_bytes": 4096,
        "replaced_by": "clerk",
    }
    data.update(overrides)
    return FileVersion.create(**data)


class TestFileVersion:
    def test_create_sets_defaults(self):
        version = _make_version()
        assert version.id is not None
        assert version.replaced_at is not None
        assert not version.has_replacement_reason()
        assert version.human_readable_size == "4.00 KB"

    def test_reason_is_trimmed(self):
        version = _make_version(replacement_reason="  wrong totals ")
        assert version.replacement_reason == "wrong totals"
        assert version.has_replacement_reason()

    def test_blank_reason_raises(self):
        with pytest.raises(ValidationError) as exc:
            _make_version(replacement_reason="   ")
        assert "Replacement reason cannot be empty string" in str(exc.value)

    def test_version_number_must_be_positive(self):
        with pytest.raises(ValidationError) as exc:
            _make_version(version_number=0)
        assert "Version number must be at least 1" in str(exc.value)

    def test_replaced_by_is_required(self):
        with pytest.raises(ValidationError) as exc:
            _make_version(replaced_by="")
        assert "Replaced by is required" in str(exc.value)

    def test_versions_cannot_be_modified(self):
        version = _make_version()
        with pytest.raises(ImmutableEntityError):
            version.replacement_reason = "changed my mind"

    def test_archive_snapshots_attachment(self):
        attachment = FileAttachment.create(
            id=str(uuid4()),
            prefix="invoices",
            filename="inv.pdf",
            mime_type="application/pdf",
            size_bytes=1000,
            checksum=CHECKSUM,
            uploaded_by="clerk",
        )
        version = FileVersion.archive(attachment, replaced_by="manager", replacement_reason="corrected")

        assert version.file_attachment_id == str(attachment.id)
        assert version.version_number == 1
        assert version.s3_key == attachment.s3_key
        assert version.checksum == attachment.checksum
        assert version.size_bytes == 1000

    def test_display_info(self):
        info = _make_version(version_number=2, replacement_reason="rescan").get_display_info()
        assert info["version_number"] == 2
        assert info["size"] == "4.00 KB"
        assert info["replaced_by"] == "clerk"
        assert info["reason"] == "rescan"


class TestFileAttachmentLink:
    def test_create_link(self):
        link = FileAttachmentLink.create(
            file_attachment_id="file-1",
            entity_type="DELIVERY_NOTE",
            entity_id="dn-1",
            attached_by="clerk",
        )
        assert link.entity_type == EntityType.DELIVERY_NOTE.value
        assert link.attached_at is not None

    def test_unknown_entity_type_raises(self):
        with pytest.raises(ValidationError) as exc:
            parse_entity_type("CUSTOMER")
        assert "Invalid entity type: CUSTOMER" in str(exc.value)

    @pytest.mark.parametrize("entity_type", [t.value for t in EntityType])
    def test_all_entity_types_parse(self, entity_type):
        assert parse_entity_type(entity_type).value == entity_type
