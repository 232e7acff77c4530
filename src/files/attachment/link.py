"""FileAttachmentLink — association between a file and a business record.

A file can be attached to several records and a record can carry several
files. Each pairing is stored as its own small aggregate.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from files.domain import files


class EntityType(Enum):
    INVOICE = "INVOICE"
    DELIVERY_NOTE = "DELIVERY_NOTE"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    VENDOR = "VENDOR"


def parse_entity_type(entity_type: str) -> EntityType:
    try:
        return EntityType(entity_type)
    except ValueError:
        valid = ", ".join(t.value for t in EntityType)
        raise ValidationError(
            {"entity_type": [f"Invalid entity type: {entity_type}. Valid types are: {valid}"]}
        ) from None


@files.aggregate
class FileAttachmentLink:
    file_attachment_id = Identifier(required=True)
    entity_type = String(required=True, max_length=50, choices=EntityType)
    entity_id = Identifier(required=True)
    attached_by = String(max_length=255)
    attached_at = DateTime()

    @classmethod
    def create(
        cls,
        file_attachment_id: str,
        entity_type: str,
        entity_id: str,
        attached_by: str | None = None,
    ) -> "FileAttachmentLink":
        return cls(
            file_attachment_id=file_attachment_id,
            entity_type=parse_entity_type(entity_type).value,
            entity_id=entity_id,
            attached_by=attached_by,
            attached_at=datetime.now(UTC),
        )
