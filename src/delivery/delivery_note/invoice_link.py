"""InvoiceDeliveryLink — association between an invoice and a delivery note.

An invoice can bill several deliveries and a delivery can be billed across
several invoices. Each pairing is stored as its own small aggregate, kept
apart from the DeliveryNote so that linking never touches a confirmed note.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from delivery.domain import delivery


@delivery.aggregate
class InvoiceDeliveryLink:
    invoice_id = Identifier(required=True)
    delivery_note_id = Identifier(required=True)
    linked_by = String(max_length=255)
    linked_at = DateTime()

    @classmethod
    def create(
        cls,
        invoice_id: str,
        delivery_note_id: str,
        linked_by: str | None = None,
    ) -> "InvoiceDeliveryLink":
        errors: dict[str, list[str]] = {}
        if invoice_id is None or not str(invoice_id).strip():
            errors["invoice_id"] = ["Invoice ID is required"]
        if delivery_note_id is None or not str(delivery_note_id).strip():
            errors["delivery_note_id"] = ["Delivery note ID is required"]
        if errors:
            raise ValidationError(errors)

        return cls(
            invoice_id=invoice_id,
            delivery_note_id=delivery_note_id,
            linked_by=linked_by,
            linked_at=datetime.now(UTC),
        )
