"""Delivery note domain events — immutable facts about goods receipt.

Events are built by command handlers from the aggregate's state after a
successful mutation. The aggregate itself never constructs them.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="DeliveryNote")
class DeliveryNoteCreated:
    """A draft delivery note was recorded for a purchase order."""

    __version__ = 1

    delivery_note_id = Identifier(required=True)
    delivery_note_number = String(required=True)
    purchase_order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    received_by = String(required=True)
    delivery_date = DateTime(required=True)
    total_quantity_delivered = Integer(required=True)
    item_count = Integer(required=True)
    created_at = DateTime(required=True)


@delivery.event(part_of="DeliveryNote")
class DeliveryNoteConfirmed:
    """A delivery note was confirmed and is now frozen."""

    __version__ = 1

    delivery_note_id = Identifier(required=True)
    delivery_note_number = String(required=True)
    purchase_order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    total_quantity_delivered = Integer(required=True)
    total_effective_quantity = Integer(required=True)
    has_issues = Boolean(default=False)
    confirmed_by = String()
    confirmed_at = DateTime(required=True)


@delivery.event(part_of="DeliveryNote")
class DeliveryNoteDeleted:
    """A draft delivery note was discarded."""

    __version__ = 1

    delivery_note_id = Identifier(required=True)
    delivery_note_number = String(required=True)
    deleted_at = DateTime(required=True)


@delivery.event(part_of="DeliveryNote")
class DeliveryNoteLinkedToInvoice:
    """A confirmed delivery note was referenced by an invoice."""

    __version__ = 1

    delivery_note_id = Identifier(required=True)
    delivery_note_number = String(required=True)
    invoice_id = Identifier(required=True)
    linked_by = String()
    linked_at = DateTime(required=True)
