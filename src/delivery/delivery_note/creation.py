"""Delivery note creation — command and handler."""

import json
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote, DeliveryNoteItem
from delivery.delivery_note.events import DeliveryNoteCreated
from delivery.domain import delivery
from shared.errors import BusinessRuleViolationError

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DeliveryNote")
class CreateDeliveryNote:
    """Record goods received from a vendor against a purchase order."""

    delivery_note_number = String(required=True, max_length=100)
    purchase_order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    received_by = String(required=True, max_length=255)
    delivery_date = DateTime(required=True)
    notes = Text()
    items = Text(required=True)  # JSON list of item dicts


@delivery.command_handler(part_of=DeliveryNote)
class CreateDeliveryNoteHandler:
    @handle(CreateDeliveryNote)
    def create_delivery_note(self, command):
        repo = current_domain.repository_for(DeliveryNote)
        if repo.exists_by_delivery_note_number(command.delivery_note_number):
            raise BusinessRuleViolationError(
                {"delivery_note_number": [f"Delivery note number {command.delivery_note_number} already exists"]}
            )

        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        note_id = str(uuid4())
        items = [
            DeliveryNoteItem.create(
                delivery_note_id=note_id,
                purchase_order_item_id=item_data.get("purchase_order_item_id"),
                item_id=item_data.get("item_id"),
                quantity_delivered=item_data.get("quantity_delivered"),
                quantity_ordered=item_data.get("quantity_ordered"),
                condition=item_data.get("condition"),
                notes=item_data.get("notes"),
            )
            for item_data in items_data
        ]

        note = DeliveryNote.create(
            id=note_id,
            delivery_note_number=command.delivery_note_number,
            purchase_order_id=command.purchase_order_id,
            vendor_id=command.vendor_id,
            received_by=command.received_by,
            delivery_date=command.delivery_date,
            items=items,
            notes=command.notes,
        )
        note.raise_(
            DeliveryNoteCreated(
                delivery_note_id=str(note.id),
                delivery_note_number=note.delivery_note_number,
                purchase_order_id=str(note.purchase_order_id),
                vendor_id=str(note.vendor_id),
                received_by=note.received_by,
                delivery_date=note.delivery_date,
                total_quantity_delivered=note.total_quantity_delivered,
                item_count=note.item_count,
                created_at=note.created_at,
            )
        )
        repo.save(note)

        logger.info(
            "Delivery note created",
            delivery_note_id=str(note.id),
            delivery_note_number=note.delivery_note_number,
            item_count=note.item_count,
        )
        return str(note.id)
