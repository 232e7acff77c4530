"""Delivery note item replacement — command and handler.

Items are immutable once built, so a change to one line is carried out by
building a complete replacement from the existing item plus the supplied
changes and handing it to the aggregate.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote, DeliveryNoteItem
from delivery.domain import delivery

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DeliveryNote")
class UpdateDeliveryNoteItem:
    """Replace one line of a draft delivery note."""

    delivery_note_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity_delivered = Integer()
    condition = String(max_length=20)
    notes = Text()


@delivery.command_handler(part_of=DeliveryNote)
class DeliveryNoteItemHandler:
    @handle(UpdateDeliveryNoteItem)
    def update_item(self, command):
        repo = current_domain.repository_for(DeliveryNote)
        note = repo.get(command.delivery_note_id)

        existing = note.find_item_by_id(command.item_id)
        if existing is None:
            raise ValidationError(
                {"items": [f"Item {command.item_id} not found in delivery note {note.delivery_note_number}"]}
            )

        replacement = DeliveryNoteItem.create(
            id=str(existing.id),
            delivery_note_id=str(note.id),
            purchase_order_item_id=str(existing.purchase_order_item_id),
            item_id=str(existing.item_id),
            quantity_ordered=existing.quantity_ordered,
            quantity_delivered=(
                command.quantity_delivered
                if command.quantity_delivered is not None
                else existing.quantity_delivered
            ),
            condition=command.condition or existing.condition,
            notes=command.notes if command.notes is not None else existing.notes,
        )
        note.update_item(replacement)
        repo.update(note)

        logger.info(
            "Delivery note item updated",
            delivery_note_id=str(note.id),
            item_id=str(replacement.id),
            condition=replacement.condition,
        )
