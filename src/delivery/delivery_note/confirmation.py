"""Delivery note confirmation — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote
from delivery.delivery_note.events import DeliveryNoteConfirmed
from delivery.domain import delivery

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DeliveryNote")
class ConfirmDeliveryNote:
    """Confirm a draft delivery note. The note is read-only afterwards."""

    delivery_note_id = Identifier(required=True)
    confirmed_by = String(max_length=255)


@delivery.command_handler(part_of=DeliveryNote)
class ConfirmDeliveryNoteHandler:
    @handle(ConfirmDeliveryNote)
    def confirm_delivery_note(self, command):
        repo = current_domain.repository_for(DeliveryNote)
        note = repo.get(command.delivery_note_id)
        note.confirm(confirmed_by=command.confirmed_by)
        note.raise_(
            DeliveryNoteConfirmed(
                delivery_note_id=str(note.id),
                delivery_note_number=note.delivery_note_number,
                purchase_order_id=str(note.purchase_order_id),
                vendor_id=str(note.vendor_id),
                total_quantity_delivered=note.total_quantity_delivered,
                total_effective_quantity=note.total_effective_quantity,
                has_issues=note.has_any_issues(),
                confirmed_by=note.confirmed_by,
                confirmed_at=note.confirmed_at,
            )
        )
        repo.update(note)

        logger.info(
            "Delivery note confirmed",
            delivery_note_id=str(note.id),
            delivery_note_number=note.delivery_note_number,
            has_issues=note.has_any_issues(),
        )
