"""Delivery note deletion — command and handler.

Only drafts can be discarded. A confirmed note is a permanent record of what
was received and stays in place. Any invoice links held by the note go with
it.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote
from delivery.delivery_note.events import DeliveryNoteDeleted
from delivery.delivery_note.invoice_link import InvoiceDeliveryLink
from delivery.domain import delivery
from shared.errors import ImmutableEntityError

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DeliveryNote")
class DeleteDeliveryNote:
    """Discard a draft delivery note and its items."""

    delivery_note_id = Identifier(required=True)


@delivery.command_handler(part_of=DeliveryNote)
class DeleteDeliveryNoteHandler:
    @handle(DeleteDeliveryNote)
    def delete_delivery_note(self, command):
        repo = current_domain.repository_for(DeliveryNote)
        note = repo.get(command.delivery_note_id)
        if note.is_confirmed():
            raise ImmutableEntityError(
                f"Cannot delete delivery note {note.delivery_note_number} - already confirmed"
            )

        note.raise_(
            DeliveryNoteDeleted(
                delivery_note_id=str(note.id),
                delivery_note_number=note.delivery_note_number,
                deleted_at=datetime.now(UTC),
            )
        )
        unlinked = current_domain.repository_for(InvoiceDeliveryLink).delete_by_delivery_note_id(str(note.id))
        repo.delete(note)

        logger.info(
            "Delivery note deleted",
            delivery_note_id=str(note.id),
            delivery_note_number=note.delivery_note_number,
            invoice_links_removed=unlinked,
        )
