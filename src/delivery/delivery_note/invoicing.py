"""Linking delivery notes to invoices — command, handler and read helper.

Only CONFIRMED notes can be billed. Every note in a request is checked before
any link is written, so a single draft rejects the whole request. Pairs that
are already linked are skipped rather than rejected.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote
from delivery.delivery_note.events import DeliveryNoteLinkedToInvoice
from delivery.delivery_note.invoice_link import InvoiceDeliveryLink
from delivery.domain import delivery
from shared.errors import BusinessRuleViolationError

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DeliveryNote")
class LinkDeliveryNotesToInvoice:
    """Record that an invoice bills the given delivery notes."""

    invoice_id = Identifier(required=True)
    delivery_note_ids = Text(required=True)  # JSON list of delivery note ids
    linked_by = String(max_length=255)


@delivery.command_handler(part_of=DeliveryNote)
class LinkDeliveryNotesToInvoiceHandler:
    @handle(LinkDeliveryNotesToInvoice)
    def link_delivery_notes_to_invoice(self, command):
        note_ids = (
            json.loads(command.delivery_note_ids)
            if isinstance(command.delivery_note_ids, str)
            else command.delivery_note_ids
        )
        repo = current_domain.repository_for(DeliveryNote)
        link_repo = current_domain.repository_for(InvoiceDeliveryLink)
        invoice_id = str(command.invoice_id)

        # Raises ObjectNotFoundError for unknown notes
        notes = [repo.get(note_id) for note_id in note_ids]
        for note in notes:
            if not note.is_confirmed():
                raise BusinessRuleViolationError(
                    {
                        "delivery_note_ids": [
                            f"Delivery note {note.delivery_note_number} must be CONFIRMED before linking to invoice"
                        ]
                    }
                )

        linked = []
        for note in notes:
            if link_repo.exists(invoice_id, str(note.id)):
                continue
            link = link_repo.link(invoice_id, str(note.id), linked_by=command.linked_by)
            note.raise_(
                DeliveryNoteLinkedToInvoice(
                    delivery_note_id=str(note.id),
                    delivery_note_number=note.delivery_note_number,
                    invoice_id=invoice_id,
                    linked_by=link.linked_by,
                    linked_at=link.linked_at,
                )
            )
            repo.add(note)
            linked.append(str(note.id))

        logger.info(
            "Delivery notes linked to invoice",
            invoice_id=invoice_id,
            linked=len(linked),
            already_linked=len(notes) - len(linked),
        )
        return linked


def get_delivery_notes_by_invoice_id(invoice_id: str) -> list[DeliveryNote]:
    """The notes an invoice bills, skipping any that no longer exist."""
    note_ids = current_domain.repository_for(InvoiceDeliveryLink).find_delivery_note_ids_by_invoice_id(invoice_id)
    repo = current_domain.repository_for(DeliveryNote)
    return [note for note in (repo.find_by_id(note_id) for note_id in note_ids) if note is not None]
