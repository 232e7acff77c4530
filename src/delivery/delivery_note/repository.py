"""Repositories for DeliveryNote and InvoiceDeliveryLink."""

from datetime import datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from delivery.delivery_note.delivery_note import DeliveryNote, DeliveryNoteItem
from delivery.delivery_note.invoice_link import InvoiceDeliveryLink
from delivery.delivery_note.value_objects import NoteStatus
from delivery.domain import delivery


@delivery.repository(part_of=DeliveryNote)
class DeliveryNoteRepository:
    """Repository for DeliveryNote aggregates.

    ``save`` and ``update`` split the base ``add`` into an insert that refuses
    existing ids and an update that refuses unknown ones. Finders return
    fully loaded aggregates, items included.
    """

    def save(self, note: DeliveryNote) -> DeliveryNote:
        if self.get_or_none(note.id) is not None:
            raise ValidationError({"id": [f"Delivery note {note.id} already exists"]})
        return self.add(note)

    def update(self, note: DeliveryNote) -> DeliveryNote:
        # Raises ObjectNotFoundError for unknown ids
        self.get(note.id)
        return self.add(note)

    def find_by_id(self, note_id: str) -> DeliveryNote | None:
        return self.get_or_none(note_id)

    def find_by_delivery_note_number(self, delivery_note_number: str) -> DeliveryNote | None:
        return self._dao.query.filter(delivery_note_number=delivery_note_number).all().first

    def find_by_purchase_order_id(self, purchase_order_id: str) -> list[DeliveryNote]:
        return self._newest_first(purchase_order_id=purchase_order_id)

    def find_by_vendor_id(self, vendor_id: str) -> list[DeliveryNote]:
        return self._newest_first(vendor_id=vendor_id)

    def find_by_status(self, status: str) -> list[DeliveryNote]:
        return self._newest_first(status=NoteStatus(status).value)

    def find_by_date_range(self, start: datetime, end: datetime) -> list[DeliveryNote]:
        """Notes whose delivery date falls within ``[start, end]``."""
        return self._newest_first(delivery_date__gte=start, delivery_date__lte=end)

    def find_with_issues(self) -> list[DeliveryNote]:
        return [note for note in self._newest_first() if note.has_any_issues()]

    def exists_by_delivery_note_number(self, delivery_note_number: str) -> bool:
        return self.find_by_delivery_note_number(delivery_note_number) is not None

    def delete(self, note: DeliveryNote) -> None:
        """Remove the note together with its items."""
        item_dao = current_domain.repository_for(DeliveryNoteItem)._dao
        for item in note.items:
            item_dao.delete(item)
        self._dao.delete(note)

    def count(self) -> int:
        return self._dao.query.count()

    def _newest_first(self, **filters) -> list[DeliveryNote]:
        return self._dao.query.filter(**filters).order_by("-delivery_date").limit(None).all().items


@delivery.repository(part_of=InvoiceDeliveryLink)
class InvoiceDeliveryLinkRepository:
    """Repository for links between invoices and delivery notes.

    Finders return the newest link first.
    """

    def link(self, invoice_id: str, delivery_note_id: str, linked_by: str | None = None) -> InvoiceDeliveryLink:
        if self.exists(invoice_id, delivery_note_id):
            raise ValidationError(
                {"link": [f"Link already exists between invoice {invoice_id} and delivery note {delivery_note_id}"]}
            )
        link = InvoiceDeliveryLink.create(invoice_id=invoice_id, delivery_note_id=delivery_note_id, linked_by=linked_by)
        return self.add(link)

    def unlink(self, invoice_id: str, delivery_note_id: str) -> None:
        link = self._find_link(invoice_id, delivery_note_id)
        if link is None:
            raise ValidationError(
                {"link": [f"Link does not exist between invoice {invoice_id} and delivery note {delivery_note_id}"]}
            )
        self._dao.delete(link)

    def exists(self, invoice_id: str, delivery_note_id: str) -> bool:
        return self._find_link(invoice_id, delivery_note_id) is not None

    def find_links_by_invoice_id(self, invoice_id: str) -> list[InvoiceDeliveryLink]:
        return self._newest_first(invoice_id=invoice_id)

    def find_links_by_delivery_note_id(self, delivery_note_id: str) -> list[InvoiceDeliveryLink]:
        return self._newest_first(delivery_note_id=delivery_note_id)

    def find_delivery_note_ids_by_invoice_id(self, invoice_id: str) -> list[str]:
        return [str(link.delivery_note_id) for link in self.find_links_by_invoice_id(invoice_id)]

    def find_invoice_ids_by_delivery_note_id(self, delivery_note_id: str) -> list[str]:
        return [str(link.invoice_id) for link in self.find_links_by_delivery_note_id(delivery_note_id)]

    def delete_by_invoice_id(self, invoice_id: str) -> int:
        links = self.find_links_by_invoice_id(invoice_id)
        for link in links:
            self._dao.delete(link)
        return len(links)

    def delete_by_delivery_note_id(self, delivery_note_id: str) -> int:
        links = self.find_links_by_delivery_note_id(delivery_note_id)
        for link in links:
            self._dao.delete(link)
        return len(links)

    def _find_link(self, invoice_id: str, delivery_note_id: str) -> InvoiceDeliveryLink | None:
        return self._dao.query.filter(invoice_id=invoice_id, delivery_note_id=delivery_note_id).all().first

    def _newest_first(self, **filters) -> list[InvoiceDeliveryLink]:
        return self._dao.query.filter(**filters).order_by("-linked_at").limit(None).all().items
