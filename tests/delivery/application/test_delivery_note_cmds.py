"""Application tests for delivery note commands via domain.process()."""

import json
from datetime import UTC, datetime

import pytest
from delivery.delivery_note.confirmation import ConfirmDeliveryNote
from delivery.delivery_note.creation import CreateDeliveryNote
from delivery.delivery_note.deletion import DeleteDeliveryNote
from delivery.delivery_note.delivery_note import DeliveryNote
from delivery.delivery_note.invoice_link import InvoiceDeliveryLink
from delivery.delivery_note.items import UpdateDeliveryNoteItem
from delivery.delivery_note.value_objects import NoteStatus
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from shared.errors import BusinessRuleViolationError, ImmutableEntityError


def _items_json(*lines):
    lines = lines or (
        {"purchase_order_item_id": "poi-1", "item_id": "item-1", "quantity_delivered": 10, "quantity_ordered": 10},
    )
    return json.dumps(list(lines))


def _create_note(number="DN-2026-001", items=None, **overrides):
    data = {
        "delivery_note_number": number,
        "purchase_order_id": "po-001",
        "vendor_id": "ven-001",
        "received_by": "warehouse.lead",
        "delivery_date": datetime(2026, 3, 2, 9, 30, tzinfo=UTC),
        "items": items or _items_json(),
    }
    data.update(overrides)
    return current_domain.process(CreateDeliveryNote(**data), asynchronous=False)


class TestCreateDeliveryNote:
    def test_create_persists_draft_note(self):
        note_id = _create_note()
        note = current_domain.repository_for(DeliveryNote).get(note_id)
        assert note.status == NoteStatus.DRAFT.value
        assert note.delivery_note_number == "DN-2026-001"
        assert note.item_count == 1

    def test_create_with_several_items(self):
        note_id = _create_note(
            items=_items_json(
                {"purchase_order_item_id": "poi-1", "item_id": "item-1", "quantity_delivered": 10, "quantity_ordered": 10},
                {
                    "purchase_order_item_id": "poi-2",
                    "item_id": "item-2",
                    "quantity_delivered": 3,
                    "quantity_ordered": 5,
                    "condition": "PARTIAL",
                    "notes": "Back-ordered",
                },
            )
        )
        note = current_domain.repository_for(DeliveryNote).get(note_id)
        assert note.item_count == 2
        assert note.total_quantity_delivered == 13
        assert note.has_any_issues()

    def test_duplicate_number_is_rejected(self):
        _create_note(number="DN-DUP")
        with pytest.raises(BusinessRuleViolationError) as exc:
            _create_note(number="DN-DUP")
        assert "Delivery note number DN-DUP already exists" in str(exc.value)

    def test_empty_items_are_rejected(self):
        with pytest.raises(BusinessRuleViolationError):
            _create_note(items="[]")

    def test_create_stores_event(self):
        _create_note()
        messages = current_domain.event_store.store.read("delivery::delivery_note")
        created = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Delivery.DeliveryNoteCreated.v1"
        ]
        assert len(created) >= 1


class TestUpdateDeliveryNoteItem:
    def test_update_changes_item(self):
        note_id = _create_note()
        note = current_domain.repository_for(DeliveryNote).get(note_id)
        item_id = str(note.items[0].id)

        current_domain.process(
            UpdateDeliveryNoteItem(
                delivery_note_id=note_id,
                item_id=item_id,
                quantity_delivered=8,
                condition="DAMAGED",
            ),
            asynchronous=False,
        )

        note = current_domain.repository_for(DeliveryNote).get(note_id)
        item = note.find_item_by_id(item_id)
        assert item.quantity_delivered == 8
        assert item.condition == "DAMAGED"
        assert item.quantity_ordered == 10

    def test_unknown_item_is_rejected(self):
        note_id = _create_note()
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                UpdateDeliveryNoteItem(delivery_note_id=note_id, item_id="missing", quantity_delivered=1),
                asynchronous=False,
            )
        assert "Item missing not found" in str(exc.value)

    def test_update_after_confirmation_is_rejected(self):
        note_id = _create_note()
        note = current_domain.repository_for(DeliveryNote).get(note_id)
        item_id = str(note.items[0].id)
        current_domain.process(ConfirmDeliveryNote(delivery_note_id=note_id), asynchronous=False)

        with pytest.raises(ImmutableEntityError):
            current_domain.process(
                UpdateDeliveryNoteItem(delivery_note_id=note_id, item_id=item_id, quantity_delivered=1),
                asynchronous=False,
            )


class TestConfirmDeliveryNote:
    def test_confirm_persists_status(self):
        note_id = _create_note()
        current_domain.process(
            ConfirmDeliveryNote(delivery_note_id=note_id, confirmed_by="manager"),
            asynchronous=False,
        )
        note = current_domain.repository_for(DeliveryNote).get(note_id)
        assert note.status == NoteStatus.CONFIRMED.value
        assert note.confirmed_by == "manager"
        assert note.confirmed_at is not None

    def test_confirm_twice_is_rejected(self):
        note_id = _create_note()
        current_domain.process(ConfirmDeliveryNote(delivery_note_id=note_id), asynchronous=False)
        with pytest.raises(ImmutableEntityError):
            current_domain.process(ConfirmDeliveryNote(delivery_note_id=note_id), asynchronous=False)

    def test_confirm_unknown_note_raises(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ConfirmDeliveryNote(delivery_note_id="missing"), asynchronous=False)


class TestDeleteDeliveryNote:
    def test_delete_draft_removes_note(self):
        note_id = _create_note()
        current_domain.process(DeleteDeliveryNote(delivery_note_id=note_id), asynchronous=False)
        assert current_domain.repository_for(DeliveryNote).find_by_id(note_id) is None

    def test_delete_confirmed_note_is_rejected(self):
        note_id = _create_note()
        current_domain.process(ConfirmDeliveryNote(delivery_note_id=note_id), asynchronous=False)
        with pytest.raises(ImmutableEntityError):
            current_domain.process(DeleteDeliveryNote(delivery_note_id=note_id), asynchronous=False)
        assert current_domain.repository_for(DeliveryNote).find_by_id(note_id) is not None

    def test_delete_stores_event(self):
        note_id = _create_note()
        current_domain.process(DeleteDeliveryNote(delivery_note_id=note_id), asynchronous=False)

        messages = current_domain.event_store.store.read(f"delivery::delivery_note-{note_id}")
        deleted = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Delivery.DeliveryNoteDeleted.v1"
        ]
        assert len(deleted) == 1
        assert deleted[0].data["delivery_note_number"] == "DN-2026-001"

    def test_delete_removes_invoice_links(self):
        note_id = _create_note()
        other_id = _create_note(number="DN-2026-002")
        links = current_domain.repository_for(InvoiceDeliveryLink)
        links.link("inv-001", note_id)
        links.link("inv-002", note_id)
        links.link("inv-001", other_id)

        current_domain.process(DeleteDeliveryNote(delivery_note_id=note_id), asynchronous=False)

        assert links.find_invoice_ids_by_delivery_note_id(note_id) == []
        assert links.find_delivery_note_ids_by_invoice_id("inv-001") == [other_id]
