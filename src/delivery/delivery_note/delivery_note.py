"""DeliveryNote aggregate (CQRS) — goods receipt against a purchase order.

A delivery note records what physically arrived from a vendor for one
purchase order. Each line compares the ordered quantity with the delivered
quantity and records the physical condition of the goods.

State Machine:
    DRAFT → CONFIRMED (terminal)

Notes and their items change only through the aggregate's own operations
(``update_item`` and ``confirm``). Direct attribute assignment on the note or
on any of its items raises ``ImmutableEntityError``, as does assigning to a
detached item copy. ``items`` is a read-only tuple view over the stored
lines. Once CONFIRMED, the operations refuse as well.
"""

from contextlib import contextmanager
from datetime import UTC, datetime
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from delivery.delivery_note.value_objects import (
    Condition,
    DeliveryNoteStatus,
    ItemCondition,
    NoteStatus,
    QuantityDiscrepancy,
)
from delivery.domain import delivery
from shared.errors import BusinessRuleViolationError, ImmutableEntityError


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="DeliveryNote")
class DeliveryNoteItem:
    """One delivered line, tied to a purchase order line.

    Items are never patched in place by callers. A change is expressed by
    building a complete replacement item and handing it to
    ``DeliveryNote.update_item``. Detached copies (``snapshot``, or items
    not yet handed to a note) refuse assignment outright.
    """

    purchase_order_item_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity_delivered = Integer(required=True)
    quantity_ordered = Integer(required=True)
    condition = String(max_length=20, choices=Condition, default=Condition.GOOD.value)
    notes = Text()

    @invariant.post
    def quantity_delivered_must_not_be_negative(self):
        if self.quantity_delivered is not None and self.quantity_delivered < 0:
            raise ValidationError({"quantity_delivered": ["Quantity delivered cannot be negative"]})

    @invariant.post
    def quantity_ordered_must_not_be_negative(self):
        if self.quantity_ordered is not None and self.quantity_ordered < 0:
            raise ValidationError({"quantity_ordered": ["Quantity ordered cannot be negative"]})

    @invariant.post
    def notes_must_not_be_blank(self):
        if self.notes is not None and not self.notes.strip():
            raise ValidationError({"notes": ["Item notes cannot be empty"]})

    @invariant.pre
    def detached_item_cannot_be_modified(self):
        if self._owner is None:
            raise ImmutableEntityError(f"Delivery note item {self.id} is a detached copy and cannot be modified")

    @classmethod
    def create(
        cls,
        delivery_note_id: str,
        purchase_order_item_id: str,
        item_id: str,
        quantity_delivered: int,
        quantity_ordered: int,
        condition: str | None = None,
        notes: str | None = None,
        id: str | None = None,
    ) -> "DeliveryNoteItem":
        """Validate raw input and build an item bound to ``delivery_note_id``."""
        errors: dict[str, list[str]] = {}
        if _is_blank(delivery_note_id):
            errors["delivery_note_id"] = ["Delivery note ID is required"]
        if _is_blank(purchase_order_item_id):
            errors["purchase_order_item_id"] = ["Purchase order item ID is required"]
        if _is_blank(item_id):
            errors["item_id"] = ["Item ID is required"]
        if quantity_delivered is None:
            errors["quantity_delivered"] = ["Quantity delivered is required"]
        elif quantity_delivered < 0:
            errors["quantity_delivered"] = ["Quantity delivered cannot be negative"]
        if quantity_ordered is None:
            errors["quantity_ordered"] = ["Quantity ordered is required"]
        elif quantity_ordered < 0:
            errors["quantity_ordered"] = ["Quantity ordered cannot be negative"]
        if notes is not None and not notes.strip():
            errors["notes"] = ["Item notes cannot be empty"]
        if errors:
            raise ValidationError(errors)

        item_condition = ItemCondition.from_string(condition) if condition else ItemCondition.good()

        return cls(
            id=id or str(uuid4()),
            delivery_note_id=delivery_note_id,
            purchase_order_item_id=purchase_order_item_id,
            item_id=item_id,
            quantity_delivered=quantity_delivered,
            quantity_ordered=quantity_ordered,
            condition=item_condition.value,
            notes=notes.strip() if notes else None,
        )

    def snapshot(self) -> "DeliveryNoteItem":
        """A detached copy of this item, not linked to the live aggregate."""
        return DeliveryNoteItem(
            id=self.id,
            delivery_note_id=self.delivery_note_id,
            purchase_order_item_id=self.purchase_order_item_id,
            item_id=self.item_id,
            quantity_delivered=self.quantity_delivered,
            quantity_ordered=self.quantity_ordered,
            condition=self.condition,
            notes=self.notes,
        )

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def item_condition(self) -> ItemCondition:
        return ItemCondition(value=self.condition)

    @property
    def discrepancy(self) -> QuantityDiscrepancy:
        return QuantityDiscrepancy.create(self.quantity_ordered, self.quantity_delivered)

    @property
    def effective_quantity(self) -> int:
        """Units that count towards receipt totals. Rejected goods count as zero."""
        if self.is_rejected():
            return 0
        return self.quantity_delivered

    def has_issues(self) -> bool:
        return self.item_condition.has_issues() or self.discrepancy.has_discrepancy()

    def is_rejected(self) -> bool:
        return self.item_condition.is_rejected()

    def has_exact_quantity(self) -> bool:
        return not self.discrepancy.has_discrepancy()


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@delivery.aggregate
class DeliveryNote:
    delivery_note_number = String(required=True, max_length=100, unique=True)
    purchase_order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    received_by = String(required=True, max_length=255)
    delivery_date = DateTime(required=True)
    status = String(
        max_length=20,
        choices=NoteStatus,
        default=NoteStatus.DRAFT.value,
    )
    notes = Text()
    lines = HasMany(DeliveryNoteItem)
    confirmed_by = String(max_length=255)
    confirmed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.pre
    def confirmed_note_cannot_be_modified(self):
        if self.status == NoteStatus.CONFIRMED.value:
            raise ImmutableEntityError(
                f"Cannot modify delivery note {self.delivery_note_number} - already confirmed"
            )

    @invariant.pre
    def changes_go_through_note_operations(self):
        if not getattr(self, "_changing", False):
            raise ImmutableEntityError(
                f"Delivery note {self.delivery_note_number} can only be changed through update_item or confirm"
            )

    @invariant.post
    def notes_must_not_be_blank(self):
        if self.notes is not None and not self.notes.strip():
            raise ValidationError({"notes": ["Delivery note notes cannot be empty"]})

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        delivery_note_number: str,
        purchase_order_id: str,
        vendor_id: str,
        received_by: str,
        delivery_date: datetime,
        items: list[DeliveryNoteItem],
        notes: str | None = None,
        id: str | None = None,
    ) -> "DeliveryNote":
        """Create a new DRAFT delivery note.

        ``items`` must already be bound to ``id``, so callers that build items
        first mint the note id up front and pass it here.
        """
        now = datetime.now(UTC)
        return cls._build(
            id=id or str(uuid4()),
            delivery_note_number=delivery_note_number,
            purchase_order_id=purchase_order_id,
            vendor_id=vendor_id,
            received_by=received_by,
            delivery_date=delivery_date,
            items=items,
            notes=notes,
            status=DeliveryNoteStatus.draft(),
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def reconstitute(
        cls,
        id: str,
        delivery_note_number: str,
        purchase_order_id: str,
        vendor_id: str,
        received_by: str,
        delivery_date: datetime,
        status: str,
        items: list[DeliveryNoteItem],
        created_at: datetime,
        updated_at: datetime,
        notes: str | None = None,
        confirmed_by: str | None = None,
        confirmed_at: datetime | None = None,
    ) -> "DeliveryNote":
        """Rebuild a note from stored state. The status is taken as given."""
        if _is_blank(id):
            raise ValidationError({"id": ["Delivery note ID is required"]})
        if _is_blank(status):
            raise ValidationError({"status": ["Delivery note status is required"]})
        return cls._build(
            id=id,
            delivery_note_number=delivery_note_number,
            purchase_order_id=purchase_order_id,
            vendor_id=vendor_id,
            received_by=received_by,
            delivery_date=delivery_date,
            items=items,
            notes=notes,
            status=DeliveryNoteStatus.from_string(status),
            created_at=created_at,
            updated_at=updated_at,
            confirmed_by=confirmed_by,
            confirmed_at=confirmed_at,
        )

    @classmethod
    def _build(cls, *, items: list[DeliveryNoteItem], status: DeliveryNoteStatus, notes: str | None, **fields):
        errors: dict[str, list[str]] = {}
        if _is_blank(fields["delivery_note_number"]):
            errors["delivery_note_number"] = ["Delivery note number is required"]
        if _is_blank(fields["purchase_order_id"]):
            errors["purchase_order_id"] = ["Purchase order ID is required"]
        if _is_blank(fields["vendor_id"]):
            errors["vendor_id"] = ["Vendor ID is required"]
        if _is_blank(fields["received_by"]):
            errors["received_by"] = ["Received by is required"]
        if not isinstance(fields["delivery_date"], datetime):
            errors["delivery_date"] = ["Valid delivery date is required"]
        if notes is not None and not notes.strip():
            errors["notes"] = ["Delivery note notes cannot be empty"]
        if errors:
            raise ValidationError(errors)

        if not items:
            raise BusinessRuleViolationError({"items": ["Delivery note must have at least one item"]})
        note_id = str(fields["id"])
        for item in items:
            if str(item.delivery_note_id) != note_id:
                raise BusinessRuleViolationError(
                    {"items": [f"Item {item.id} does not belong to delivery note {note_id}"]}
                )

        return cls(
            **fields,
            status=status.value,
            notes=notes.strip() if notes else None,
            lines=list(items),
        )

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------
    @property
    def note_status(self) -> DeliveryNoteStatus:
        return DeliveryNoteStatus(value=self.status)

    def is_draft(self) -> bool:
        return self.note_status.is_draft()

    def is_confirmed(self) -> bool:
        return self.note_status.is_confirmed()

    def _assert_modifiable(self) -> None:
        if self.is_confirmed():
            raise ImmutableEntityError(
                f"Cannot modify delivery note {self.delivery_note_number} - already confirmed"
            )

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    @contextmanager
    def _change(self):
        self._changing = True
        try:
            with atomic_change(self):
                yield
        finally:
            self._changing = False

    def update_item(self, replacement: DeliveryNoteItem) -> None:
        """Swap an existing item for ``replacement``, matched by id."""
        self._assert_modifiable()

        existing = self._find_item(replacement.id)
        if existing is None:
            raise ValidationError(
                {"items": [f"Item {replacement.id} not found in delivery note {self.delivery_note_number}"]}
            )
        if str(replacement.delivery_note_id) != str(self.id):
            raise ValidationError({"items": [f"Item {replacement.id} does not belong to delivery note {self.id}"]})

        with self._change():
            existing.purchase_order_item_id = replacement.purchase_order_item_id
            existing.item_id = replacement.item_id
            existing.quantity_delivered = replacement.quantity_delivered
            existing.quantity_ordered = replacement.quantity_ordered
            existing.condition = replacement.condition
            existing.notes = replacement.notes
            self.updated_at = datetime.now(UTC)

    def confirm(self, confirmed_by: str | None = None) -> None:
        """Move DRAFT → CONFIRMED. After this the note can no longer change."""
        if self.is_confirmed():
            raise ImmutableEntityError(f"Delivery note {self.delivery_note_number} is already confirmed")
        if not self.items:
            raise BusinessRuleViolationError({"items": ["Cannot confirm delivery note without items"]})

        target = self.note_status.transition_to(DeliveryNoteStatus.confirmed())
        now = datetime.now(UTC)
        with self._change():
            self.status = target.value
            self.confirmed_by = confirmed_by
            self.confirmed_at = now
            self.updated_at = now

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def items(self) -> tuple[DeliveryNoteItem, ...]:
        """The live items, read-only. Assigning to one of them still raises."""
        return tuple(self.lines or [])

    def _find_item(self, item_id: str) -> DeliveryNoteItem | None:
        return next((i for i in (self.lines or []) if str(i.id) == str(item_id)), None)

    def find_item_by_id(self, item_id: str) -> DeliveryNoteItem | None:
        item = self._find_item(item_id)
        return item.snapshot() if item is not None else None

    def get_items(self) -> list[DeliveryNoteItem]:
        """Copies of the items, in insertion order."""
        return [i.snapshot() for i in (self.lines or [])]

    @property
    def item_count(self) -> int:
        return len(self.lines or [])

    @property
    def total_quantity_delivered(self) -> int:
        return sum(i.quantity_delivered for i in (self.lines or []))

    @property
    def total_effective_quantity(self) -> int:
        return sum(i.effective_quantity for i in (self.lines or []))

    def has_any_issues(self) -> bool:
        return any(i.has_issues() for i in (self.lines or []))

    def get_items_with_issues(self) -> list[DeliveryNoteItem]:
        return [i.snapshot() for i in (self.lines or []) if i.has_issues()]

    def can_be_confirmed(self) -> bool:
        return self.is_draft() and self.item_count > 0
