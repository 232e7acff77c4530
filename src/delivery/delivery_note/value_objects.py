"""Delivery note value objects.

Condition, status and quantity comparison are modelled as immutable value
objects so that aggregate methods can reason about them without poking at
raw strings and integers.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from delivery.domain import delivery
from shared.errors import InvalidStateTransitionError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Condition(Enum):
    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    PARTIAL = "PARTIAL"
    REJECTED = "REJECTED"


class NoteStatus(Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


_VALID_TRANSITIONS = {
    NoteStatus.DRAFT: {NoteStatus.CONFIRMED},
    NoteStatus.CONFIRMED: set(),  # terminal
}

_ISSUE_CONDITIONS = {Condition.DAMAGED, Condition.PARTIAL, Condition.REJECTED}


# ---------------------------------------------------------------------------
# Item condition
# ---------------------------------------------------------------------------
@delivery.value_object(part_of="DeliveryNote")
class ItemCondition:
    """Physical condition of a delivered line item."""

    value = String(required=True, max_length=20, choices=Condition)

    @classmethod
    def from_string(cls, value: str) -> "ItemCondition":
        """Parse a condition string, rejecting anything outside the four known values."""
        if value not in {c.value for c in Condition}:
            valid = ", ".join(c.value for c in Condition)
            raise ValidationError({"condition": [f"Invalid item condition: {value}. Valid conditions are: {valid}"]})
        return cls(value=value)

    @classmethod
    def good(cls) -> "ItemCondition":
        return cls(value=Condition.GOOD.value)

    @classmethod
    def damaged(cls) -> "ItemCondition":
        return cls(value=Condition.DAMAGED.value)

    @classmethod
    def partial(cls) -> "ItemCondition":
        return cls(value=Condition.PARTIAL.value)

    @classmethod
    def rejected(cls) -> "ItemCondition":
        return cls(value=Condition.REJECTED.value)

    def is_good(self) -> bool:
        return self.value == Condition.GOOD.value

    def has_issues(self) -> bool:
        return Condition(self.value) in _ISSUE_CONDITIONS

    def is_rejected(self) -> bool:
        return self.value == Condition.REJECTED.value

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Delivery note status
# ---------------------------------------------------------------------------
@delivery.value_object(part_of="DeliveryNote")
class DeliveryNoteStatus:
    """Lifecycle status of a delivery note: DRAFT, then CONFIRMED for good."""

    value = String(required=True, max_length=20, choices=NoteStatus)

    @classmethod
    def from_string(cls, value: str) -> "DeliveryNoteStatus":
        if value not in {s.value for s in NoteStatus}:
            valid = ", ".join(s.value for s in NoteStatus)
            raise ValidationError({"status": [f"Invalid delivery note status: {value}. Valid statuses are: {valid}"]})
        return cls(value=value)

    @classmethod
    def draft(cls) -> "DeliveryNoteStatus":
        return cls(value=NoteStatus.DRAFT.value)

    @classmethod
    def confirmed(cls) -> "DeliveryNoteStatus":
        return cls(value=NoteStatus.CONFIRMED.value)

    def can_transition_to(self, target: "DeliveryNoteStatus") -> bool:
        return NoteStatus(target.value) in _VALID_TRANSITIONS[NoteStatus(self.value)]

    def transition_to(self, target: "DeliveryNoteStatus") -> "DeliveryNoteStatus":
        """Return ``target`` if the move is allowed, raise otherwise."""
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(f"Cannot transition from {self.value} to {target.value}")
        return target

    def is_draft(self) -> bool:
        return self.value == NoteStatus.DRAFT.value

    def is_confirmed(self) -> bool:
        return self.value == NoteStatus.CONFIRMED.value

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Quantity discrepancy
# ---------------------------------------------------------------------------
@delivery.value_object(part_of="DeliveryNote")
class QuantityDiscrepancy:
    """Ordered versus delivered quantity for one line.

    A positive ``discrepancy`` means fewer units arrived than were ordered.
    """

    ordered_quantity = Integer(required=True)
    delivered_quantity = Integer(required=True)

    @invariant.post
    def ordered_quantity_must_not_be_negative(self):
        if self.ordered_quantity is not None and self.ordered_quantity < 0:
            raise ValidationError({"ordered_quantity": ["Ordered quantity cannot be negative"]})

    @invariant.post
    def delivered_quantity_must_not_be_negative(self):
        if self.delivered_quantity is not None and self.delivered_quantity < 0:
            raise ValidationError({"delivered_quantity": ["Delivered quantity cannot be negative"]})

    @classmethod
    def create(cls, ordered_quantity: int, delivered_quantity: int) -> "QuantityDiscrepancy":
        return cls(ordered_quantity=ordered_quantity, delivered_quantity=delivered_quantity)

    @classmethod
    def exact_match(cls, quantity: int) -> "QuantityDiscrepancy":
        return cls(ordered_quantity=quantity, delivered_quantity=quantity)

    @property
    def discrepancy(self) -> int:
        return self.ordered_quantity - self.delivered_quantity

    @property
    def absolute_discrepancy(self) -> int:
        return abs(self.discrepancy)

    @property
    def percentage(self) -> float:
        """Discrepancy as a percentage of the ordered quantity (0 when nothing was ordered)."""
        if self.ordered_quantity == 0:
            return 0.0
        return self.discrepancy / self.ordered_quantity * 100

    def has_discrepancy(self) -> bool:
        return self.discrepancy != 0

    def is_under_delivery(self) -> bool:
        return self.discrepancy > 0

    def is_over_delivery(self) -> bool:
        return self.discrepancy < 0

    def is_complete_delivery(self) -> bool:
        return self.delivered_quantity >= self.ordered_quantity

    def is_within_threshold(self, threshold_percent: float) -> bool:
        return abs(self.percentage) <= threshold_percent

    @property
    def description(self) -> str:
        if not self.has_discrepancy():
            return "Exact match"
        direction = "under" if self.is_under_delivery() else "over"
        return f"{self.absolute_discrepancy} units {direction}-delivered ({abs(self.percentage):.2f}%)"
