"""Domain error taxonomy shared by the delivery and files contexts.

Four failure kinds, all built on protean's exception hierarchy so that
command handlers and callers can catch them the same way they catch
framework errors:

- ``ValidationError``: a single value or entity failed its own checks.
- ``InvalidStateTransitionError``: a status was asked to move to a state
  that is not reachable from its current state.
- ``ImmutableEntityError``: a mutation was attempted after the aggregate
  crossed its immutability boundary.
- ``BusinessRuleViolationError``: a rule spanning several fields or
  entities failed.

Only ``ValidationError`` (and its subclass ``BusinessRuleViolationError``) is
collected by protean's invariant machinery. The other two propagate out of
``@invariant.pre`` methods unchanged, which is what the immutability guards
rely on.
"""

from protean.exceptions import InvalidOperationError, InvalidStateError, ValidationError

__all__ = [
    "BusinessRuleViolationError",
    "DomainError",
    "ImmutableEntityError",
    "InvalidStateTransitionError",
    "ValidationError",
]


class InvalidStateTransitionError(InvalidStateError):
    """A status value object was asked for a transition its table forbids."""


class ImmutableEntityError(InvalidOperationError):
    """An aggregate or entity was modified after becoming immutable."""


class BusinessRuleViolationError(ValidationError):
    """A cross-field or cross-entity business rule failed."""


DomainError = (
    ValidationError,
    InvalidStateTransitionError,
    ImmutableEntityError,
    BusinessRuleViolationError,
)
