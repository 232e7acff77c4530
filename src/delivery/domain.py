"""Delivery bounded context — Goods Receipt against Purchase Orders.

Records what a vendor actually delivered against a purchase order, line by
line, and guards the draft/confirmed lifecycle of each delivery note. Uses
CQRS: delivery notes are stored as current state and events are raised by the
command handlers after each successful change.
"""

from protean.domain import Domain
from shared.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

delivery = Domain(name="delivery")
