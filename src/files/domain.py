"""Files bounded context — Uploaded Documents and their Lifecycle.

Tracks files stored in object storage: content checksum, size and type policy,
virus-scan lifecycle, version history on replacement, and links to the
business records (invoices, delivery notes, ...) they are attached to.
"""

from protean.domain import Domain
from shared.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

files = Domain(name="files")
