"""Object storage abstraction — pluggable blob storage for file content."""

import os

_storage_instance = None


def get_storage():
    """Return the configured object storage adapter (singleton).

    Uses InMemoryObjectStorage by default. In production, configure via
    FILE_STORAGE_ADAPTER and FILE_STORAGE_BUCKET environment variables.
    """
    global _storage_instance
    if _storage_instance is None:
        adapter = os.environ.get("FILE_STORAGE_ADAPTER", "memory")
        bucket = os.environ.get("FILE_STORAGE_BUCKET", "procurement-files")
        if adapter == "memory":
            from files.storage.fake_adapter import InMemoryObjectStorage

            _storage_instance = InMemoryObjectStorage(bucket=bucket)
        else:
            raise ValueError(f"Unknown file storage adapter: {adapter}")
    return _storage_instance


def reset_storage():
    """Reset the storage singleton (useful for testing)."""
    global _storage_instance
    _storage_instance = None
