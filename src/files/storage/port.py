"""Object storage port — abstract interface for blob storage backends.

All storage adapters must implement this interface. The service layer
programs against the port; adapters are swapped via configuration. Keys are
the plain strings produced by ``S3ObjectKey``.
"""

from abc import ABC, abstractmethod

DEFAULT_URL_EXPIRY_SECONDS = 3600


class StorageError(Exception):
    """The storage backend could not complete a request."""


class ObjectStoragePort(ABC):
    """Abstract interface for object storage adapters."""

    @abstractmethod
    def upload(self, key: str, content: bytes, content_type: str) -> None:
        """Store ``content`` under ``key``, replacing any existing object."""
        ...

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Fetch the bytes stored under ``key``.

        Raises:
            KeyError: if no object exists for ``key``.
        """
        ...

    @abstractmethod
    def get_presigned_upload_url(
        self, key: str, content_type: str, expires_in: int = DEFAULT_URL_EXPIRY_SECONDS
    ) -> str:
        """Return a time-limited URL a client can PUT the object to."""
        ...

    @abstractmethod
    def get_presigned_download_url(self, key: str, expires_in: int = DEFAULT_URL_EXPIRY_SECONDS) -> str:
        """Return a time-limited URL a client can GET the object from."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the object. Deleting an unknown key is not an error."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def get_metadata(self, key: str) -> dict:
        """Describe a stored object.

        Returns:
            dict with keys: content_type, content_length, last_modified

        Raises:
            KeyError: if no object exists for ``key``.
        """
        ...
