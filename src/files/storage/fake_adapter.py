"""In-memory object storage — dictionary-backed storage for tests and development.

Presigned URLs are deterministic fakes that embed the bucket, key and
expiry. Configurable failure behaviour for exercising error paths.
"""

from datetime import UTC, datetime
from urllib.parse import quote

from files.storage.port import DEFAULT_URL_EXPIRY_SECONDS, ObjectStoragePort, StorageError


class InMemoryObjectStorage(ObjectStoragePort):
    """Object storage that keeps every object in a dict."""

    def __init__(self, bucket: str = "procurement-files"):
        self.bucket = bucket
        self.objects: dict[str, dict] = {}
        self.should_succeed = True
        self.failure_reason = "Storage unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Storage unavailable"):
        """Configure the fake storage behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check_available(self) -> None:
        if not self.should_succeed:
            raise StorageError(self.failure_reason)

    def _url(self, key: str, operation: str, expires_in: int) -> str:
        return (
            f"https://{self.bucket}.storage.example.com/{quote(key)}"
            f"?X-Operation={operation}&X-Expires={expires_in}"
        )

    def upload(self, key: str, content: bytes, content_type: str) -> None:
        self._check_available()
        self.objects[key] = {
            "content": bytes(content),
            "content_type": content_type,
            "last_modified": datetime.now(UTC),
        }

    def download(self, key: str) -> bytes:
        self._check_available()
        if key not in self.objects:
            raise KeyError(key)
        return self.objects[key]["content"]

    def get_presigned_upload_url(
        self, key: str, _content_type: str, expires_in: int = DEFAULT_URL_EXPIRY_SECONDS
    ) -> str:
        self._check_available()
        return self._url(key, "put", expires_in)

    def get_presigned_download_url(self, key: str, expires_in: int = DEFAULT_URL_EXPIRY_SECONDS) -> str:
        self._check_available()
        return self._url(key, "get", expires_in)

    def delete(self, key: str) -> None:
        self._check_available()
        self.objects.pop(key, None)

    def exists(self, key: str) -> bool:
        self._check_available()
        return key in self.objects

    def get_metadata(self, key: str) -> dict:
        self._check_available()
        if key not in self.objects:
            raise KeyError(key)
        stored = self.objects[key]
        return {
            "content_type": stored["content_type"],
            "content_length": len(stored["content"]),
            "last_modified": stored["last_modified"],
        }
