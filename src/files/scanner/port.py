"""Virus scanner port — abstract interface for malware scanning engines."""

from abc import ABC, abstractmethod


class VirusScannerPort(ABC):
    """Abstract interface for virus scanner adapters."""

    @abstractmethod
    def scan(self, key: str, content: bytes) -> dict:
        """Scan the bytes of the object stored under ``key``.

        Returns:
            dict with keys: is_clean (bool), threat_name (str | None), scanned_at (datetime)
        """
        ...

    @abstractmethod
    def quarantine(self, key: str) -> None:
        """Move an infected object out of reach of downloads."""
        ...
