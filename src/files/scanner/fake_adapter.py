"""Fake virus scanner — deterministic scanner for testing and development.

Reports every file clean unless it contains the EICAR test signature or
the scanner has been configured to flag everything.
"""

from datetime import UTC, datetime

from files.scanner.port import VirusScannerPort

EICAR_SIGNATURE = b"EICAR-STANDARD-ANTIVIRUS-TEST-FILE"


class FakeVirusScanner(VirusScannerPort):
    """Fake scanner that reports clean by default."""

    def __init__(self):
        self.infected = False
        self.threat_name = "Eicar-Test-Signature"
        self.scanned_keys: list[str] = []
        self.quarantined_keys: list[str] = []

    def configure(self, infected: bool = False, threat_name: str = "Eicar-Test-Signature"):
        """Configure the fake scanner behavior for testing."""
        self.infected = infected
        self.threat_name = threat_name

    def scan(self, key: str, content: bytes) -> dict:
        self.scanned_keys.append(key)
        is_infected = self.infected or EICAR_SIGNATURE in content
        return {
            "is_clean": not is_infected,
            "threat_name": self.threat_name if is_infected else None,
            "scanned_at": datetime.now(UTC),
        }

    def quarantine(self, key: str) -> None:
        self.quarantined_keys.append(key)
