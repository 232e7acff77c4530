"""Virus scanner abstraction — pluggable malware scanning for uploaded files."""

import os

_scanner_instance = None


def get_scanner():
    """Return the configured virus scanner adapter (singleton).

    Uses FakeVirusScanner by default. In production, configure via
    VIRUS_SCANNER_ADAPTER environment variable.
    """
    global _scanner_instance
    if _scanner_instance is None:
        adapter = os.environ.get("VIRUS_SCANNER_ADAPTER", "fake")
        if adapter == "fake":
            from files.scanner.fake_adapter import FakeVirusScanner

            _scanner_instance = FakeVirusScanner()
        else:
            raise ValueError(f"Unknown virus scanner adapter: {adapter}")
    return _scanner_instance


def reset_scanner():
    """Reset the scanner singleton (useful for testing)."""
    global _scanner_instance
    _scanner_instance = None
