"""Tests for the fake virus scanner and its factory."""

import pytest
from files.scanner import get_scanner, reset_scanner
from files.scanner.fake_adapter import EICAR_SIGNATURE, FakeVirusScanner


class TestFakeVirusScanner:
    def test_ordinary_content_is_clean(self):
        report = FakeVirusScanner().scan("k", b"just an invoice")
        assert report["is_clean"] is True
        assert report["threat_name"] is None
        assert report["scanned_at"] is not None

    def test_eicar_signature_is_infected(self):
        report = FakeVirusScanner().scan("k", b"prefix " + EICAR_SIGNATURE + b" suffix")
        assert report["is_clean"] is False
        assert report["threat_name"] == "Eicar-Test-Signature"

    def test_configured_infection(self):
        scanner = FakeVirusScanner()
        scanner.configure(infected=True, threat_name="Trojan.Generic")
        report = scanner.scan("k", b"harmless")
        assert report["is_clean"] is False
        assert report["threat_name"] == "Trojan.Generic"

    def test_records_scans_and_quarantines(self):
        scanner = FakeVirusScanner()
        scanner.scan("a", b"1")
        scanner.scan("b", b"2")
        scanner.quarantine("b")
        assert scanner.scanned_keys == ["a", "b"]
        assert scanner.quarantined_keys == ["b"]


class TestScannerFactory:
    def test_singleton(self):
        assert get_scanner() is get_scanner()
        assert isinstance(get_scanner(), FakeVirusScanner)

    def test_unknown_adapter_raises(self, monkeypatch):
        monkeypatch.setenv("VIRUS_SCANNER_ADAPTER", "clamav")
        reset_scanner()
        with pytest.raises(ValueError) as exc:
            get_scanner()
        assert "Unknown virus scanner adapter: clamav" in str(exc.value)
