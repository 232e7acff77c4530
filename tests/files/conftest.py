import pytest
from protean.integrations.pytest import DomainFixture

from files.scanner import reset_scanner
from files.storage import reset_storage


@pytest.fixture(scope="session")
def files_bed():
    from files.domain import files

    bed = DomainFixture(files)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(files_bed):
    with files_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _reset_adapters():
    """Fresh storage and scanner for every test."""
    reset_storage()
    reset_scanner()
    yield
    reset_storage()
    reset_scanner()
