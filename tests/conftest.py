"""
Pytest configuration and shared fixtures for pykadm5 tests.
"""

from typing import Iterator

import pytest

from pykadm5.admin.handle import KAdmin, connect_with_password
from pykadm5.admin.sync import SyncKAdmin
from pykadm5.native.library import Kadm5Library, KAdm5Variant
from tests.fake_kadm5 import FakeKadm5


# =============================================================================
# REALM AND CREDENTIAL FIXTURES
# =============================================================================


@pytest.fixture
def realm() -> str:
    """Realm served by the fake KDC."""
    return "EXAMPLE.ORG"


@pytest.fixture
def admin_name(realm: str) -> str:
    """Admin principal known to the fake KDC."""
    return f"admin/admin@{realm}"


@pytest.fixture
def admin_password() -> str:
    """Password of the admin principal."""
    return "adminpass"


# =============================================================================
# LIBRARY FIXTURES
# =============================================================================


@pytest.fixture
def fake(realm: str) -> FakeKadm5:
    """Fresh fake kadm5 library with an in-memory database."""
    return FakeKadm5(realm)


@pytest.fixture
def library(fake: FakeKadm5) -> Kadm5Library:
    """Fake client library."""
    return fake.library(KAdm5Variant.CLIENT)


@pytest.fixture
def server_library(fake: FakeKadm5) -> Kadm5Library:
    """Fake server library."""
    return fake.library(KAdm5Variant.SERVER)


# =============================================================================
# HANDLE FIXTURES
# =============================================================================


@pytest.fixture
def kadmin(library: Kadm5Library, admin_name: str, admin_password: str) -> Iterator[KAdmin]:
    """Connected handle, closed after the test."""
    handle = connect_with_password(admin_name, admin_password, library=library)
    yield handle
    handle.close()


@pytest.fixture
def sync_kadmin(
    library: Kadm5Library, admin_name: str, admin_password: str
) -> Iterator[SyncKAdmin]:
    """Connected thread-safe handle, closed after the test."""
    handle = SyncKAdmin.connect_with_password(admin_name, admin_password, library=library)
    yield handle
    handle.close()


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a real KDC and kadmind"
    )
    config.addinivalue_line(
        "markers", "native: marks tests requiring the MIT kadm5 shared libraries"
    )
