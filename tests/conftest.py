"""
Shared pytest fixtures for the ElectroWallet test suite.
"""

import pytest

from electrowallet_core.coordinator import WalletCoordinator
from electrowallet_core.keystore import MemorySecretStore
from electrowallet_core.ledger import LocalLedger
from electrowallet_core.storage import WalletStore


@pytest.fixture
def store():
    """Process-local store that disappears after the test."""
    s = WalletStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def local_ledger(store):
    """Local backend with no simulated latency."""
    return LocalLedger(store, latency=0)


@pytest.fixture
def secrets():
    return MemorySecretStore()


@pytest.fixture
def coordinator(local_ledger, secrets, store):
    """Coordinator over a fresh local ledger."""
    return WalletCoordinator(local_ledger, secrets, store)
