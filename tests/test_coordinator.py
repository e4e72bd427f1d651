"""
Tests for the wallet coordinator (coordinator.py).

Covers:
  - Create / restore / delete lifecycle and state
  - Deterministic restore from a phrase
  - Refresh semantics, idempotence and error capture
  - Send and faucet flows over the local backend
  - Persistence through the wallet store
"""

from __future__ import annotations

import pytest

from electrowallet_core.address import Network, is_valid_address
from electrowallet_core.chain_index import ChainIndexLedger
from electrowallet_core.coordinator import WalletCoordinator, WalletState
from electrowallet_core.errors import (
    InsufficientFunds,
    InvalidMnemonic,
    NoWallet,
    PrivateKeyNotFound,
    UnsupportedOperation,
    WalletError,
)
from electrowallet_core.keystore import MemorySecretStore
from electrowallet_core.ledger import LedgerBackend, LocalLedger
from electrowallet_core.models import Direction
from electrowallet_core.storage import WalletStore

ABANDON_PHRASE = " ".join(["abandon"] * 11 + ["about"])


class _FailingBackend(LedgerBackend):
    name = "failing"

    async def get_balance(self, address):
        raise WalletError("backend down")

    async def get_transactions(self, address):
        return []

    async def send_transaction(self, sender, recipient, amount, private_key):
        raise WalletError("backend down")

    async def credit_funds(self, recipient, amount):
        raise WalletError("backend down")


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle
# ═══════════════════════════════════════════════════════════════════

class TestLifecycle:
    def test_initial_state(self, coordinator):
        assert coordinator.state is WalletState.NO_WALLET
        assert not coordinator.has_wallet
        assert coordinator.wallet is None
        assert coordinator.transactions == []

    @pytest.mark.asyncio
    async def test_create_generates_phrase(self, coordinator, secrets):
        wallet = await coordinator.create_wallet()
        assert coordinator.state is WalletState.ACTIVE
        assert is_valid_address(wallet.address, Network.TESTNET)
        assert wallet.balance == 0
        assert wallet.label == "My Wallet"
        assert len(bytes.fromhex(wallet.public_key)) == 32
        phrase = coordinator.reveal_mnemonic()
        assert len(phrase.split()) == 12
        assert len(secrets.get_private_key(wallet.address)) == 32

    @pytest.mark.asyncio
    async def test_create_24_words(self, local_ledger, secrets, store):
        coord = WalletCoordinator(local_ledger, secrets, store, mnemonic_strength=256)
        await coord.create_wallet()
        assert len(coord.reveal_mnemonic().split()) == 24

    @pytest.mark.asyncio
    async def test_create_with_phrase_and_label(self, coordinator):
        wallet = await coordinator.create_wallet(ABANDON_PHRASE, label="Savings")
        assert wallet.label == "Savings"
        assert coordinator.reveal_mnemonic() == ABANDON_PHRASE

    @pytest.mark.asyncio
    async def test_create_persists_record(self, coordinator, store):
        wallet = await coordinator.create_wallet()
        assert store.load_wallet() == wallet

    @pytest.mark.asyncio
    async def test_create_replaces_existing(self, coordinator):
        first = await coordinator.create_wallet()
        second = await coordinator.create_wallet()
        assert first.address != second.address
        assert coordinator.wallet is second

    @pytest.mark.asyncio
    async def test_delete(self, coordinator, secrets, store):
        wallet = await coordinator.create_wallet()
        await coordinator.delete_wallet()
        assert coordinator.state is WalletState.NO_WALLET
        assert coordinator.transactions == []
        assert store.load_wallet() is None
        assert secrets.get_private_key(wallet.address) is None
        assert secrets.get_mnemonic(wallet.address) is None

    @pytest.mark.asyncio
    async def test_delete_without_wallet_is_noop(self, coordinator):
        await coordinator.delete_wallet()
        assert coordinator.state is WalletState.NO_WALLET

    def test_reveal_without_wallet(self, coordinator):
        with pytest.raises(NoWallet):
            coordinator.reveal_mnemonic()

    @pytest.mark.asyncio
    async def test_initialize_loads_and_refreshes(self, local_ledger, secrets, store):
        first = WalletCoordinator(local_ledger, secrets, store)
        wallet = await first.create_wallet()
        await local_ledger.credit_funds(wallet.address, 5000)

        second = WalletCoordinator(local_ledger, secrets, store)
        loaded = await second.initialize()
        assert loaded.address == wallet.address
        assert loaded.balance == 5000
        assert len(second.transactions) == 1

    @pytest.mark.asyncio
    async def test_initialize_without_record(self, coordinator):
        assert await coordinator.initialize() is None
        assert coordinator.state is WalletState.NO_WALLET


# ═══════════════════════════════════════════════════════════════════
#  Restore
# ═══════════════════════════════════════════════════════════════════

class TestRestore:
    @pytest.mark.asyncio
    async def test_deterministic_across_stores(self):
        addresses = set()
        for _ in range(2):
            with WalletStore(":memory:") as s:
                coord = WalletCoordinator(LocalLedger(s, latency=0), MemorySecretStore(), s)
                addresses.add((await coord.restore_wallet(ABANDON_PHRASE)).address)
        assert len(addresses) == 1

    @pytest.mark.asyncio
    async def test_whitespace_normalised(self, coordinator):
        plain = (await coordinator.restore_wallet(ABANDON_PHRASE)).address
        messy = "  " + ABANDON_PHRASE.replace(" ", "   \n") + " "
        assert (await coordinator.restore_wallet(messy)).address == plain
        assert coordinator.reveal_mnemonic() == ABANDON_PHRASE

    @pytest.mark.asyncio
    async def test_passphrase_changes_address(self, coordinator):
        a = (await coordinator.restore_wallet(ABANDON_PHRASE)).address
        b = (await coordinator.restore_wallet(ABANDON_PHRASE, passphrase="TREZOR")).address
        assert a != b

    @pytest.mark.asyncio
    async def test_network_changes_address(self, local_ledger, secrets, store):
        coord = WalletCoordinator(local_ledger, secrets, store, network=Network.MAINNET)
        wallet = await coord.restore_wallet(ABANDON_PHRASE)
        assert wallet.address.startswith("1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 11, 13, 23, 25])
    async def test_bad_word_count(self, coordinator, count):
        with pytest.raises(InvalidMnemonic):
            await coordinator.restore_wallet(" ".join(["abandon"] * count))
        assert coordinator.state is WalletState.NO_WALLET

    @pytest.mark.asyncio
    async def test_restored_wallet_sees_history(self, coordinator, local_ledger):
        wallet = await coordinator.restore_wallet(ABANDON_PHRASE)
        await local_ledger.credit_funds(wallet.address, 1234)
        await coordinator.delete_wallet()
        restored = await coordinator.restore_wallet(ABANDON_PHRASE)
        await coordinator.refresh()
        assert restored.balance == 1234


# ═══════════════════════════════════════════════════════════════════
#  Refresh / send / fund
# ═══════════════════════════════════════════════════════════════════

class TestLedgerFlows:
    @pytest.mark.asyncio
    async def test_refresh_without_wallet(self, coordinator):
        assert await coordinator.refresh() is None

    @pytest.mark.asyncio
    async def test_fund_and_send(self, coordinator, local_ledger):
        await coordinator.create_wallet()
        await coordinator.add_funds(100_000)
        assert coordinator.wallet.balance == 100_000

        tx_id = await coordinator.send("mRecipient", 30_000)
        assert coordinator.wallet.balance == 69_900
        assert coordinator.transactions[0].id == tx_id
        assert coordinator.transactions[0].direction is Direction.SENT
        assert await local_ledger.get_balance("mRecipient") == 30_000

    @pytest.mark.asyncio
    async def test_refresh_idempotent(self, coordinator):
        await coordinator.create_wallet()
        await coordinator.add_funds(500)
        first = (coordinator.wallet.balance, list(coordinator.transactions))
        await coordinator.refresh()
        second = (coordinator.wallet.balance, list(coordinator.transactions))
        assert first == second

    @pytest.mark.asyncio
    async def test_refresh_persists_balance(self, coordinator, store):
        await coordinator.create_wallet()
        await coordinator.add_funds(777)
        assert store.load_wallet().balance == 777

    @pytest.mark.asyncio
    async def test_refresh_sees_external_entries(self, coordinator, local_ledger):
        wallet = await coordinator.create_wallet()
        await local_ledger.send_transaction("mSomeone", wallet.address, 50, b"\x00" * 32)
        await coordinator.refresh()
        assert coordinator.wallet.balance == 50

    @pytest.mark.asyncio
    async def test_send_without_wallet(self, coordinator):
        with pytest.raises(NoWallet):
            await coordinator.send("mX", 10)

    @pytest.mark.asyncio
    async def test_fund_without_wallet(self, coordinator):
        with pytest.raises(NoWallet):
            await coordinator.add_funds(10)

    @pytest.mark.asyncio
    async def test_send_without_private_key(self, coordinator, secrets):
        wallet = await coordinator.create_wallet()
        secrets.delete_private_key(wallet.address)
        with pytest.raises(PrivateKeyNotFound):
            await coordinator.send("mX", 10)

    @pytest.mark.asyncio
    async def test_send_zero_rejected(self, coordinator, local_ledger):
        await coordinator.create_wallet()
        with pytest.raises(InsufficientFunds):
            await coordinator.send("mX", 0)
        assert local_ledger.entries() == []

    @pytest.mark.asyncio
    async def test_send_over_index_unsupported(self, secrets, store):
        coord = WalletCoordinator(ChainIndexLedger("http://127.0.0.1:1"), secrets, store)
        await coord.create_wallet()
        with pytest.raises(UnsupportedOperation):
            await coord.send("mX", 10)

    @pytest.mark.asyncio
    async def test_refresh_error_captured(self, secrets, store):
        coord = WalletCoordinator(_FailingBackend(), secrets, store)
        wallet = await coord.create_wallet()
        assert await coord.refresh() is wallet
        assert coord.last_error == "backend down"
        assert wallet.balance == 0

    @pytest.mark.asyncio
    async def test_snapshot(self, coordinator):
        assert coordinator.snapshot() == {"state": "no_wallet", "wallet": None, "transactions": []}
        await coordinator.create_wallet()
        await coordinator.add_funds(10)
        snap = coordinator.snapshot()
        assert snap["state"] == "active"
        assert snap["wallet"]["balance"] == 10
        assert snap["transactions"][0]["direction"] == "received"
