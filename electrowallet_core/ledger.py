"""
Ledger backends for ElectroWallet.

A backend is the source of truth for balances and transaction history.
Three interchangeable implementations share the :class:`LedgerBackend`
contract:

  - :class:`LocalLedger`       on-device append-only entry log (this module)
  - ``RemoteLedger``           shared ledger service over HTTP (remote.py)
  - ``ChainIndexLedger``       read-only public chain index (chain_index.py)

Balance for an address A over the visible entries is always

    Σ amount where to == A  −  Σ (amount + fee) where from == A

recomputed from scratch on every read.  No balance check is made on send:
only non-positive amounts are rejected.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import os
import time
from typing import Iterable

from electrowallet_core.errors import InsufficientFunds
from electrowallet_core.models import Direction, LedgerEntry, Transaction, TxStatus
from electrowallet_core.storage import MEMORY, WalletStore

logger = logging.getLogger("electrowallet_ledger")

FAUCET_ADDRESS = "faucet"
MIN_FEE = 100
FEE_DIVISOR = 1000
DEFAULT_LATENCY = 0.2


# ═══════════════════════════════════════════════════════════════════
#  Shared helpers
# ═══════════════════════════════════════════════════════════════════

def compute_fee(amount: int) -> int:
    return max(MIN_FEE, amount // FEE_DIVISOR)


def new_tx_id() -> str:
    """Random 64-hex-character transaction id."""
    return os.urandom(32).hex()


def require_positive(amount: int) -> None:
    if amount <= 0:
        raise InsufficientFunds()


def compute_balance(entries: Iterable[LedgerEntry], address: str) -> int:
    incoming = 0
    outgoing = 0
    for e in entries:
        if e.recipient == address:
            incoming += e.amount
        if e.sender == address:
            outgoing += e.amount + e.fee
    return incoming - outgoing


def entry_to_transaction(entry: LedgerEntry, address: str) -> Transaction:
    """
    View *entry* from *address*'s side.

    A sender match wins: an entry from A to A is reported once as ``sent``
    with counterparty A.
    """
    outgoing = entry.sender == address
    return Transaction(
        id=entry.id,
        amount=entry.amount,
        fee=entry.fee,
        timestamp=entry.timestamp,
        confirmations=1 if entry.confirmed else 0,
        direction=Direction.SENT if outgoing else Direction.RECEIVED,
        counterparty=entry.recipient if outgoing else entry.sender,
        status=TxStatus.CONFIRMED if entry.confirmed else TxStatus.PENDING,
    )


def map_entries(entries: Iterable[LedgerEntry], address: str) -> list[Transaction]:
    """Entries touching *address*, newest first (later insert wins ties)."""
    relevant = [e for e in entries if address in (e.sender, e.recipient)]
    relevant.reverse()
    relevant.sort(key=lambda e: e.timestamp, reverse=True)
    return [entry_to_transaction(e, address) for e in relevant]


def build_entry(
    sender: str,
    recipient: str,
    amount: int,
    *,
    fee: int | None = None,
    confirmed: bool = False,
    now: float | None = None,
) -> LedgerEntry:
    return LedgerEntry(
        id=new_tx_id(),
        sender=sender,
        recipient=recipient,
        amount=amount,
        fee=compute_fee(amount) if fee is None else fee,
        timestamp=time.time() if now is None else now,
        confirmed=confirmed,
    )


# ═══════════════════════════════════════════════════════════════════
#  Backend contract
# ═══════════════════════════════════════════════════════════════════

class LedgerBackend(abc.ABC):
    """Common contract for all ledger backends."""

    name = "abstract"
    read_only = False

    @abc.abstractmethod
    async def get_balance(self, address: str) -> int:
        ...

    @abc.abstractmethod
    async def get_transactions(self, address: str) -> list[Transaction]:
        ...

    @abc.abstractmethod
    async def send_transaction(
        self, sender: str, recipient: str, amount: int, private_key: bytes,
    ) -> str:
        ...

    @abc.abstractmethod
    async def credit_funds(self, recipient: str, amount: int) -> str:
        ...

    async def close(self) -> None:
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()


# ═══════════════════════════════════════════════════════════════════
#  Local backend
# ═══════════════════════════════════════════════════════════════════

class LocalLedger(LedgerBackend):
    """
    On-device ledger backed by the entry log in a :class:`WalletStore`.

    ``latency`` is slept before each send to mimic a broadcast round-trip.
    """

    name = "local"

    def __init__(self, store: WalletStore | None = None, latency: float = DEFAULT_LATENCY):
        self.store = store if store is not None else WalletStore(MEMORY)
        self.latency = latency

    def entries(self) -> list[LedgerEntry]:
        return self.store.load_entries()

    async def get_balance(self, address: str) -> int:
        return compute_balance(self.entries(), address)

    async def get_transactions(self, address: str) -> list[Transaction]:
        return map_entries(self.entries(), address)

    async def send_transaction(
        self, sender: str, recipient: str, amount: int, private_key: bytes,
    ) -> str:
        require_positive(amount)
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        entry = build_entry(sender, recipient, amount)
        self.store.append_entry(entry)
        logger.info(f"Local tx {entry.id[:16]}… {sender} → {recipient} amount={amount} fee={entry.fee}")
        return entry.id

    async def credit_funds(self, recipient: str, amount: int) -> str:
        require_positive(amount)
        entry = build_entry(FAUCET_ADDRESS, recipient, amount, fee=0, confirmed=True)
        self.store.append_entry(entry)
        logger.info(f"Faucet credit {entry.id[:16]}… → {recipient} amount={amount}")
        return entry.id

    def confirm(self, tx_id: str) -> bool:
        """Mark a pending entry confirmed.  Returns False for an unknown id."""
        return self.store.set_confirmed(tx_id, True)

    def reset(self) -> None:
        self.store.clear_entries()
