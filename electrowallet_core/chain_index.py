"""
Read-only chain-index backend for ElectroWallet.

Talks to an Esplora-compatible index (Blockstream by default):

    GET /address/{addr}       chain_stats / mempool_stats funded & spent sums
    GET /address/{addr}/txs   transactions with vin prevouts and vouts

Balance is ``funded − spent`` over confirmed plus mempool stats.  A
transaction is ``received`` when the address gains value net of what it
spent in the same transaction, otherwise ``sent``.

There is no write path: signing and broadcasting real transactions is not
implemented, so both write operations raise :class:`UnsupportedOperation`
for any positive amount (non-positive amounts fail the shared
:class:`InsufficientFunds` precondition first, as on every backend).
Read failures degrade to ``0`` / ``[]``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from electrowallet_core.address import Network
from electrowallet_core.errors import UnsupportedOperation
from electrowallet_core.ledger import LedgerBackend, require_positive
from electrowallet_core.models import Direction, Transaction, TxStatus, parse_units

logger = logging.getLogger("electrowallet_index")

DEFAULT_INDEX_URLS = {
    Network.TESTNET: "https://blockstream.info/testnet/api",
    Network.MAINNET: "https://blockstream.info/api",
}
DEFAULT_TIMEOUT = 15.0


def _stats_balance(stats: Any) -> int:
    if not isinstance(stats, dict):
        return 0
    funded = parse_units(stats.get("funded_txo_sum") or 0, "funded_txo_sum")
    spent = parse_units(stats.get("spent_txo_sum") or 0, "spent_txo_sum")
    return funded - spent


def index_tx_to_transaction(raw: dict[str, Any], address: str) -> Transaction:
    """Project one index transaction onto *address*."""
    vin = raw.get("vin") or []
    vout = raw.get("vout") or []

    received = 0
    first_foreign_out = None
    for out in vout:
        owner = out.get("scriptpubkey_address")
        if owner == address:
            received += parse_units(out.get("value") or 0, "value")
        elif owner and first_foreign_out is None:
            first_foreign_out = owner

    spent = 0
    first_foreign_in = None
    for inp in vin:
        prevout = inp.get("prevout") or {}
        owner = prevout.get("scriptpubkey_address")
        if owner == address:
            spent += parse_units(prevout.get("value") or 0, "value")
        elif owner and first_foreign_in is None:
            first_foreign_in = owner

    net = received - spent
    direction = Direction.RECEIVED if net >= 0 else Direction.SENT
    if direction is Direction.SENT:
        counterparty = first_foreign_out or address
    else:
        counterparty = first_foreign_in or address

    status = raw.get("status") or {}
    confirmed = bool(status.get("confirmed"))
    if confirmed:
        height = status.get("block_height")
        confirmations = max(1, int(height)) if height is not None else 1
    else:
        confirmations = 0

    return Transaction(
        id=str(raw["txid"]),
        amount=abs(net),
        fee=parse_units(raw.get("fee") or 0, "fee"),
        timestamp=float(status.get("block_time") or 0),
        confirmations=confirmations,
        direction=direction,
        counterparty=counterparty,
        status=TxStatus.CONFIRMED if confirmed else TxStatus.PENDING,
    )


class ChainIndexLedger(LedgerBackend):
    """Read-only view of a public chain through an index service."""

    name = "index"
    read_only = True

    def __init__(
        self,
        base_url: str | None = None,
        *,
        network: Network = Network.TESTNET,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = (base_url or DEFAULT_INDEX_URLS[network]).rstrip("/")
        self.network = network
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str) -> Any:
        """GET ``base_url + path``; ``None`` on any transport, status or parse failure."""
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().get(url) as resp:
                if resp.status // 100 != 2:
                    logger.warning(f"GET {url} returned {resp.status}")
                    return None
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning(f"GET {url} failed ({exc!r})")
            return None

    async def get_balance(self, address: str) -> int:
        info = await self._get_json(f"/address/{address}")
        if not isinstance(info, dict):
            return 0
        try:
            return _stats_balance(info.get("chain_stats")) + _stats_balance(info.get("mempool_stats"))
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning(f"Malformed address stats for {address} ({exc!r})")
            return 0

    async def get_transactions(self, address: str) -> list[Transaction]:
        data = await self._get_json(f"/address/{address}/txs")
        if not isinstance(data, list):
            return []
        try:
            return [index_tx_to_transaction(raw, address) for raw in data]
        except (KeyError, TypeError, ValueError, OverflowError, AttributeError) as exc:
            logger.warning(f"Malformed transaction list for {address} ({exc!r})")
            return []

    async def send_transaction(
        self, sender: str, recipient: str, amount: int, private_key: bytes,
    ) -> str:
        require_positive(amount)
        raise UnsupportedOperation("Chain index backend is read-only; broadcasting is not supported")

    async def credit_funds(self, recipient: str, amount: int) -> str:
        require_positive(amount)
        raise UnsupportedOperation("Chain index backend is read-only; it has no faucet")
