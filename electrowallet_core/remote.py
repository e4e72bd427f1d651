"""
Remote ledger backend for ElectroWallet.

The entry log lives on a shared ledger service (see ``ledger_server.py``):

    GET  /ledger   full entry log as a JSON array
    POST /tx       append one entry

Balances and history are computed client-side from the full log.

Reads are fail-soft: an unreachable service, a non-2xx status or a body
that does not parse as a list of entries yields an empty ledger, so
callers always have something to render.  Writes are fail-loud and raise
:class:`RemoteUnavailable`, since a dropped transfer must not go unnoticed.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from electrowallet_core.errors import RemoteUnavailable
from electrowallet_core.ledger import (
    DEFAULT_LATENCY,
    FAUCET_ADDRESS,
    LedgerBackend,
    build_entry,
    compute_balance,
    map_entries,
    require_positive,
)
from electrowallet_core.models import LedgerEntry, Transaction

logger = logging.getLogger("electrowallet_remote")

DEFAULT_TIMEOUT = 15.0


class RemoteLedger(LedgerBackend):
    """HTTP client for a shared ledger service at ``base_url``."""

    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        latency: float = DEFAULT_LATENCY,
        api_key: str = "",
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.latency = latency
        self.api_key = api_key
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"X-API-Key": self.api_key} if self.api_key else None
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    # ── HTTP ─────────────────────────────────────────────────────

    async def fetch_entries(self) -> list[LedgerEntry]:
        """Full remote log, or ``[]`` if it cannot be fetched or parsed."""
        url = f"{self.base_url}/ledger"
        try:
            async with self._get_session().get(url) as resp:
                if resp.status // 100 != 2:
                    logger.warning(f"GET {url} returned {resp.status}; treating ledger as empty")
                    return []
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning(f"GET {url} failed ({exc!r}); treating ledger as empty")
            return []

        if not isinstance(data, list):
            logger.warning(f"GET {url} returned a non-list body; treating ledger as empty")
            return []
        try:
            return [LedgerEntry.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, OverflowError, AttributeError) as exc:
            logger.warning(f"GET {url} returned a malformed entry ({exc!r}); treating ledger as empty")
            return []

    async def post_entry(self, entry: LedgerEntry) -> None:
        url = f"{self.base_url}/tx"
        try:
            async with self._get_session().post(url, json=entry.to_dict()) as resp:
                if resp.status // 100 != 2:
                    text = await resp.text()
                    raise RemoteUnavailable(f"POST {url} returned {resp.status}: {text[:200]}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RemoteUnavailable(f"POST {url} failed: {exc!r}") from exc

    # ── contract ─────────────────────────────────────────────────

    async def get_balance(self, address: str) -> int:
        return compute_balance(await self.fetch_entries(), address)

    async def get_transactions(self, address: str) -> list[Transaction]:
        return map_entries(await self.fetch_entries(), address)

    async def send_transaction(
        self, sender: str, recipient: str, amount: int, private_key: bytes,
    ) -> str:
        require_positive(amount)
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        entry = build_entry(sender, recipient, amount)
        await self.post_entry(entry)
        logger.info(f"Remote tx {entry.id[:16]}… {sender} → {recipient} amount={amount} fee={entry.fee}")
        return entry.id

    async def credit_funds(self, recipient: str, amount: int) -> str:
        require_positive(amount)
        entry = build_entry(FAUCET_ADDRESS, recipient, amount, fee=0, confirmed=True)
        await self.post_entry(entry)
        logger.info(f"Remote faucet credit {entry.id[:16]}… → {recipient} amount={amount}")
        return entry.id
