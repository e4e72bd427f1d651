"""
Shared ledger service for ElectroWallet's remote backend.

Built on ``aiohttp``.  The log is held in memory; restarting the service
empties it.

Endpoints
---------
GET  /health     Liveness and entry count
GET  /ledger     Full entry log as a JSON array
POST /tx         Append one entry {id, from, to, amount, fee, timestamp, confirmed}
POST /reset      Clear the log (maintenance)

Security
--------
- Optional API key on POST endpoints via the ``X-API-Key`` header,
  compared with ``hmac.compare_digest``.
- Request body size cap (``max_body_bytes``).

Usage:
    server = LedgerServer(host="127.0.0.1", port=3000)
    await server.start()
    ...
    await server.stop()
"""

from __future__ import annotations

import hmac
import logging
import math
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from electrowallet_core.models import parse_units

if TYPE_CHECKING:
    from electrowallet_core.config import ServerConfig

logger = logging.getLogger("electrowallet_server")

DEFAULT_MAX_BODY = 65_536


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def validate_tx_payload(body: Any) -> dict[str, Any] | None:
    """
    Normalise a POST /tx body, or return ``None`` if it is invalid.

    ``id``, ``from`` and ``to`` must be non-empty; ``amount`` and ``fee``
    must be non-negative whole numbers.  A missing or non-finite timestamp
    becomes now and ``confirmed`` is coerced to a bool.
    """
    if not isinstance(body, dict):
        return None
    tx_id, sender, recipient = body.get("id"), body.get("from"), body.get("to")
    amount, fee = body.get("amount"), body.get("fee")
    if not tx_id or not sender or not recipient:
        return None
    try:
        amount = parse_units(amount, "amount")
        fee = parse_units(fee, "fee")
    except (TypeError, ValueError):
        return None
    timestamp = body.get("timestamp")
    return {
        "id": tx_id,
        "from": sender,
        "to": recipient,
        "amount": amount,
        "fee": fee,
        "timestamp": timestamp if _is_number(timestamp) and timestamp else time.time(),
        "confirmed": bool(body.get("confirmed")),
    }


def _make_api_key_middleware(api_key: str):
    """aiohttp middleware that requires an API key on POST requests."""

    @web.middleware
    async def api_key_middleware(request: web.Request, handler):
        if request.method == "POST":
            key = request.headers.get("X-API-Key", "")
            if not hmac.compare_digest(key, api_key):
                return web.json_response({"error": "invalid or missing API key"}, status=401)
        return await handler(request)

    return api_key_middleware


class LedgerServer:
    """In-memory ledger exposed over HTTP."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        *,
        server_config: ServerConfig | None = None,
    ):
        self.host = host
        self.port = port
        self._server_config = server_config
        self.entries: list[dict[str, Any]] = []
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        middlewares: list = []
        max_body = DEFAULT_MAX_BODY
        if self._server_config is not None:
            max_body = self._server_config.max_body_bytes
            if self._server_config.api_key:
                middlewares.append(_make_api_key_middleware(self._server_config.api_key))
        app = web.Application(middlewares=middlewares, client_max_size=max_body)
        self._register_routes(app)
        return app

    # ── lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Ledger server listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # ── routes ───────────────────────────────────────────────────

    def _register_routes(self, app: web.Application) -> None:
        app.router.add_get("/health", self._health)
        app.router.add_get("/ledger", self._ledger)
        app.router.add_post("/tx", self._submit_tx)
        app.router.add_post("/reset", self._reset)

    async def _health(self, _request: web.Request) -> web.Response:
        return web.json_response({"ok": True, "entries": len(self.entries)})

    async def _ledger(self, _request: web.Request) -> web.Response:
        return web.json_response(self.entries)

    async def _submit_tx(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "invalid tx payload"}, status=400)

        entry = validate_tx_payload(body)
        if entry is None:
            return web.json_response({"error": "invalid tx payload"}, status=400)

        self.entries.append(entry)
        logger.info(f"Accepted tx {str(entry['id'])[:16]}… {entry['from']} → {entry['to']} amount={entry['amount']}")
        return web.json_response({"ok": True})

    async def _reset(self, _request: web.Request) -> web.Response:
        count = len(self.entries)
        self.entries = []
        logger.warning(f"Ledger reset ({count} entries cleared)")
        return web.json_response({"ok": True})
