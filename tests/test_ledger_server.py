"""
Tests for the shared ledger service (ledger_server.py).

Covers:
  - Payload validation and normalisation
  - GET /ledger, POST /tx, POST /reset, GET /health
  - API key enforcement on POST only
  - Request body size limit
"""

from __future__ import annotations

import time

import pytest
from aiohttp.test_utils import TestClient, TestServer

from electrowallet_core.config import ServerConfig
from electrowallet_core.ledger_server import LedgerServer, validate_tx_payload

VALID = {
    "id": "abc",
    "from": "mA",
    "to": "mB",
    "amount": 30_000,
    "fee": 100,
    "timestamp": 1_700_000_000.5,
    "confirmed": False,
}


def _client(server_config: ServerConfig | None = None):
    ledger = LedgerServer(server_config=server_config)
    return TestClient(TestServer(ledger.build_app())), ledger


# ═══════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════

class TestValidatePayload:
    def test_valid_passthrough(self):
        assert validate_tx_payload(dict(VALID)) == VALID

    @pytest.mark.parametrize("field", ["id", "from", "to"])
    def test_missing_or_empty_required(self, field):
        body = dict(VALID)
        body[field] = ""
        assert validate_tx_payload(body) is None
        del body[field]
        assert validate_tx_payload(body) is None

    @pytest.mark.parametrize("field,value", [
        ("amount", "100"),
        ("amount", None),
        ("fee", True),
        ("fee", [1]),
    ])
    def test_non_numeric_rejected(self, field, value):
        body = dict(VALID)
        body[field] = value
        assert validate_tx_payload(body) is None

    @pytest.mark.parametrize("field,value", [
        ("amount", float("inf")),
        ("amount", float("nan")),
        ("amount", -5000),
        ("amount", 1.5),
        ("fee", -1),
        ("fee", float("-inf")),
    ])
    def test_out_of_range_rejected(self, field, value):
        body = dict(VALID)
        body[field] = value
        assert validate_tx_payload(body) is None

    def test_integral_float_amount_normalised(self):
        tx = validate_tx_payload(dict(VALID, amount=12.0))
        assert tx["amount"] == 12
        assert isinstance(tx["amount"], int)

    @pytest.mark.parametrize("timestamp", [float("inf"), float("nan"), 10 ** 400])
    def test_non_finite_timestamp_becomes_now(self, timestamp):
        before = time.time()
        assert validate_tx_payload(dict(VALID, timestamp=timestamp))["timestamp"] >= before

    def test_not_an_object(self):
        assert validate_tx_payload([VALID]) is None
        assert validate_tx_payload("tx") is None

    def test_missing_timestamp_defaults_to_now(self):
        body = dict(VALID)
        del body["timestamp"]
        before = time.time()
        assert validate_tx_payload(body)["timestamp"] >= before

    def test_confirmed_coerced(self):
        body = dict(VALID, confirmed=1)
        assert validate_tx_payload(body)["confirmed"] is True
        del body["confirmed"]
        assert validate_tx_payload(body)["confirmed"] is False

    def test_extra_fields_dropped(self):
        assert "memo" not in validate_tx_payload(dict(VALID, memo="hi"))


# ═══════════════════════════════════════════════════════════════════
#  Routes
# ═══════════════════════════════════════════════════════════════════

class TestRoutes:
    @pytest.mark.asyncio
    async def test_empty_ledger(self):
        client, _ = _client()
        async with client:
            resp = await client.get("/ledger")
            assert resp.status == 200
            assert await resp.json() == []

    @pytest.mark.asyncio
    async def test_post_then_get(self):
        client, ledger = _client()
        async with client:
            resp = await client.post("/tx", json=VALID)
            assert resp.status == 200
            assert await resp.json() == {"ok": True}
            resp = await client.get("/ledger")
            assert await resp.json() == [VALID]
        assert ledger.entries == [VALID]

    @pytest.mark.asyncio
    async def test_insertion_order(self):
        client, _ = _client()
        async with client:
            for i in range(3):
                await client.post("/tx", json=dict(VALID, id=f"t{i}", timestamp=10.0 - i))
            ids = [e["id"] for e in await (await client.get("/ledger")).json()]
            assert ids == ["t0", "t1", "t2"]

    @pytest.mark.asyncio
    async def test_invalid_payload_400(self):
        client, ledger = _client()
        async with client:
            resp = await client.post("/tx", json={"id": "x"})
            assert resp.status == 400
            assert await resp.json() == {"error": "invalid tx payload"}
        assert ledger.entries == []

    @pytest.mark.asyncio
    async def test_negative_amount_400(self):
        client, ledger = _client()
        async with client:
            resp = await client.post(
                "/tx", json={"id": "x", "from": "victim", "to": "me", "amount": -5000, "fee": 0},
            )
            assert resp.status == 400
        assert ledger.entries == []

    @pytest.mark.asyncio
    async def test_overflowing_amount_400(self):
        client, ledger = _client()
        async with client:
            resp = await client.post(
                "/tx",
                data='{"id": "x", "from": "a", "to": "b", "amount": 1e400, "fee": 0}',
                headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400
            assert await (await client.get("/ledger")).json() == []
        assert ledger.entries == []

    @pytest.mark.asyncio
    async def test_non_json_body_400(self):
        client, _ = _client()
        async with client:
            resp = await client.post(
                "/tx", data="{nope", headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_health(self):
        client, _ = _client()
        async with client:
            await client.post("/tx", json=VALID)
            resp = await client.get("/health")
            assert await resp.json() == {"ok": True, "entries": 1}

    @pytest.mark.asyncio
    async def test_reset(self):
        client, ledger = _client()
        async with client:
            await client.post("/tx", json=VALID)
            resp = await client.post("/reset")
            assert resp.status == 200
            assert await (await client.get("/ledger")).json() == []
        assert ledger.entries == []


class TestSecurity:
    @pytest.mark.asyncio
    async def test_post_requires_key(self):
        client, _ = _client(ServerConfig(api_key="k"))
        async with client:
            resp = await client.post("/tx", json=VALID)
            assert resp.status == 401
            resp = await client.post("/tx", json=VALID, headers={"X-API-Key": "wrong"})
            assert resp.status == 401
            resp = await client.post("/tx", json=VALID, headers={"X-API-Key": "k"})
            assert resp.status == 200

    @pytest.mark.asyncio
    async def test_get_open_with_key_configured(self):
        client, _ = _client(ServerConfig(api_key="k"))
        async with client:
            assert (await client.get("/ledger")).status == 200
            assert (await client.get("/health")).status == 200

    @pytest.mark.asyncio
    async def test_reset_requires_key(self):
        client, _ = _client(ServerConfig(api_key="k"))
        async with client:
            assert (await client.post("/reset")).status == 401

    @pytest.mark.asyncio
    async def test_body_size_limit(self):
        client, ledger = _client(ServerConfig(max_body_bytes=256))
        async with client:
            resp = await client.post("/tx", json=dict(VALID, memo="x" * 1024))
            assert resp.status == 413
        assert ledger.entries == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_stop(self):
        ledger = LedgerServer("127.0.0.1", 0)
        await ledger.start()
        assert ledger._runner is not None
        await ledger.stop()
        assert ledger._runner is None
