"""
Tests for clc_cold.ledger_client against a local aiohttp ledger.

Covers:
  - URL paths and query parameters of every endpoint
  - error-field handling (LedgerResult)
  - transport failures: unreachable host, non-JSON body, missing fields
  - coin_value / last_holder helpers
"""

from __future__ import annotations

import asyncio
import contextlib

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from clc_cold.errors import LedgerTransportError, RemoteError
from clc_cold.ledger_client import LedgerClient, LedgerResult

HOLDER = "04" + "ab" * 64


# ─── Helpers ────────────────────────────────────────────────────────

class _FakeLedgerApp:
    """Minimal stand-in for the CLC ledger HTTP API."""

    def __init__(self):
        self.requests: list[tuple[str, dict]] = []
        self.coins = {
            7: {"val": 1.25, "transactions": [{"holder": "04old"}, {"holder": HOLDER}]},
            8: {"val": 3, "transactions": []},
        }
        self.length = 41
        self.reply_override = None

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/coin/{id}", self.coin)
        app.router.add_get("/ledger-length", self.ledger_length)
        app.router.add_get("/transaction", self.op)
        app.router.add_get("/merge", self.op)
        app.router.add_get("/split", self.op)
        return app

    def _record(self, request):
        self.requests.append((request.path, dict(request.query)))

    async def coin(self, request):
        self._record(request)
        if self.reply_override is not None:
            return self.reply_override
        coin = self.coins.get(int(request.match_info["id"]))
        if coin is None:
            return web.json_response({"error": "Coin does not exist"}, status=404)
        return web.json_response({"coin": coin})

    async def ledger_length(self, request):
        self._record(request)
        if self.reply_override is not None:
            return self.reply_override
        return web.json_response({"length": self.length})

    async def op(self, request):
        self._record(request)
        if self.reply_override is not None:
            return self.reply_override
        if request.query.get("sign") == "bad":
            return web.json_response({"error": "Invalid signature"})
        return web.json_response({})


@contextlib.asynccontextmanager
async def _ledger(fake: _FakeLedgerApp | None = None, **client_kwargs):
    fake = fake or _FakeLedgerApp()
    server = TestServer(fake.app())
    await server.start_server()
    try:
        async with LedgerClient(str(server.make_url("/")), **client_kwargs) as client:
            yield client, fake
    finally:
        await server.close()


# ═══════════════════════════════════════════════════════════════════
#  LedgerResult
# ═══════════════════════════════════════════════════════════════════

class TestLedgerResult:
    def test_ok(self):
        res = LedgerResult(payload={"a": 1})
        assert res.ok
        assert res.unwrap() == {"a": 1}

    def test_error(self):
        res = LedgerResult(error="nope")
        assert not res.ok
        with pytest.raises(RemoteError, match="nope"):
            res.unwrap()


# ═══════════════════════════════════════════════════════════════════
#  Read endpoints
# ═══════════════════════════════════════════════════════════════════

class TestReads:
    @pytest.mark.asyncio
    async def test_get_coin(self):
        async with _ledger() as (client, fake):
            res = await client.get_coin(7)
        assert res.ok
        assert res.payload["val"] == 1.25
        assert fake.requests == [("/coin/7", {})]

    @pytest.mark.asyncio
    async def test_get_coin_error_field(self):
        async with _ledger() as (client, _):
            res = await client.get_coin(99)
        assert not res.ok
        assert res.error == "Coin does not exist"

    @pytest.mark.asyncio
    async def test_ledger_length(self):
        async with _ledger() as (client, fake):
            res = await client.ledger_length()
        assert res.payload == 41
        assert fake.requests[0][0] == "/ledger-length"

    @pytest.mark.asyncio
    async def test_coin_value(self):
        async with _ledger() as (client, _):
            assert await client.coin_value(7) == 1.25
            assert await client.coin_value(8) == 3.0

    @pytest.mark.asyncio
    async def test_coin_value_remote_error(self):
        async with _ledger() as (client, _):
            with pytest.raises(RemoteError):
                await client.coin_value(99)

    @pytest.mark.asyncio
    async def test_last_holder(self):
        async with _ledger() as (client, _):
            assert await client.last_holder(7) == HOLDER
            assert await client.last_holder(8) is None

    @pytest.mark.asyncio
    async def test_last_holder_uses_given_coin(self):
        async with _ledger() as (client, fake):
            holder = await client.last_holder(5, {"transactions": [{"holder": "04x"}]})
        assert holder == "04x"
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_base_url_trailing_slash(self):
        async with _ledger() as (client, _):
            assert not client.base_url.endswith("/")


# ═══════════════════════════════════════════════════════════════════
#  Ownership-changing endpoints
# ═══════════════════════════════════════════════════════════════════

class TestOperations:
    @pytest.mark.asyncio
    async def test_transact_params(self):
        async with _ledger() as (client, fake):
            res = await client.transact(7, HOLDER, "3045ab")
        assert res.ok
        assert fake.requests == [
            ("/transaction", {"cid": "7", "newholder": HOLDER, "sign": "3045ab"}),
        ]

    @pytest.mark.asyncio
    async def test_merge_params(self):
        async with _ledger() as (client, fake):
            res = await client.merge(7, "3045ab", 8, "0.5")
        assert res.ok
        assert fake.requests == [
            ("/merge", {"origin": "7", "sign": "3045ab", "target": "8", "vol": "0.5"}),
        ]

    @pytest.mark.asyncio
    async def test_split_params(self):
        async with _ledger() as (client, fake):
            res = await client.split(7, "3045ab", 42, "1")
        assert res.ok
        assert fake.requests == [
            ("/split", {"origin": "7", "sign": "3045ab", "target": "42", "vol": "1"}),
        ]

    @pytest.mark.asyncio
    async def test_error_is_reported_verbatim(self):
        async with _ledger() as (client, _):
            res = await client.transact(7, HOLDER, "bad")
        assert res.error == "Invalid signature"


# ═══════════════════════════════════════════════════════════════════
#  Transport failures
# ═══════════════════════════════════════════════════════════════════

class TestTransport:
    @pytest.mark.asyncio
    async def test_non_json_body(self):
        fake = _FakeLedgerApp()
        fake.reply_override = web.Response(text="<html>502</html>", status=502)
        async with _ledger(fake) as (client, _):
            with pytest.raises(LedgerTransportError):
                await client.get_coin(7)

    @pytest.mark.asyncio
    async def test_json_not_object(self):
        fake = _FakeLedgerApp()
        fake.reply_override = web.json_response([1, 2])
        async with _ledger(fake) as (client, _):
            with pytest.raises(LedgerTransportError):
                await client.transact(7, HOLDER, "ab")

    @pytest.mark.asyncio
    async def test_missing_coin_field(self):
        fake = _FakeLedgerApp()
        fake.reply_override = web.json_response({"something": "else"})
        async with _ledger(fake) as (client, _):
            with pytest.raises(LedgerTransportError):
                await client.get_coin(7)

    @pytest.mark.asyncio
    async def test_length_not_integer(self):
        fake = _FakeLedgerApp()
        fake.reply_override = web.json_response({"length": "many"})
        async with _ledger(fake) as (client, _):
            with pytest.raises(LedgerTransportError):
                await client.ledger_length()

    @pytest.mark.asyncio
    async def test_unreachable_host(self):
        server = TestServer(web.Application())
        await server.start_server()
        url = str(server.make_url("/"))
        await server.close()
        async with LedgerClient(url) as client:
            with pytest.raises(LedgerTransportError):
                await client.ledger_length()

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(request):
            await asyncio.sleep(2)
            return web.json_response({"length": 1})

        app = web.Application()
        app.router.add_get("/ledger-length", slow)
        server = TestServer(app)
        await server.start_server()
        try:
            async with LedgerClient(str(server.make_url("/")), timeout=0.2) as client:
                with pytest.raises(LedgerTransportError):
                    await client.ledger_length()
        finally:
            await server.close()
