"""
Async HTTP client for the CLC ledger.

Every endpoint is a GET with query parameters and a JSON object reply.
A reply without an ``error`` key is a success; with one, the value is a
human-readable reason.  Both cases come back as a :class:`LedgerResult`.
Anything else (connection failure, non-JSON body, missing field) raises
:class:`LedgerTransportError`.

Usage:
    async with LedgerClient("https://clc.ix.tc") as client:
        res = await client.get_coin(12)
        if res.ok:
            print(res.payload["val"])
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from clc_cold.errors import LedgerTransportError, RemoteError

logger = logging.getLogger("clc_cold.ledger")

DEFAULT_LEDGER_URL = "https://clc.ix.tc"


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of one ledger call: a payload or the ledger's error text."""
    payload: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the payload, raising ``RemoteError`` for a failed call."""
        if self.error is not None:
            raise RemoteError(self.error)
        return self.payload


class LedgerClient:
    """Thin wrapper around the ledger's coin / transaction endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_LEDGER_URL,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or None
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict:
        url = f"{self.base_url}{path}"
        query = {k: str(v) for k, v in (params or {}).items()}
        logger.debug(f"GET {url} {sorted(query)}")
        try:
            async with self._get_session().get(url, params=query) as resp:
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise LedgerTransportError(f"Could not reach the ledger: {exc}") from exc
        except ValueError as exc:
            raise LedgerTransportError(f"Ledger sent a non-JSON reply for {path}") from exc
        if not isinstance(body, dict):
            raise LedgerTransportError(f"Ledger sent an unexpected reply for {path}")
        return body

    @staticmethod
    def _outcome(body: dict, field: str | None = None) -> LedgerResult:
        if body.get("error"):
            return LedgerResult(error=str(body["error"]))
        if field is None:
            return LedgerResult(payload=body)
        if field not in body:
            raise LedgerTransportError(f"Ledger reply is missing '{field}'")
        return LedgerResult(payload=body[field])

    # ---- read endpoints ----

    async def get_coin(self, coin_id: int) -> LedgerResult:
        """``GET /coin/{id}`` -> the ``coin`` object (``val``, ``transactions``)."""
        body = await self._get(f"/coin/{coin_id}")
        res = self._outcome(body, "coin")
        if res.ok and not isinstance(res.payload, dict):
            raise LedgerTransportError(f"Ledger sent a malformed coin #{coin_id}")
        return res

    async def ledger_length(self) -> LedgerResult:
        body = await self._get("/ledger-length")
        res = self._outcome(body, "length")
        if res.ok and (isinstance(res.payload, bool) or not isinstance(res.payload, int)):
            raise LedgerTransportError("Ledger length is not an integer")
        return res

    async def coin_value(self, coin_id: int) -> float:
        coin = (await self.get_coin(coin_id)).unwrap()
        try:
            return float(coin["val"])
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerTransportError(f"Coin #{coin_id} has no value") from exc

    async def last_holder(self, coin_id: int, coin: dict | None = None) -> str | None:
        """Public key of the coin's current holder, per its last transaction."""
        if coin is None:
            coin = (await self.get_coin(coin_id)).unwrap()
        transactions = coin.get("transactions")
        if not isinstance(transactions, list):
            raise LedgerTransportError(f"Coin #{coin_id} has no transaction history")
        if not transactions:
            return None
        last = transactions[-1]
        return last.get("holder") if isinstance(last, dict) else None

    # ---- ownership-changing endpoints ----

    async def transact(self, coin_id: int, new_holder: str, signature: str) -> LedgerResult:
        body = await self._get(
            "/transaction",
            {"cid": coin_id, "newholder": new_holder, "sign": signature},
        )
        return self._outcome(body)

    async def merge(self, origin: int, signature: str, target: int, vol: str) -> LedgerResult:
        body = await self._get(
            "/merge",
            {"origin": origin, "sign": signature, "target": target, "vol": vol},
        )
        return self._outcome(body)

    async def split(self, origin: int, signature: str, target: int, vol: str) -> LedgerResult:
        body = await self._get(
            "/split",
            {"origin": origin, "sign": signature, "target": target, "vol": vol},
        )
        return self._outcome(body)
