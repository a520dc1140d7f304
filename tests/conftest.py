"""
Shared pytest fixtures for the CLC cold wallet test suite.
"""

from __future__ import annotations

import pytest

from clc_cold.commands import WalletCommands
from clc_cold.crypto_utils import derive_keypair
from clc_cold.ledger_client import LedgerClient
from clc_cold.session import SessionStore
from clc_cold.wallet import Wallet

SECRET_A = "1" * 64
SECRET_B = "2" * 64
SECRET_C = "3" * 64


class FakeLedger(LedgerClient):
    """
    LedgerClient that answers from in-memory state instead of HTTP.

    Only ``_get`` is replaced, so reply interpretation is the real code.
    """

    def __init__(self):
        super().__init__("http://ledger.invalid")
        self.coins: dict[int, dict] = {}
        self.length = 0
        self.errors: dict[str, str] = {}   # path -> error text
        self.calls: list[tuple[str, dict]] = []

    def add_coin(self, coin_id: int, val: float, holders: list[str]) -> None:
        self.coins[coin_id] = {
            "val": val,
            "transactions": [{"holder": h} for h in holders],
        }

    async def _get(self, path, params=None):
        params = {k: str(v) for k, v in (params or {}).items()}
        self.calls.append((path, params))
        if path in self.errors:
            return {"error": self.errors[path]}
        if path.startswith("/coin/"):
            coin = self.coins.get(int(path.rsplit("/", 1)[1]))
            if coin is None:
                return {"error": "Coin not found"}
            return {"coin": coin}
        if path == "/ledger-length":
            return {"length": self.length}
        return {}

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]

    def params_for(self, path: str) -> dict:
        for p, params in self.calls:
            if p == path:
                return params
        raise AssertionError(f"{path} was never requested")


class Console:
    """Collects everything a command prints."""

    def __init__(self):
        self.lines: list[str] = []

    def __call__(self, line: str) -> None:
        self.lines.append(line)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@pytest.fixture
def keypair_a():
    return derive_keypair(SECRET_A)


@pytest.fixture
def keypair_b():
    return derive_keypair(SECRET_B)


@pytest.fixture
def store(tmp_path):
    """Session store in a temporary directory."""
    return SessionStore(tmp_path / "session")


@pytest.fixture
def loaded_store(store):
    """Session already holding coins #1 (SECRET_A) and #2 (SECRET_B)."""
    store.save(Wallet({1: SECRET_A, 2: SECRET_B}).serialize())
    return store


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def console():
    return Console()


@pytest.fixture
def make_commands(ledger, console):
    """Build WalletCommands with scripted prompt answers."""

    def _make(store, passwords=(), answers=()):
        pw = iter(passwords)
        ans = iter(answers)
        return WalletCommands(
            store,
            ledger,
            prompt=lambda _msg: next(pw),
            ask=lambda _msg: next(ans),
            out=console,
        )

    return _make
