"""
Wallet model for the CLC cold wallet.

A wallet is a mapping of coin id (positive integer) to the hex secret of
the key that owns the coin on the ledger.  On disk it is a compact JSON
object whose keys are the decimal coin ids:

    {"12": "1f0c...", "40": "9ab2..."}

Secrets are checked against the secp256k1 order when the wallet is
parsed, so every entry in a loaded wallet can sign.
"""

from __future__ import annotations

import json
import os
from typing import Iterator

from clc_cold.crypto_utils import is_valid_secret
from clc_cold.errors import CoinExistsError, CoinNotFoundError, WalletFormatError

WALLET_OPEN = b"{"


def parse_coin_id(value: object) -> int:
    """Parse a positive decimal coin id; raises ``WalletFormatError``."""
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()) or int(text) <= 0:
        raise WalletFormatError(f"Invalid coin id: {value!r}")
    return int(text)


def coin_id_from_path(path: str) -> int:
    """Coin id encoded in a coin file name, e.g. ``/tmp/42.coin`` -> 42."""
    stem = os.path.basename(path).split(".")[0]
    return parse_coin_id(stem)


class Wallet:
    """In-memory coin id -> secret mapping."""

    def __init__(self, coins: dict[int, str] | None = None):
        self._coins: dict[int, str] = {}
        for coin_id, secret in (coins or {}).items():
            self.add(coin_id, secret)

    # ---- serialisation ----

    @classmethod
    def parse(cls, raw: bytes | str) -> Wallet:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise WalletFormatError("Wallet is not UTF-8 text") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise WalletFormatError(f"Wallet is not valid JSON: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise WalletFormatError("Wallet must be a JSON object")

        wallet = cls()
        for key, secret in data.items():
            coin_id = parse_coin_id(key)
            if coin_id in wallet._coins:
                raise WalletFormatError(f"Coin #{coin_id} appears twice")
            if not is_valid_secret(secret):
                raise WalletFormatError(f"Coin #{coin_id} has an invalid private key")
            wallet._coins[coin_id] = secret
        return wallet

    def serialize(self) -> bytes:
        return json.dumps(
            {str(coin_id): secret for coin_id, secret in self._coins.items()},
            separators=(",", ":"),
        ).encode("utf-8")

    def to_dict(self) -> dict[str, str]:
        return {str(coin_id): secret for coin_id, secret in self._coins.items()}

    # ---- mutators ----

    def add(self, coin_id: int, secret: str) -> None:
        coin_id = parse_coin_id(coin_id)
        if coin_id in self._coins:
            raise CoinExistsError(coin_id)
        if not is_valid_secret(secret):
            raise WalletFormatError(f"Coin #{coin_id} has an invalid private key")
        self._coins[coin_id] = secret

    def remove(self, coin_id: int) -> str:
        try:
            return self._coins.pop(coin_id)
        except KeyError:
            raise CoinNotFoundError(coin_id) from None

    def get(self, coin_id: int) -> str:
        try:
            return self._coins[coin_id]
        except KeyError:
            raise CoinNotFoundError(coin_id) from None

    def clear(self) -> None:
        self._coins.clear()

    # ---- container protocol ----

    def ids(self) -> list[int]:
        return list(self._coins)

    def __contains__(self, coin_id: object) -> bool:
        return coin_id in self._coins

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._coins))

    def __len__(self) -> int:
        return len(self._coins)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Wallet):
            return NotImplemented
        return self._coins == other._coins

    def __repr__(self) -> str:
        return f"Wallet({len(self._coins)} coins)"
