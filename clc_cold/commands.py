"""
Command handlers for the CLC cold wallet.

Each handler runs one user command end to end: it opens the wallet
session, talks to the ledger when needed, writes the session back and
reports to the console.  Handlers never raise for expected failures; they
print the reason and return a non-zero status.

Session lifecycle:
  decrypt  wallet file --(password)--> session file
  logout   session file --(password x2)--> wallet file, session removed
  others   require the session and save it back after mutating it
"""

from __future__ import annotations

import functools
import getpass
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable

from clc_cold import cipher
from clc_cold.crypto_utils import (
    derive_keypair,
    is_valid_public_key,
    public_key_hex,
    sha256_hex,
    sign,
)
from clc_cold.errors import (
    AuthenticationError,
    CoinExistsError,
    CoinNotFoundError,
    CipherFormatError,
    ColdWalletError,
    ConfirmationError,
    LedgerTransportError,
    RemoteError,
    SessionExistsError,
    WalletFormatError,
)
from clc_cold.ledger_client import LedgerClient
from clc_cold.session import SessionStore, WalletSession, atomic_write
from clc_cold.wallet import WALLET_OPEN, Wallet, coin_id_from_path, parse_coin_id

logger = logging.getLogger("clc_cold.commands")

PASSWORD_PROMPT = "Enter wallet encryption password >"
PASSWORD_RETYPE_PROMPT = "Retype wallet encryption password >"
DELETE_CONFIRM_PROMPT = "Please retype the coin id you want to delete >"

NOT_IN_WALLET = "This coin is not in your wallet"


def format_clc(amount: float) -> str:
    """Round to 3 decimals and drop trailing zeros (``1.500`` -> ``1.5``)."""
    text = f"{round(amount, 3):.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def parse_volume(vol: str) -> str:
    """Check *vol* is a positive number; the literal text is what gets signed."""
    try:
        value = float(vol)
    except (TypeError, ValueError):
        raise WalletFormatError(f"Invalid volume: {vol!r}") from None
    if not value > 0 or value == float("inf"):
        raise WalletFormatError(f"Invalid volume: {vol!r}")
    return vol


def _is_amount(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _looks_like_json(raw: bytes) -> bool:
    try:
        json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return False
    return True


def command(fn: Callable[..., Awaitable[None]]) -> Callable[..., Awaitable[int]]:
    """Run a handler, turning wallet errors into a console message and status 1."""

    @functools.wraps(fn)
    async def wrapper(self: WalletCommands, *args, **kwargs) -> int:
        try:
            await fn(self, *args, **kwargs)
        except ColdWalletError as exc:
            logger.debug(f"{fn.__name__} failed: {type(exc).__name__}: {exc}")
            self.out(str(exc))
            return 1
        except OSError as exc:
            logger.debug(f"{fn.__name__} failed: {exc!r}")
            target = f": {exc.filename}" if exc.filename else ""
            self.out(f"Error: {exc.strerror or exc}{target}")
            return 1
        return 0

    return wrapper


class WalletCommands:
    """
    The wallet's user commands.

    Prompts and console output are injectable so the handlers can be
    driven without a terminal.
    """

    def __init__(
        self,
        store: SessionStore,
        client: LedgerClient,
        prompt: Callable[[str], str] = getpass.getpass,
        ask: Callable[[str], str] = input,
        out: Callable[[str], None] = print,
    ):
        self.store = store
        self.client = client
        self.prompt = prompt
        self.ask = ask
        self.out = out

    # ---- helpers ----

    def _open(self) -> WalletSession:
        return WalletSession.open(self.store)

    @staticmethod
    def _secret(session: WalletSession, coin_id: str | int, missing: str = NOT_IN_WALLET) -> tuple[int, str]:
        cid = parse_coin_id(coin_id)
        try:
            return cid, session.wallet.get(cid)
        except CoinNotFoundError:
            raise CoinNotFoundError(cid, missing) from None

    async def _holds(self, coin_id: int, public_hex: str, coin: dict | None = None) -> bool:
        return await self.client.last_holder(coin_id, coin) == public_hex

    # ---- session lifecycle ----

    @command
    async def decrypt(self, path: str, print_wallet: bool = False) -> None:
        """Decrypt a wallet file into the session."""
        if self.store.exists():
            raise SessionExistsError()
        try:
            token = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError:
            raise CipherFormatError("Wallet file is not a salted AES token") from None
        password = self.prompt(PASSWORD_PROMPT)
        plaintext = cipher.decrypt(token, password)

        if not plaintext.startswith(WALLET_OPEN):
            raise AuthenticationError()
        try:
            wallet = Wallet.parse(plaintext)
        except WalletFormatError as exc:
            if _looks_like_json(plaintext):
                raise
            raise AuthenticationError() from exc

        WalletSession.create(self.store, wallet)
        logger.info(f"Loaded {path} into session {self.store.path}")
        self.out(f"Wallet contains {len(wallet)} coins.")
        if print_wallet:
            self.out(json.dumps(wallet.to_dict(), indent=2))

    @command
    async def logout(self, path: str) -> None:
        """Encrypt the session to *path* and remove it."""
        session = self._open()
        password = self.prompt(PASSWORD_PROMPT)
        if self.prompt(PASSWORD_RETYPE_PROMPT) != password:
            raise ConfirmationError("Passwords don't match!")

        token = cipher.encrypt(session.wallet.serialize(), password)
        atomic_write(Path(path).expanduser(), token.encode("ascii"))
        session.close()
        logger.info(f"Session saved to {path} and removed")
        self.out(f"Successfully saved and encrypted wallet to {path}!")

    # ---- read-only ----

    @command
    async def balance(self) -> None:
        session = self._open()
        total = 0.0
        for coin_id in session.wallet:
            try:
                total += await self.client.coin_value(coin_id)
            except RemoteError as exc:
                raise RemoteError(f"Error fetching coin #{coin_id}, {exc.reason}") from exc
        self.out(f"Total wallet balance {format_clc(total)}CLC")

    @command
    async def coins(self, validate: bool = False, val: bool = False) -> None:
        """List coins with their public keys, values and ownership status."""
        session = self._open()
        self.out(f"Wallet contains {len(session.wallet)} coins,")
        for coin_id in session.wallet:
            pub = public_key_hex(session.wallet.get(coin_id))
            coin = None
            if val or validate:
                res = await self.client.get_coin(coin_id)
                if not res.ok:
                    self.out(f"#{coin_id}, {pub}")
                    self.out(f"Could not fetch coin #{coin_id}, {res.error}")
                    continue
                coin = res.payload

            line = f"#{coin_id}, {pub}"
            value = coin.get("val") if val else None
            if val and _is_amount(value):
                line += f", {value}CLC"
            self.out(line)
            if val and not _is_amount(value):
                self.out(f"Coin #{coin_id} has no value on the ledger")

            if validate:
                # one coin with an unreadable history must not hide the rest
                try:
                    holds = await self._holds(coin_id, pub, coin)
                except (LedgerTransportError, RemoteError) as exc:
                    self.out(f"Could not validate coin #{coin_id}, {exc}")
                    continue
                self.out("Valid." if holds else "Invalid!")

    @command
    async def private(self, coin_id: str) -> None:
        session = self._open()
        _, secret = self._secret(session, coin_id, "Coin not in wallet!")
        self.out(secret)

    @command
    async def keys(self, private_hex: str | None = None) -> None:
        """Print a fresh key pair, or the pair for *private_hex*."""
        try:
            kp = derive_keypair(private_hex)
        except ValueError:
            raise WalletFormatError("Invalid private key") from None
        self.out(f"Private: {kp.private_hex}")
        self.out(f"Public: {kp.public_hex}")

    # ---- wallet edits ----

    @command
    async def delete(self, coin_id: str, confirm: bool = False) -> None:
        session = self._open()
        cid, _ = self._secret(session, coin_id, "You do not have this coin in this wallet!")
        if not confirm:
            answer = self.ask(DELETE_CONFIRM_PROMPT)
            try:
                matches = parse_coin_id(answer) == cid
            except WalletFormatError:
                matches = False
            if not matches:
                raise ConfirmationError()
            self.out("Confirmed.")
        session.wallet.remove(cid)
        session.commit()
        self.out("Done.")

    @command
    async def add(self, cpath: str, validate: bool = False) -> None:
        """Add the coin stored in the file *cpath* (named ``<id>.coin``)."""
        session = self._open()
        cid = coin_id_from_path(cpath)
        if cid in session.wallet:
            raise CoinExistsError(cid)
        try:
            secret = Path(cpath).read_text(encoding="utf-8").strip()
            pub = public_key_hex(secret)
        except ValueError:
            raise WalletFormatError(f"Coin file {cpath} does not hold a valid private key") from None

        if validate:
            try:
                holds = await self._holds(cid, pub)
            except RemoteError as exc:
                raise RemoteError(f"Invalid coin! {exc.reason}") from exc
            if not holds:
                raise RemoteError("Invalid coin!")
            self.out("Valid coin, adding...")

        session.wallet.add(cid, secret)
        session.commit()
        self.out("Done.")

    # ---- ledger operations ----

    @command
    async def transact(self, coin_id: str, addr: str) -> None:
        """Hand coin *coin_id* to the holder public key *addr*."""
        session = self._open()
        cid, secret = self._secret(session, coin_id)
        if not is_valid_public_key(addr):
            raise WalletFormatError(
                f"Invalid address: {addr}, the ledger expects an uncompressed public key (04...)"
            )

        signature = sign(secret, sha256_hex(addr))
        self.out(f"Generated signature for transaction to {addr},\n{signature}, transacting...")
        res = await self.client.transact(cid, addr, signature)
        if not res.ok:
            raise RemoteError(f"Error transacting, {res.error}")

        session.wallet.remove(cid)
        session.commit()
        logger.info(f"Coin #{cid} transferred")
        self.out("Done, deleted from wallet!")

    @command
    async def merge(self, coin_id: str, target: str, vol: str) -> None:
        """Move *vol* CLC from coin *coin_id* into coin *target*."""
        session = self._open()
        cid, secret = self._secret(session, coin_id)
        target_id = parse_coin_id(target)
        vol = parse_volume(vol)

        self.out("Fetching data...")
        res = await self.client.get_coin(target_id)
        if not res.ok:
            raise RemoteError(f"Error merging coin, {res.error}")
        transactions = res.payload.get("transactions")
        if not isinstance(transactions, list):
            raise RemoteError(f"Error merging coin, coin #{target_id} has no history")

        signature = sign(secret, sha256_hex(f"{target_id} {len(transactions)} {vol}"))
        self.out("Merging...")
        res = await self.client.merge(cid, signature, target_id, vol)
        if not res.ok:
            raise RemoteError(f"Error merging coin, {res.error}")
        self.out("Done!")

    @command
    async def split(self, coin_id: str, vol: str) -> None:
        """Split *vol* CLC off coin *coin_id* into a new coin sharing its key."""
        session = self._open()
        cid, secret = self._secret(session, coin_id)
        vol = parse_volume(vol)

        self.out("Fetching data...")
        res = await self.client.ledger_length()
        if not res.ok:
            raise RemoteError(f"Error splitting coin, {res.error}")
        new_id = res.payload + 1

        signature = sign(secret, sha256_hex(f"{new_id} 1 {vol}"))
        self.out("Splitting...")
        res = await self.client.split(cid, signature, new_id, vol)
        if not res.ok:
            raise RemoteError(f"Error splitting coin, {res.error}")

        if new_id in session.wallet:
            logger.warning(f"Coin #{new_id} was already in the wallet, replacing its key")
            session.wallet.remove(new_id)
        session.wallet.add(new_id, secret)
        session.commit()
        self.out(f"New id, #{new_id}")
        self.out("Done!")
