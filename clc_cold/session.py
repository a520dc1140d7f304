"""
Plaintext wallet session persisted between CLI invocations.

``decrypt`` writes the decrypted wallet to a well-known per-user file and
``logout`` encrypts it back and removes the file.  Every other wallet
command loads the session, works on it, and saves it again.

The file is not locked: two processes racing a decrypt/logout pair can
lose the session.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from clc_cold.errors import SessionExistsError, SessionNotFoundError
from clc_cold.wallet import Wallet

logger = logging.getLogger("clc_cold.session")

DEFAULT_SESSION_PATH = "~/.clc-cold-ses"


def atomic_write(path: Path, data: bytes, mode: int = 0o600) -> None:
    """Replace *path* in one step (temp file in the same directory + rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}-", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class SessionStore:
    """Raw access to the single session file."""

    def __init__(self, path: str | os.PathLike = DEFAULT_SESSION_PATH):
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            raise SessionNotFoundError() from None

    def save(self, raw: bytes) -> None:
        atomic_write(self.path, raw)
        logger.debug(f"Session written: {self.path} ({len(raw)} bytes)")

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.debug(f"Session removed: {self.path}")


class WalletSession:
    """
    Handle on the loaded wallet for the duration of one command.

    Created with :meth:`open` (session must exist) or :meth:`create`
    (session must not exist); changes reach disk on :meth:`commit`.
    """

    def __init__(self, store: SessionStore, wallet: Wallet):
        self.store = store
        self.wallet = wallet

    @classmethod
    def open(cls, store: SessionStore) -> WalletSession:
        if not store.exists():
            raise SessionNotFoundError()
        return cls(store, Wallet.parse(store.load()))

    @classmethod
    def create(cls, store: SessionStore, wallet: Wallet) -> WalletSession:
        if store.exists():
            raise SessionExistsError()
        session = cls(store, wallet)
        session.commit()
        return session

    def commit(self) -> None:
        self.store.save(self.wallet.serialize())

    def close(self) -> None:
        """Forget the wallet and remove the session file."""
        self.wallet.clear()
        self.store.delete()
