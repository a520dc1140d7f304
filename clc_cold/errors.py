"""
Exception hierarchy for the CLC cold wallet.

Every failure a command can report to the user derives from
``ColdWalletError``; command handlers catch these, print the message
and return a non-zero status.
"""

from __future__ import annotations


class ColdWalletError(Exception):
    """Base class for all wallet errors."""


# ---- preconditions ----

class PreconditionError(ColdWalletError):
    """A command was run in a state that does not allow it."""


class SessionNotFoundError(PreconditionError):
    def __init__(self, message: str = "Wallet not loaded yet, please decrypt"):
        super().__init__(message)


class SessionExistsError(PreconditionError):
    def __init__(self, message: str = "Wallet already loaded, please logout"):
        super().__init__(message)


class CoinNotFoundError(PreconditionError, KeyError):
    def __init__(self, coin_id: int, message: str | None = None):
        self.coin_id = coin_id
        super().__init__(message or f"Coin #{coin_id} is not in this wallet")

    def __str__(self) -> str:
        return self.args[0]


class CoinExistsError(PreconditionError):
    def __init__(self, coin_id: int, message: str = "Coin already in wallet!"):
        self.coin_id = coin_id
        super().__init__(message)


# ---- user interaction ----

class AuthenticationError(ColdWalletError):
    def __init__(self, message: str = "Invalid password!"):
        super().__init__(message)


class ConfirmationError(ColdWalletError):
    def __init__(self, message: str = "Aborting!"):
        super().__init__(message)


# ---- ledger ----

class RemoteError(ColdWalletError):
    """The ledger answered with an ``error`` field."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class LedgerTransportError(ColdWalletError):
    """The ledger could not be reached or answered with something unreadable."""


# ---- data formats ----

class WalletFormatError(ColdWalletError, ValueError):
    """Serialized wallet or coin file is malformed."""


class CipherFormatError(ColdWalletError, ValueError):
    """Ciphertext is not a salted AES token."""


class ConfigError(ColdWalletError, ValueError):
    """Configuration file or environment value is invalid."""
