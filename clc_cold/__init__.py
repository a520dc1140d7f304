"""
CLC cold wallet - keep CLC coin keys offline in an encrypted file.

Key features:
- CryptoJS-compatible AES wallet files (salted, passphrase based)
- secp256k1 ECDSA keys and signatures for ledger operations
- Single plaintext session between ``decrypt`` and ``logout``
- Async client for the CLC ledger HTTP API
"""

__version__ = "1.0.0"
__all__ = [
    "cipher",
    "cli",
    "commands",
    "config",
    "crypto_utils",
    "errors",
    "ledger_client",
    "logging_config",
    "session",
    "wallet",
]
