"""
Cryptographic utilities for CLC coin keys.

Provides:
  - SHA-256 hex digests used as the signing payload for ledger operations
  - secp256k1 key-pair generation and reconstruction from a stored secret
  - DER-encoded ECDSA signatures over a hex digest
  - Signature verification against a holder public key

Public keys use the uncompressed ``04 || X || Y`` hex encoding, which is
what the ledger records as a coin's ``holder``.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigdecode_der, sigencode_der

CURVE = SECP256k1
CURVE_ORDER: int = SECP256k1.order

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def sha256_hex(message: str) -> str:
    """SHA-256 of the UTF-8 encoded *message*, as lowercase hex."""
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def is_valid_secret(secret_hex: str) -> bool:
    """True when *secret_hex* is a hex scalar in ``[1, n)`` for secp256k1."""
    if not isinstance(secret_hex, str) or not _HEX_RE.match(secret_hex):
        return False
    return 0 < int(secret_hex, 16) < CURVE_ORDER


def is_valid_public_key(public_hex: str) -> bool:
    """True for an uncompressed secp256k1 point in hex (the ledger's holder format)."""
    if not isinstance(public_hex, str) or len(public_hex) != 130 or not _HEX_RE.match(public_hex):
        return False
    if not public_hex.startswith("04"):
        return False
    try:
        VerifyingKey.from_string(bytes.fromhex(public_hex), curve=CURVE)
    except (MalformedPointError, ValueError):
        return False
    return True


def _signing_key(secret_hex: str) -> SigningKey:
    if not is_valid_secret(secret_hex):
        raise ValueError("Private key is not a valid secp256k1 scalar")
    return SigningKey.from_secret_exponent(int(secret_hex, 16), curve=CURVE)


@dataclass(frozen=True)
class KeyPair:
    """A secp256k1 key pair in the hex encodings used by the ledger."""
    private_hex: str
    public_hex: str


def derive_keypair(secret_hex: str | None = None) -> KeyPair:
    """
    Rebuild the key pair for *secret_hex*, or generate a fresh random one.

    Raises ``ValueError`` when the secret is not a valid scalar.
    """
    if secret_hex is None:
        sk = SigningKey.generate(curve=CURVE)
    else:
        sk = _signing_key(secret_hex)
    return KeyPair(
        private_hex=format(sk.privkey.secret_multiplier, "064x"),
        public_hex=sk.get_verifying_key().to_string("uncompressed").hex(),
    )


def public_key_hex(secret_hex: str) -> str:
    return derive_keypair(secret_hex).public_hex


def sign(secret_hex: str, digest_hex: str) -> str:
    """
    Sign a hex digest and return the DER signature as hex.

    The digest is signed as raw bytes (no further hashing), with RFC 6979
    deterministic nonces.
    """
    sk = _signing_key(secret_hex)
    signature = sk.sign_digest_deterministic(
        bytes.fromhex(digest_hex),
        hashfunc=hashlib.sha256,
        sigencode=sigencode_der,
    )
    return signature.hex()


def verify(public_hex: str, digest_hex: str, signature_hex: str) -> bool:
    """Check a DER signature over a hex digest against an uncompressed public key."""
    try:
        vk = VerifyingKey.from_string(bytes.fromhex(public_hex), curve=CURVE)
        return vk.verify_digest(
            bytes.fromhex(signature_hex),
            bytes.fromhex(digest_hex),
            sigdecode=sigdecode_der,
        )
    except (BadSignatureError, MalformedPointError, ValueError):
        return False
