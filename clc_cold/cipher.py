"""
Password-based encryption of wallet files.

Wallet files use the OpenSSL "salted" passphrase format that CryptoJS
emits for ``AES.encrypt(text, passphrase)``:

    base64( b"Salted__" || salt[8] || AES-256-CBC(PKCS#7(plaintext)) )

with key and IV derived by ``EVP_BytesToKey`` (MD5, one round).  Files
written by the JavaScript wallet therefore open here and the other way
round.

There is no authentication tag.  A wrong password does not raise: it
yields garbage bytes, and callers decide whether the result looks like a
serialized wallet.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os

from Crypto.Cipher import AES
from Crypto.Util.Padding import pad, unpad

from clc_cold.errors import CipherFormatError

SALT_MAGIC = b"Salted__"
SALT_SIZE = 8
KEY_SIZE = 32
IV_SIZE = AES.block_size


def evp_bytes_to_key(password: bytes, salt: bytes,
                     key_len: int = KEY_SIZE, iv_len: int = IV_SIZE) -> tuple[bytes, bytes]:
    """OpenSSL ``EVP_BytesToKey`` with MD5 and a single iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def encrypt(plaintext: bytes, password: str, salt: bytes | None = None) -> str:
    """Encrypt *plaintext* under *password*; returns the base64 token."""
    salt = salt if salt is not None else os.urandom(SALT_SIZE)
    if len(salt) != SALT_SIZE:
        raise ValueError(f"Salt must be {SALT_SIZE} bytes")
    key, iv = evp_bytes_to_key(password.encode("utf-8"), salt)
    cipher = AES.new(key, AES.MODE_CBC, iv=iv)
    ciphertext = cipher.encrypt(pad(plaintext, AES.block_size))
    return base64.b64encode(SALT_MAGIC + salt + ciphertext).decode("ascii")


def decrypt(token: str, password: str) -> bytes:
    """
    Decrypt a token produced by :func:`encrypt` (or CryptoJS).

    Returns the plaintext for the right password.  For a wrong password
    the padding check usually fails; the raw decrypted blocks are returned
    instead of raising.  ``CipherFormatError`` is raised only when the
    token is not a salted ciphertext at all.
    """
    try:
        blob = base64.b64decode("".join(token.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CipherFormatError("Wallet file is not valid base64") from exc

    if not blob.startswith(SALT_MAGIC):
        raise CipherFormatError("Wallet file is missing the salt header")
    salt = blob[len(SALT_MAGIC):len(SALT_MAGIC) + SALT_SIZE]
    ciphertext = blob[len(SALT_MAGIC) + SALT_SIZE:]
    if len(salt) != SALT_SIZE or not ciphertext or len(ciphertext) % AES.block_size:
        raise CipherFormatError("Wallet file ciphertext is truncated")

    key, iv = evp_bytes_to_key(password.encode("utf-8"), salt)
    raw = AES.new(key, AES.MODE_CBC, iv=iv).decrypt(ciphertext)
    try:
        return unpad(raw, AES.block_size)
    except ValueError:
        return raw
