"""Hashed storage for the per-form access password.

Stored as ``pbkdf2-sha256:<rounds>:<salt b64>:<digest b64>``. Only the hash is
kept; submissions are checked by re-deriving with the stored salt.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
from typing import NamedTuple

SCHEME = "pbkdf2-sha256"
ROUNDS = 240_000
SALT_BYTES = 16


class StoredPassword(NamedTuple):
    rounds: int
    salt: bytes
    digest: bytes

    @classmethod
    def parse(cls, encoded: str) -> "StoredPassword | None":
        parts = encoded.split(":")
        if len(parts) != 4 or parts[0] != SCHEME:
            return None
        try:
            return cls(int(parts[1]), base64.b64decode(parts[2]), base64.b64decode(parts[3]))
        except ValueError:
            return None

    def encode(self) -> str:
        salt = base64.b64encode(self.salt).decode("ascii")
        digest = base64.b64encode(self.digest).decode("ascii")
        return f"{SCHEME}:{self.rounds}:{salt}:{digest}"


def _derive(plaintext: str, salt: bytes, rounds: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", plaintext.encode("utf-8"), salt, rounds)


def hash_password(plaintext: str) -> str:
    if not plaintext:
        raise ValueError("Password is required")
    salt = os.urandom(SALT_BYTES)
    return StoredPassword(ROUNDS, salt, _derive(plaintext, salt, ROUNDS)).encode()


def verify_password(plaintext: str | None, encoded: str | None) -> bool:
    """True only when ``plaintext`` is exactly the password that was hashed."""
    if not plaintext or not encoded:
        return False
    stored = StoredPassword.parse(encoded)
    if stored is None:
        return False
    return hmac.compare_digest(_derive(plaintext, stored.salt, stored.rounds), stored.digest)
