"""Security helpers (hashing and verification)."""

from __future__ import annotations

import hashlib
import secrets

from argon2 import PasswordHasher, exceptions as argon_exc

_ph = PasswordHasher()
_PREFIX = "argon2$"
# Parametros do scrypt usado pela versao anterior do app (Node: scrypt(pw, salt, 64)).
_LEGACY_N = 2**14
_LEGACY_R = 8
_LEGACY_P = 1
_LEGACY_KEYLEN = 64


def hash_password(password: str) -> str:
    """Create a modern Argon2 hash with a prefix for detection."""
    hashed = _ph.hash(password)
    return f"{_PREFIX}{hashed}"


def _legacy_hash(password: str, salt: str) -> str:
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=_LEGACY_N,
        r=_LEGACY_R,
        p=_LEGACY_P,
        dklen=_LEGACY_KEYLEN,
    ).hex()


def verify_password(password: str, stored_hash: str | None) -> bool:
    """Check a password against an argon2 hash or a legacy ``<hex>.<salt>`` scrypt hash."""
    stored = stored_hash or ""
    if stored.startswith(_PREFIX):
        hashed = stored[len(_PREFIX) :]
        try:
            return _ph.verify(hashed, password)
        except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
            return False
    digest, sep, salt = stored.partition(".")
    if not sep or not digest or not salt:
        return False
    legacy = _legacy_hash(password, salt)
    return secrets.compare_digest(legacy, digest)
