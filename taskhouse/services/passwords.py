from __future__ import annotations

import hashlib
import hmac
import logging
import os
from typing import Optional

from passlib.context import CryptContext
from passlib.exc import MissingBackendError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
BCRYPT_MAX_BYTES = 72

# Formato legado: pbkdf2$<iterações>$<salt hex>$<digest hex>
PBKDF2_PREFIX = "pbkdf2$"
PBKDF2_ITERATIONS = 120_000
PBKDF2_SALT_BYTES = 16

_pwd_context: Optional[CryptContext]

try:
    _pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
except Exception:
    logger.warning("bcrypt backend unavailable; using pbkdf2 hashes", exc_info=True)
    _pwd_context = None


def _pbkdf2_digest(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def _pbkdf2_hash(password: str) -> str:
    salt = os.urandom(PBKDF2_SALT_BYTES)
    digest = _pbkdf2_digest(password, salt, PBKDF2_ITERATIONS)
    return f"{PBKDF2_PREFIX}{PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def _pbkdf2_verify(password: str, password_hash: str) -> bool:
    try:
        _, iterations, salt_hex, digest_hex = password_hash.split("$", 3)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except ValueError:
        return False
    return hmac.compare_digest(_pbkdf2_digest(password, salt, rounds), expected)


def _bcrypt_usable(password: str) -> bool:
    return _pwd_context is not None and len(password.encode("utf-8")) <= BCRYPT_MAX_BYTES


def hash_password(password: str) -> str:
    if _bcrypt_usable(password):
        try:
            return _pwd_context.hash(password)
        except (ValueError, MissingBackendError):
            logger.warning("bcrypt hashing failed; falling back to pbkdf2", exc_info=True)
    return _pbkdf2_hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    if password_hash.startswith(PBKDF2_PREFIX):
        return _pbkdf2_verify(password, password_hash)
    if _pwd_context is None:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except (TypeError, ValueError):
        return False


def password_needs_rehash(password: str, password_hash: str | None) -> bool:
    """True for pbkdf2 hashes that bcrypt can now replace."""
    return bool(password_hash) and password_hash.startswith(PBKDF2_PREFIX) and _bcrypt_usable(password)
