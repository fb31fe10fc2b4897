"""
auth/passwords.py -- Password hashing, verification and login checks.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). Bcrypt is the right
       choice for low-entropy secrets because its cost factor makes
       brute-force expensive. Every call to hash_password() draws a fresh salt,
       so two hashes of the same password never compare equal as strings.

  Cost factor: Settings.bcrypt_rounds (default 10). The time bcrypt spends
       blocks the calling worker thread on purpose -- it is the throttle
       against offline guessing.

  Comparison: bcrypt.checkpw() re-hashes the candidate with the stored salt
       and compares in constant time. Never compare hash strings with ==.

  Timing equalization: authenticate() runs bcrypt against a dummy hash when
       the username does not exist, so response time does not reveal whether
       an account is registered.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt

from auth.errors import CredentialMismatch, HashingFailure, UserNotFound
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import UserRecord
    from auth.store import CredentialStore

logger = logging.getLogger("credsvc.auth")


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


# bcrypt only reads the first 72 bytes of its input. bcrypt 4.x truncates
# silently, so two passwords sharing that prefix would verify against the
# same hash; refuse them instead of storing a hash that cannot tell them apart.
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Args:
        plain:  The plaintext password.
        rounds: bcrypt cost factor. If None (default), uses
                Settings.bcrypt_rounds.

    Raises HashingFailure if the password is longer than
    BCRYPT_MAX_PASSWORD_BYTES once UTF-8 encoded, or if bcrypt rejects the
    input or cannot allocate the work it needs.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise HashingFailure(f"password is longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    try:
        hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=cost))
    except (ValueError, TypeError, MemoryError) as exc:
        raise HashingFailure(f"could not hash password: {exc}") from exc
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A password over BCRYPT_MAX_PASSWORD_BYTES never matches: hash_password()
    refuses such input, so no stored hash can have come from it.

    A corrupt or non-bcrypt hash is treated as a mismatch rather than an error:
    the caller's only question is "may this user log in", and the answer is no.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed by bcrypt")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Built on first use, at the configured cost, so an unknown-user check
    # costs the same as a real one.
    return hash_password("credsvc_timing_dummy")


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def authenticate(store: CredentialStore, username: str, password: str) -> UserRecord:
    """Return the user whose stored hash matches password.

    Raises UserNotFound if no such user exists and CredentialMismatch if the
    password is wrong. Callers that face the network must report both the
    same way -- distinguishing them enables username enumeration.

    Always runs bcrypt exactly once, whether or not the user exists.
    """
    try:
        user = store.get_user_by_username(username)
    except UserNotFound:
        verify_password(password, _dummy_hash())
        raise
    if not verify_password(password, user.password_hash):
        raise CredentialMismatch(f"password mismatch for user id {user.id}")
    return user
