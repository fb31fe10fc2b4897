"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores own the
lifecycle of these records; routes only read them.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UserRecord:
    """A registered identity and its stored credential.

    Frozen because nothing in the service updates a user after creation:
    username is the immutable lookup key and id is assigned exactly once.

    password_hash is the full bcrypt string (algorithm, cost and salt are
    embedded in it). The plaintext password is never kept.
    """

    id: int
    username: str  # case-sensitive, unique
    password_hash: str
