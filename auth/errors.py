"""
auth/errors.py -- Error taxonomy for credential store and verification failures.

Every failure a store or the password helpers can produce is a subclass of
CredentialError, so route handlers can map outcomes to status codes with a
single except chain and never need to inspect messages.

Layer rule: no imports from api/.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for all credential store and verification failures."""


class DuplicateUser(CredentialError):
    """Raised by create_user() when the username is already registered."""

    def __init__(self, username: str) -> None:
        super().__init__(f"username '{username}' already exists")
        self.username = username


class HashingFailure(CredentialError):
    """Raised when bcrypt cannot produce a hash for the supplied password."""


class UserNotFound(CredentialError):
    """Raised by get_user_by_username() when no record matches."""

    def __init__(self, username: str) -> None:
        super().__init__(f"user '{username}' not found")
        self.username = username


class CredentialMismatch(CredentialError):
    """Raised by authenticate() when the password does not match the stored hash."""
