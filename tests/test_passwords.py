"""Unit tests for auth/passwords.py -- bcrypt hashing and authentication.

Covers:
- hash_password() is salted (two hashes of one password differ) and verifiable
- the configured cost factor is embedded in the hash
- bcrypt errors surface as HashingFailure
- verify_password() rejects wrong passwords and unparseable hashes
- authenticate() returns the user, or raises UserNotFound / CredentialMismatch
- authenticate() runs bcrypt even when the user does not exist
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from auth import passwords
from auth.errors import CredentialMismatch, HashingFailure, UserNotFound
from auth.passwords import BCRYPT_MAX_PASSWORD_BYTES, authenticate, hash_password, verify_password
from auth.store import InMemoryCredentialStore


class TestHashPassword:
    def test_hashes_are_salted(self) -> None:
        a = hash_password("secret123")
        b = hash_password("secret123")
        assert a != b
        assert verify_password("secret123", a)
        assert verify_password("secret123", b)

    def test_plaintext_not_in_hash(self) -> None:
        assert "secret123" not in hash_password("secret123")

    def test_cost_factor_embedded(self) -> None:
        # bcrypt format: $2b$<cost>$<22-char salt><31-char hash>
        assert hash_password("pw", rounds=5).split("$")[2] == "05"

    def test_default_cost_comes_from_settings(self) -> None:
        # conftest sets BCRYPT_ROUNDS=4
        assert hash_password("pw").split("$")[2] == "04"

    def test_bcrypt_error_becomes_hashing_failure(self) -> None:
        with patch("auth.passwords.bcrypt.hashpw", side_effect=ValueError("too long")):
            with pytest.raises(HashingFailure):
                hash_password("pw")

    def test_memory_error_becomes_hashing_failure(self) -> None:
        with patch("auth.passwords.bcrypt.hashpw", side_effect=MemoryError()):
            with pytest.raises(HashingFailure):
                hash_password("pw")

    def test_password_at_byte_limit_hashes(self) -> None:
        plain = "p" * BCRYPT_MAX_PASSWORD_BYTES
        assert verify_password(plain, hash_password(plain))

    def test_password_over_byte_limit_rejected(self) -> None:
        with pytest.raises(HashingFailure):
            hash_password("p" * (BCRYPT_MAX_PASSWORD_BYTES + 8))

    def test_limit_counts_utf8_bytes_not_characters(self) -> None:
        # 25 characters, 75 bytes
        with pytest.raises(HashingFailure):
            hash_password("密" * 25)
        # 24 characters, 72 bytes
        assert verify_password("密" * 24, hash_password("密" * 24))


class TestVerifyPassword:
    def test_over_limit_never_matches_prefix_hash(self) -> None:
        hashed = hash_password("p" * BCRYPT_MAX_PASSWORD_BYTES)
        assert not verify_password("p" * BCRYPT_MAX_PASSWORD_BYTES + "X" * 8, hashed)

    def test_wrong_password(self) -> None:
        assert not verify_password("wrong", hash_password("secret123"))

    def test_near_miss_password(self) -> None:
        hashed = hash_password("secret123")
        assert not verify_password("secret12", hashed)
        assert not verify_password("Secret123", hashed)
        assert not verify_password("secret123 ", hashed)

    def test_garbage_hash_is_mismatch(self) -> None:
        assert not verify_password("secret123", "not-a-bcrypt-hash")

    def test_unicode_password(self) -> None:
        hashed = hash_password("pässwörd-密码")
        assert verify_password("pässwörd-密码", hashed)
        assert not verify_password("passwort-密码", hashed)


class TestAuthenticate:
    def test_success(self, store: InMemoryCredentialStore) -> None:
        created = store.create_user("alice", "secret123")
        assert authenticate(store, "alice", "secret123") == created

    def test_wrong_password(self, store: InMemoryCredentialStore) -> None:
        store.create_user("alice", "secret123")
        with pytest.raises(CredentialMismatch):
            authenticate(store, "alice", "wrong")

    def test_unknown_user(self, store: InMemoryCredentialStore) -> None:
        with pytest.raises(UserNotFound):
            authenticate(store, "bob", "x")

    def test_unknown_user_still_runs_bcrypt(self, store: InMemoryCredentialStore) -> None:
        with patch.object(passwords, "verify_password", wraps=passwords.verify_password) as spy:
            with pytest.raises(UserNotFound):
                authenticate(store, "bob", "x")
        spy.assert_called_once()
        assert spy.call_args.args[0] == "x"
