"""
Tests for bcrypt password hashing.
"""

import pytest

from app.domain.errors import CredentialMismatch
from app.services.password_hasher import BcryptPasswordHasher


class TestBcryptPasswordHasher:
    def test_hash_is_salted(self):
        hasher = BcryptPasswordHasher()

        first = hasher.hash("secret")
        second = hasher.hash("secret")

        assert first != second
        assert first.startswith("$2")
        assert "secret" not in first

    def test_compare_matching_password(self):
        hasher = BcryptPasswordHasher()

        hasher.compare(hasher.hash("secret"), "secret")

    def test_compare_mismatch_raises(self):
        hasher = BcryptPasswordHasher()

        with pytest.raises(CredentialMismatch):
            hasher.compare(hasher.hash("secret"), "Secret")

    def test_compare_rejects_malformed_hash(self):
        with pytest.raises(ValueError):
            BcryptPasswordHasher().compare("not-a-bcrypt-hash", "secret")

    def test_compare_overlong_password_is_mismatch(self):
        hasher = BcryptPasswordHasher()

        with pytest.raises(CredentialMismatch):
            hasher.compare(hasher.hash("secret"), "y" * 100)

    def test_hash_rejects_overlong_password(self):
        with pytest.raises(ValueError, match="72 bytes"):
            BcryptPasswordHasher().hash("é" * 37)
