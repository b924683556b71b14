"""
Password hashing and verification.

Uses bcrypt with the library's default work factor and automatic salting.
"""

from __future__ import annotations

import bcrypt

from ..domain.errors import CredentialMismatch

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


class BcryptPasswordHasher:
    """One-way salted hashing of account passwords."""

    def hash(self, password: str) -> str:
        """
        Raises:
            ValueError: If the password is longer than ``MAX_PASSWORD_BYTES``
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")

    def compare(self, password_hash: str, password: str) -> None:
        """
        Check a plain text password against a stored hash.

        Passwords bcrypt could never have hashed are reported as a mismatch.

        Raises:
            CredentialMismatch: If the password does not match
            ValueError: If bcrypt rejects the stored hash
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise CredentialMismatch()
        if not bcrypt.checkpw(encoded, password_hash.encode("utf-8")):
            raise CredentialMismatch()
