"""User domain model for account lifecycle management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class User:
    """
    Identity record driving registration, login and email verification.

    Attributes:
        id: Opaque unique identifier assigned at creation
        email: Login identifier (unique)
        name: Display name used when addressing mail
        password_hash: Salted bcrypt hash of the current password
        verify_key: Pending email verification token
        verified_at: When the email address was verified, if ever
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: str
    email: str
    name: str
    password_hash: str
    verify_key: Optional[str]
    verified_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} verified={self.is_verified}>"
