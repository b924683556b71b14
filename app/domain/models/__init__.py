"""Domain models for the accounts application."""

from .user import User

__all__ = [
    "User",
]
