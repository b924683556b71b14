from __future__ import annotations

from typing import Any, Dict, Protocol

from ..models import User


class UserRecordStore(Protocol):
    """Keyed storage of user identity records.

    Criteria are equality matches on ``id``, ``email`` or ``verify_key``.
    Lookups that match nothing raise ``RecordNotFound``; creating a record whose
    email is taken raises ``DuplicateRecord``. ``update`` must find and modify
    the record atomically.
    """

    def find_one(self, **criteria: str) -> User:
        ...

    def create_one(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        verify_key: str,
    ) -> User:
        ...

    def update(self, criteria: Dict[str, str], **changes: Any) -> User:
        ...
