from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from ...domain.errors import (
    DuplicateRecord,
    EmailAlreadyRegistered,
    RecordNotFound,
    UserNotFound,
    UserNotVerified,
)
from ...domain.models import User
from ...domain.ports.notifications import NotificationDispatcher
from ...domain.ports.persistence import UserRecordStore
from ...services.password_hasher import BcryptPasswordHasher
from ...services.verification_tokens import new_verification_token

logger = logging.getLogger(__name__)

VERIFY_SUBJECT = "Please verify your email address"
VERIFY_TEMPLATE = "verify"


class _UserLookup:
    """Store adapter that reports every missing record as ``UserNotFound``."""

    def __init__(self, store: UserRecordStore) -> None:
        self._store = store

    def find_one(self, **criteria: str) -> User:
        try:
            return self._store.find_one(**criteria)
        except RecordNotFound as exc:
            raise UserNotFound() from exc

    def update(self, criteria: Dict[str, str], **changes: Any) -> User:
        try:
            return self._store.update(criteria, **changes)
        except RecordNotFound as exc:
            raise UserNotFound() from exc


class AuthenticationService:
    """Registration, login, password change and email verification flows."""

    def __init__(
        self,
        store: UserRecordStore,
        dispatcher: NotificationDispatcher,
        hasher: BcryptPasswordHasher | None = None,
        token_factory: Callable[[], str] = new_verification_token,
    ) -> None:
        self._store = store
        self._users = _UserLookup(store)
        self._dispatcher = dispatcher
        self._hasher = hasher or BcryptPasswordHasher()
        self._new_token = token_factory

    async def register(self, name: str, email: str, password: str) -> User:
        """
        Create an unverified account and mail its verification key.

        The mail is enqueued before the record is created; if it cannot be
        enqueued no record exists afterwards.

        Raises:
            EmailAlreadyRegistered: If the email is taken
            MailDispatchError: If the verification mail is rejected
        """
        email_clean = self._normalize_email(email)
        password_hash = await asyncio.to_thread(self._hasher.hash, password)
        key = self._new_token()

        await self._send_verification(name, email_clean, key)

        try:
            user = self._store.create_one(
                email=email_clean,
                name=name,
                password_hash=password_hash,
                verify_key=key,
            )
        except DuplicateRecord as exc:
            raise EmailAlreadyRegistered(email_clean) from exc
        logger.info("Registered user %s", user.id)
        return user

    async def login(self, email: str, password: str) -> User:
        """
        Check credentials for a verified account.

        Raises:
            UserNotFound: If no account uses the email
            UserNotVerified: If the email has not been verified
            CredentialMismatch: If the password is wrong
        """
        user = self._users.find_one(email=self._normalize_email(email))
        if not user.is_verified:
            logger.warning("Login refused for unverified user %s", user.id)
            raise UserNotVerified()
        await asyncio.to_thread(self._hasher.compare, user.password_hash, password)
        return user

    async def change_password(self, user_id: str, previous: str, new: str) -> None:
        """
        Replace the password of an account after checking the previous one.

        Raises:
            UserNotFound: If the account does not exist
            CredentialMismatch: If ``previous`` is wrong; nothing is updated
        """
        next_hash = await asyncio.to_thread(self._hasher.hash, new)

        user = self._users.find_one(id=user_id)
        await asyncio.to_thread(self._hasher.compare, user.password_hash, previous)

        self._users.update({"id": user_id}, password_hash=next_hash)
        logger.info("Password changed for user %s", user_id)

    async def re_request_verification(self, email: str) -> None:
        """
        Mail a fresh verification key, superseding the pending one.

        Raises:
            UserNotFound: If no account uses the email
            MailDispatchError: If the mail is rejected; the stored key is kept
        """
        email_clean = self._normalize_email(email)
        key = self._new_token()

        user = self._users.find_one(email=email_clean)
        await self._send_verification(user.name, email_clean, key)

        self._users.update({"email": email_clean}, verify_key=key)
        logger.info("Issued new verification key for user %s", user.id)

    async def validate_email_verification_key(self, key: str) -> bool:
        """Mark the account holding ``key`` as verified.

        Returns False for unknown keys. Store failures propagate.
        """
        if not key:
            return False
        try:
            user = self._store.update({"verify_key": key}, verified_at=datetime.now(timezone.utc))
        except RecordNotFound:
            return False
        logger.info("Verified email for user %s", user.id)
        return True

    async def _send_verification(self, name: str, email: str, key: str) -> None:
        await self._dispatcher.enqueue(name, email, VERIFY_SUBJECT, VERIFY_TEMPLATE, {"key": key})

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()
