"""
Tests for registration, login, password change and email verification.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.application.services.authentication_service import AuthenticationService
from app.domain.errors import (
    CredentialMismatch,
    EmailAlreadyRegistered,
    MailDispatchError,
    RecordNotFound,
    UserNotFound,
    UserNotVerified,
)


async def _register_verified(service, store, name="Alice", email="a@x.com", password="pw1"):
    user = await service.register(name, email, password)
    assert await service.validate_email_verification_key(user.verify_key) is True
    return store.find_one(id=user.id)


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_unverified_user_with_key(self, service, store):
        user = await service.register("Alice", "a@x.com", "pw1")

        assert user.email == "a@x.com"
        assert user.name == "Alice"
        assert user.verified_at is None
        assert user.verify_key
        assert user.password_hash != "pw1"
        assert store.find_one(email="a@x.com").id == user.id

    @pytest.mark.asyncio
    async def test_mail_is_enqueued_before_record_exists(self, service, dispatcher):
        user = await service.register("Alice", "a@x.com", "pw1")

        assert len(dispatcher.sent) == 1
        mail = dispatcher.sent[0]
        assert mail.recipient_stored is False
        assert mail.recipient_name == "Alice"
        assert mail.recipient_address == "a@x.com"
        assert mail.subject == "Please verify your email address"
        assert mail.template_id == "verify"
        assert mail.template_data == {"key": user.verify_key}

    @pytest.mark.asyncio
    async def test_dispatch_failure_creates_no_record(self, service, store, dispatcher):
        dispatcher.error = MailDispatchError("queue full")

        with pytest.raises(MailDispatchError):
            await service.register("Alice", "a@x.com", "pw1")

        with pytest.raises(RecordNotFound):
            store.find_one(email="a@x.com")

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, service):
        await service.register("Alice", "a@x.com", "pw1")

        with pytest.raises(EmailAlreadyRegistered):
            await service.register("Other Alice", "A@X.com ", "pw2")

    @pytest.mark.asyncio
    async def test_token_failure_propagates_before_dispatch(self, store, dispatcher):
        token_factory = MagicMock(side_effect=OSError("no entropy"))
        service = AuthenticationService(store, dispatcher, token_factory=token_factory)

        with pytest.raises(OSError, match="no entropy"):
            await service.register("Alice", "a@x.com", "pw1")
        assert dispatcher.sent == []


class TestLogin:
    @pytest.mark.asyncio
    async def test_unverified_user_refused_even_with_correct_password(self, service):
        await service.register("Alice", "a@x.com", "pw1")

        with pytest.raises(UserNotVerified):
            await service.login("a@x.com", "pw1")
        with pytest.raises(UserNotVerified):
            await service.login("a@x.com", "wrong")

    @pytest.mark.asyncio
    async def test_verified_user_with_correct_password(self, service, store):
        registered = await _register_verified(service, store)

        user = await service.login("a@x.com", "pw1")

        assert user.id == registered.id
        assert user.name == "Alice"
        assert user.is_verified

    @pytest.mark.asyncio
    async def test_wrong_password(self, service, store):
        await _register_verified(service, store)

        with pytest.raises(CredentialMismatch):
            await service.login("a@x.com", "pw2")

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(UserNotFound):
            await service.login("nobody@x.com", "pw1")

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, service, store):
        await _register_verified(service, store, email="Alice@X.com")

        user = await service.login("  alice@x.COM", "pw1")

        assert user.email == "alice@x.com"


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_replaces_hash_when_previous_matches(self, service, store):
        user = await _register_verified(service, store)

        await service.change_password(user.id, "pw1", "pw2")

        with pytest.raises(CredentialMismatch):
            await service.login("a@x.com", "pw1")
        assert (await service.login("a@x.com", "pw2")).id == user.id

    @pytest.mark.asyncio
    async def test_wrong_previous_password_leaves_record_untouched(self, service, store):
        user = await _register_verified(service, store)

        with pytest.raises(CredentialMismatch):
            await service.change_password(user.id, "nope", "pw2")

        after = store.find_one(id=user.id)
        assert after.password_hash == user.password_hash
        assert after.updated_at == user.updated_at

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(UserNotFound):
            await service.change_password("missing", "pw1", "pw2")

    @pytest.mark.asyncio
    async def test_hash_failure_reported_before_lookup(self, dispatcher):
        store = MagicMock()
        hasher = MagicMock()
        hasher.hash.side_effect = ValueError("password too long")
        service = AuthenticationService(store, dispatcher, hasher=hasher)

        with pytest.raises(ValueError, match="too long"):
            await service.change_password("id", "pw1", "x" * 100)
        store.find_one.assert_not_called()


class TestReRequestVerification:
    @pytest.mark.asyncio
    async def test_replaces_key_and_supersedes_old_one(self, service, store, dispatcher):
        user = await service.register("Alice", "a@x.com", "pw1")
        old_key = user.verify_key

        await service.re_request_verification("a@x.com")

        updated = store.find_one(id=user.id)
        assert updated.verify_key != old_key
        assert updated.verified_at is None
        assert dispatcher.sent[-1].template_data == {"key": updated.verify_key}
        assert dispatcher.sent[-1].recipient_name == "Alice"

        assert await service.validate_email_verification_key(old_key) is False
        assert await service.validate_email_verification_key(updated.verify_key) is True

    @pytest.mark.asyncio
    async def test_unknown_email_raises_user_not_found(self, service, dispatcher):
        with pytest.raises(UserNotFound):
            await service.re_request_verification("nobody@x.com")
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_verified_account_keeps_verified_at(self, service, store):
        verified = await _register_verified(service, store)

        await service.re_request_verification("a@x.com")

        updated = store.find_one(id=verified.id)
        assert updated.verify_key != verified.verify_key
        assert updated.verified_at == verified.verified_at

        assert await service.validate_email_verification_key(updated.verify_key) is True
        assert store.find_one(id=verified.id).verified_at == verified.verified_at

    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_current_key(self, service, store, dispatcher):
        user = await service.register("Alice", "a@x.com", "pw1")
        dispatcher.error = MailDispatchError("queue full")

        with pytest.raises(MailDispatchError):
            await service.re_request_verification("a@x.com")

        assert store.find_one(id=user.id).verify_key == user.verify_key


class TestValidateEmailVerificationKey:
    @pytest.mark.asyncio
    async def test_unknown_key(self, service):
        assert await service.validate_email_verification_key("not-a-key") is False

    @pytest.mark.asyncio
    async def test_empty_key(self, service, store):
        await service.register("Alice", "a@x.com", "pw1")

        assert await service.validate_email_verification_key("") is False

    @pytest.mark.asyncio
    async def test_known_key_sets_verified_at(self, service, store):
        user = await service.register("Alice", "a@x.com", "pw1")
        before = datetime.now(timezone.utc)

        assert await service.validate_email_verification_key(user.verify_key) is True

        verified = store.find_one(id=user.id)
        assert verified.verified_at is not None
        assert verified.verified_at >= before.replace(microsecond=0)

    @pytest.mark.asyncio
    async def test_resubmitting_key_keeps_first_timestamp(self, service, store):
        user = await service.register("Alice", "a@x.com", "pw1")

        assert await service.validate_email_verification_key(user.verify_key) is True
        first = store.find_one(id=user.id).verified_at
        assert await service.validate_email_verification_key(user.verify_key) is True

        assert store.find_one(id=user.id).verified_at == first

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, dispatcher):
        store = MagicMock()
        store.update.side_effect = RuntimeError("database is locked")
        service = AuthenticationService(store, dispatcher)

        with pytest.raises(RuntimeError, match="locked"):
            await service.validate_email_verification_key("key")


class TestScenario:
    @pytest.mark.asyncio
    async def test_register_verify_login(self, service):
        user = await service.register("Alice", "a@x.com", "pw1")
        assert user.email == "a@x.com"
        assert user.verified_at is None

        assert await service.validate_email_verification_key(user.verify_key) is True

        logged_in = await service.login("a@x.com", "pw1")
        assert logged_in.id == user.id
        assert logged_in.name == "Alice"
