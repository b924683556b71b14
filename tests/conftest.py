"""Shared fixtures for the account lifecycle tests."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest

from app.application.services.authentication_service import AuthenticationService
from app.domain.errors import RecordNotFound
from app.infrastructure.persistence.sqlite import SQLitePersistence


@dataclass
class SentMail:
    recipient_name: str
    recipient_address: str
    subject: str
    template_id: str
    template_data: Dict[str, Any]
    recipient_stored: bool


@dataclass
class RecordingDispatcher:
    """Dispatcher double that records mail and notes whether the recipient was already stored."""

    store: Optional[SQLitePersistence] = None
    error: Optional[Exception] = None
    sent: List[SentMail] = field(default_factory=list)

    async def enqueue(self, recipient_name, recipient_address, subject, template_id, template_data):
        if self.error is not None:
            raise self.error
        self.sent.append(
            SentMail(
                recipient_name=recipient_name,
                recipient_address=recipient_address,
                subject=subject,
                template_id=template_id,
                template_data=dict(template_data),
                recipient_stored=self._is_stored(recipient_address),
            )
        )

    def _is_stored(self, email: str) -> bool:
        if self.store is None:
            return False
        try:
            self.store.find_one(email=email)
        except RecordNotFound:
            return False
        return True


@pytest.fixture
def store(tmp_path):
    persistence = SQLitePersistence(tmp_path / "accounts.db")
    yield persistence
    persistence.close()


@pytest.fixture
def dispatcher(store):
    return RecordingDispatcher(store=store)


@pytest.fixture
def service(store, dispatcher):
    return AuthenticationService(store, dispatcher)
