from dataclasses import dataclass

from ..application.services.authentication_service import AuthenticationService
from ..domain.ports.persistence import UserRecordStore
from ..services.mail_dispatcher import MailDispatcher
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: UserRecordStore
    mail_dispatcher: MailDispatcher
    authentication_service: AuthenticationService
