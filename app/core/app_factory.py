from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.authentication_service import AuthenticationService
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.routers import users as users_router
from ..services.email_service import EmailService
from ..services.mail_dispatcher import MailDispatcher

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Account Lifecycle Service", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(users_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {"ok": True, "mail_dispatcher": container.mail_dispatcher.is_running}

    return app


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        persistence = SQLitePersistence(settings.database_path)
        email_service = EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            from_name=settings.smtp_from_name,
        )
        if not email_service.enabled:
            logger.warning("SMTP is not configured; outgoing mail will only be logged.")
        mail_dispatcher = MailDispatcher(
            email_service,
            base_url=settings.frontend_base_url,
            max_queue_size=settings.mail_queue_size,
            max_workers=settings.mail_worker_count,
        )
        authentication_service = AuthenticationService(persistence, mail_dispatcher)

        container = ApplicationContainer(
            settings=settings,
            persistence=persistence,
            mail_dispatcher=mail_dispatcher,
            authentication_service=authentication_service,
        )

        app.state.container = container  # type: ignore[attr-defined]

        await mail_dispatcher.start()
        try:
            yield
        finally:
            await mail_dispatcher.stop()
            persistence.close()

    return lifespan
