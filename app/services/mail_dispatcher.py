from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..domain.errors import MailDispatchError
from .email_service import EmailService
from .mail_templates import RenderedMail, render

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MailJob:
    recipient_name: str
    recipient_address: str
    mail: RenderedMail


class MailDispatcher:
    """Background worker pool delivering templated mail.

    Mail is rendered when enqueued so template problems surface to the caller.
    Delivery happens on worker tasks; delivery failures are logged and dropped.
    """

    def __init__(
        self,
        email_service: EmailService,
        *,
        base_url: str,
        max_queue_size: int = 100,
        max_workers: int = 1,
    ) -> None:
        self._email = email_service
        self._base_url = base_url.rstrip("/")
        self._max_workers = max_workers
        self._queue: asyncio.Queue[Optional[MailJob]] = asyncio.Queue(maxsize=max_queue_size)
        self._workers: List[asyncio.Task[None]] = []
        self._shutdown = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._shutdown.is_set()

    async def start(self) -> None:
        if self._workers:
            return
        logger.info("Starting mail dispatcher with %s workers.", self._max_workers)
        self._shutdown.clear()
        loop = asyncio.get_running_loop()
        for _ in range(self._max_workers):
            task = loop.create_task(self._worker(), name="mail-dispatcher")
            self._workers.append(task)

    async def stop(self) -> None:
        if not self._workers:
            return
        logger.info("Stopping mail dispatcher; draining %s queued mails.", self._queue.qsize())
        self._shutdown.set()
        for _ in self._workers:
            await self._queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def enqueue(
        self,
        recipient_name: str,
        recipient_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        if not self.is_running:
            raise MailDispatchError("Mail dispatcher is not running.")
        data: Dict[str, Any] = {"name": recipient_name, "base_url": self._base_url}
        data.update(template_data)
        try:
            mail = render(template_id, subject, data)
        except KeyError as exc:
            raise MailDispatchError(f"Cannot render mail template {template_id!r}: missing {exc}") from exc
        try:
            self._queue.put_nowait(MailJob(recipient_name, recipient_address, mail))
        except asyncio.QueueFull as exc:
            logger.warning("Mail queue full; rejecting mail to %s.", recipient_address)
            raise MailDispatchError("Mail queue is full.") from exc

    async def _worker(self) -> None:
        while True:
            job = await self._queue.get()
            if job is None:
                self._queue.task_done()
                break
            try:
                await asyncio.to_thread(self._email.send, job.recipient_name, job.recipient_address, job.mail)
            except Exception:
                logger.exception("Failed to deliver mail to %s.", job.recipient_address)
            finally:
                self._queue.task_done()
