from __future__ import annotations

from typing import Any, Mapping, Protocol


class NotificationDispatcher(Protocol):
    """Accepts templated mail for asynchronous delivery.

    ``enqueue`` returns once the mail is accepted. Anything that prevents
    acceptance raises ``MailDispatchError``; delivery itself happens later.
    """

    async def enqueue(
        self,
        recipient_name: str,
        recipient_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        ...
