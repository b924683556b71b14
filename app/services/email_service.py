"""Service for sending emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from .mail_templates import RenderedMail

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Accounts",
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send(self, to_name: str, to_email: str, mail: RenderedMail) -> None:
        """
        Send a rendered email.

        Args:
            to_name: Recipient display name
            to_email: Recipient email
            mail: Rendered subject and bodies

        Raises:
            smtplib.SMTPException: If the SMTP server rejects the message
            OSError: If the SMTP server cannot be reached
        """
        if not self.enabled:
            # Development mode: no SMTP configured
            logger.info("SMTP disabled; email to %s: %s\n%s", to_email, mail.subject, mail.text_body)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = mail.subject
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = formataddr((to_name, to_email))

        msg.attach(MIMEText(mail.text_body, "plain", "utf-8"))
        msg.attach(MIMEText(mail.html_body, "html", "utf-8"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)
