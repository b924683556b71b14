"""Registry of transactional mail templates."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass(slots=True, frozen=True)
class MailTemplate:
    text: str
    html: str


@dataclass(slots=True, frozen=True)
class RenderedMail:
    subject: str
    text_body: str
    html_body: str


_VERIFY_TEXT = """
Hi {name},

Please verify your email address by opening the link below:
{base_url}/auth/verify-email?token={key}

If you did not create an account, you can ignore this email.
"""

_VERIFY_HTML = """
<html>
    <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #1e293b;">Hi {name},</h2>
        <p style="color: #475569; line-height: 1.6;">
            Please verify your email address by clicking the button below.
        </p>
        <div style="text-align: center; margin: 30px 0;">
            <a href="{base_url}/auth/verify-email?token={key}"
               style="background-color: #3b82f6; color: white; padding: 15px 30px;
                      text-decoration: none; border-radius: 5px; display: inline-block;
                      font-weight: bold;">
                Verify email
            </a>
        </div>
        <p style="color: #64748b; font-size: 14px;">
            If you did not create an account, you can ignore this email.
        </p>
    </body>
</html>
"""

TEMPLATES: Dict[str, MailTemplate] = {
    "verify": MailTemplate(text=_VERIFY_TEXT, html=_VERIFY_HTML),
}


def render(template_id: str, subject: str, data: Mapping[str, Any]) -> RenderedMail:
    """
    Render a registered template with the given data.

    Values are HTML-escaped for the HTML body only.

    Raises:
        KeyError: If the template is unknown or data is missing a placeholder
    """
    template = TEMPLATES[template_id]
    return RenderedMail(
        subject=subject,
        text_body=template.text.format(**data),
        html_body=template.html.format(**{k: html.escape(str(v)) for k, v in data.items()}),
    )
