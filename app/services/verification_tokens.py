"""Random tokens proving control of an email address."""

import secrets


def new_verification_token() -> str:
    return secrets.token_urlsafe(32)
