"""Errors raised by the account lifecycle workflow."""


class AccountError(Exception):
    """Base class for account lifecycle errors."""


class UserNotFound(AccountError):
    def __init__(self) -> None:
        super().__init__("user not found")


class UserNotVerified(AccountError):
    def __init__(self) -> None:
        super().__init__("user not verified")


class EmailAlreadyRegistered(AccountError):
    def __init__(self, email: str) -> None:
        super().__init__(f"email already registered: {email}")
        self.email = email


class CredentialMismatch(AccountError):
    """Raised by the password hasher when a password does not match its hash."""

    def __init__(self) -> None:
        super().__init__("password does not match")


class MailDispatchError(AccountError):
    """Raised when a mail cannot be accepted for delivery."""


class RecordNotFound(AccountError):
    """Raised by a record store when no record matches the criteria."""


class DuplicateRecord(AccountError):
    """Raised by a record store when a unique field is already taken."""
