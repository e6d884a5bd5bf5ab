"""
Domain exceptions - Semantic error types for the credential lifecycle.

Every error carries an ErrorKind tag so that boundary layers can map
outcomes without inspecting exception class hierarchies or messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Tagged outcome for every failure a credential operation can report."""

    DUPLICATE_EMAIL = "duplicate_email"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_CURRENT_PASSWORD = "invalid_current_password"
    INVALID_OR_EXPIRED_OTP = "invalid_or_expired_otp"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    TOO_SOON = "too_soon"
    DELIVERY_FAILURE = "delivery_failure"
    STORE_FAILURE = "store_failure"
    PASSWORD_TOO_LONG = "password_too_long"


class CredentialError(Exception):
    """Base class for credential domain errors."""

    kind: ErrorKind


class DuplicateEmail(CredentialError):
    """Email is held by an account or a pending registration."""

    kind = ErrorKind.DUPLICATE_EMAIL


class NotFound(CredentialError):
    """Pending registration or account does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidCredentials(CredentialError):
    """Unknown email or wrong password (deliberately indistinguishable)."""

    kind = ErrorKind.INVALID_CREDENTIALS


class InvalidCurrentPassword(CredentialError):
    kind = ErrorKind.INVALID_CURRENT_PASSWORD


class InvalidOrExpiredOtp(CredentialError):
    """No unused, unexpired challenge matches the submitted code."""

    kind = ErrorKind.INVALID_OR_EXPIRED_OTP


class InvalidOrExpiredToken(CredentialError):
    """No live reset token verifies against the submitted token."""

    kind = ErrorKind.INVALID_OR_EXPIRED_TOKEN


class TooSoon(CredentialError):
    """Resend requested inside the cooldown window."""

    kind = ErrorKind.TOO_SOON

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(f"retry after {retry_after_seconds}s")
        self.retry_after_seconds = retry_after_seconds


class DeliveryFailure(CredentialError):
    """Notifier could not deliver a code or token."""

    kind = ErrorKind.DELIVERY_FAILURE


class StoreFailure(CredentialError):
    """Underlying persistence error."""

    kind = ErrorKind.STORE_FAILURE


class PasswordTooLong(CredentialError):
    """Secret exceeds what the password hasher can represent."""

    kind = ErrorKind.PASSWORD_TOO_LONG
