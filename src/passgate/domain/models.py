"""
Domain records for the credential lifecycle.

PendingRegistration -> (OTP confirmed) -> Account. OtpChallenge rows belong
to a pending registration and are purged when it is promoted.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class OtpMethod(str, Enum):
    """Delivery channel for a one-time passcode."""

    EMAIL = "email"
    PHONE = "phone"


@dataclass(frozen=True)
class PendingRegistration:
    id: str
    full_name: str
    email: str
    password_hash: str
    created_at: datetime
    phone_number: str | None = None


@dataclass(frozen=True)
class Account:
    """
    Confirmed account as persisted.

    reset_token_hash and reset_token_expires_at are either both set or both None.
    """

    id: str
    full_name: str
    email: str
    password_hash: str
    created_at: datetime
    reset_token_hash: str | None = None
    reset_token_expires_at: datetime | None = None

    def to_view(self) -> "AccountView":
        return AccountView(
            id=self.id,
            full_name=self.full_name,
            email=self.email,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class AccountView:
    """Public projection of an Account. Carries no secret material."""

    id: str
    full_name: str
    email: str
    created_at: datetime


@dataclass(frozen=True)
class OtpChallenge:
    """
    One issued passcode.

    Usable while verified_at is None and now <= expires_at.
    """

    id: str
    code: str
    pending_id: str
    method: OtpMethod
    expires_at: datetime
    created_at: datetime
    verified_at: datetime | None = None

    def is_usable(self, now: datetime) -> bool:
        return self.verified_at is None and self.expires_at >= now


@dataclass(frozen=True)
class RegistrationResult:
    pending_id: str
    status: str = "pending"


@dataclass(frozen=True)
class AuthResult:
    """Account projection plus a freshly issued bearer token."""

    account: AccountView
    access_token: str
