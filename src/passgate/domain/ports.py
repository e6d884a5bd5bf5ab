"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from typing import Protocol

from .models import Account, AccountView, OtpChallenge, OtpMethod, PendingRegistration


class CredentialStore(Protocol):
    """
    Port interface for credential persistence.

    Implementations must raise StoreFailure for infrastructure errors and
    must make every method below atomic on its own.
    """

    def create_pending_registration(self, pending: PendingRegistration) -> bool:
        """
        Atomically claim pending.email for a new registration.

        Returns:
            True if stored, False if the email is held by an Account or
            another PendingRegistration
        """
        ...

    def find_pending_by_id(self, pending_id: str) -> PendingRegistration | None: ...

    def find_account_by_id(self, account_id: str) -> Account | None: ...

    def find_account_by_email(self, email: str) -> Account | None: ...

    def create_otp_challenge(self, challenge: OtpChallenge) -> None:
        """Raises NotFound if challenge.pending_id no longer exists."""
        ...

    def find_latest_otp_challenge(
        self, pending_id: str, method: OtpMethod
    ) -> OtpChallenge | None:
        """Most recently created challenge for (pending_id, method), used or not."""
        ...

    def find_usable_otp_challenge(
        self, pending_id: str, code: str, now: datetime
    ) -> OtpChallenge | None:
        """
        Earliest challenge matching pending_id and code exactly with
        verified_at NULL and expires_at >= now.
        """
        ...

    def mark_otp_verified(self, challenge_id: str, verified_at: datetime) -> bool:
        """
        Consume a challenge.

        Returns:
            True if this call set verified_at, False if it was already set
        """
        ...

    def promote_pending_registration(
        self, pending_id: str, account_id: str, created_at: datetime
    ) -> Account | None:
        """
        Convert a pending registration into an Account in one transaction.

        Creates the Account from the pending record, deletes every
        OtpChallenge owned by pending_id, then deletes the pending record.

        Returns:
            The new Account, or None if the pending record no longer exists
        """
        ...

    def set_reset_token(
        self, account_id: str, token_hash: str, expires_at: datetime
    ) -> None: ...

    def find_reset_candidates(self, now: datetime) -> list[Account]:
        """Accounts with a reset token hash whose expiry is >= now."""
        ...

    def complete_password_reset(
        self, account_id: str, token_hash: str, password_hash: str
    ) -> bool:
        """
        Replace the password and clear both reset-token fields, but only if
        the stored reset-token hash still equals token_hash.

        Returns:
            True if the reset was applied, False if the token was consumed
        """
        ...

    def update_password_hash(self, account_id: str, password_hash: str) -> None: ...

    def purge_pending_registrations(self, created_before: datetime) -> int:
        """Delete pending registrations (and their challenges) created before the cutoff."""
        ...


class Notifier(Protocol):
    """Port interface for outbound delivery."""

    def send_otp(self, destination: str, method: OtpMethod, code: str) -> None:
        """
        Deliver a one-time passcode.

        Args:
            destination: Email address or phone number
            method: Channel matching destination
            code: Numeric passcode
        """
        ...

    def send_reset_token(self, destination: str, token: str) -> None: ...


class PasswordHasher(Protocol):
    """One-way salted hash. verify() never raises on malformed hashes."""

    def hash(self, secret: str) -> str:
        """Raises PasswordTooLong when secret exceeds the algorithm's input limit."""
        ...

    def verify(self, secret: str, hashed: str) -> bool: ...

    def verify_dummy(self, secret: str) -> None:
        """Spend one verification's worth of work against a throwaway hash."""
        ...


class TokenIssuer(Protocol):
    """Mints and checks signed, time-limited bearer tokens."""

    def issue(self, account: AccountView) -> str: ...

    def decode(self, token: str) -> str:
        """
        Validate a bearer token.

        Returns:
            The account id bound to the token

        Raises:
            InvalidCredentials: bad signature, expired or malformed token
        """
        ...
