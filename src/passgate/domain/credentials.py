"""
Credential domain service - registration, OTP promotion and password recovery.

Lifecycle
=========

    register          -> PendingRegistration (email reserved)
    send/resend OTP   -> OtpChallenge (5-minute window, 60-second resend cooldown)
    verify OTP        -> challenge consumed, PendingRegistration promoted to Account
    login             -> bearer token
    forgot password   -> reset token hash + 15-minute expiry on the Account
    reset password    -> password replaced, reset token cleared (single use)
    change password   -> password replaced after re-checking the current one

Atomicity of individual transitions (email claim, challenge consumption,
promotion, reset completion) is delegated to the CredentialStore; this
service only sequences them so that deletes happen last.
"""

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .exceptions import (
    CredentialError,
    DeliveryFailure,
    DuplicateEmail,
    InvalidCredentials,
    InvalidCurrentPassword,
    InvalidOrExpiredOtp,
    InvalidOrExpiredToken,
    NotFound,
    TooSoon,
)
from .models import (
    AuthResult,
    OtpChallenge,
    OtpMethod,
    PendingRegistration,
    RegistrationResult,
)
from .ports import CredentialStore, Notifier, PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CredentialPolicy:
    """Tunable windows and sizes. Built from Settings by the API layer."""

    otp_length: int = 6
    otp_ttl: timedelta = timedelta(minutes=5)
    resend_cooldown: timedelta = timedelta(seconds=60)
    reset_token_ttl: timedelta = timedelta(minutes=15)
    pending_ttl: timedelta = timedelta(days=1)


@dataclass
class CredentialService:
    """
    Domain service for the credential lifecycle.

    Collaborators are supplied explicitly; the service holds no mutable
    state of its own, so one instance may serve concurrent requests.
    """

    store: CredentialStore
    notifier: Notifier
    hasher: PasswordHasher
    token_issuer: TokenIssuer
    policy: CredentialPolicy = field(default_factory=CredentialPolicy)
    clock: Callable[[], datetime] = utc_now

    def register(
        self,
        full_name: str,
        email: str,
        password: str,
        phone_number: str | None = None,
    ) -> RegistrationResult:
        """
        Reserve an email address pending OTP confirmation.

        Args:
            full_name: Display name copied onto the account later
            email: User's email address (will be normalized)
            password: User's password (will be hashed)
            phone_number: Optional destination for phone OTP delivery

        Returns:
            RegistrationResult with the pending registration id

        Raises:
            DuplicateEmail: If an account or pending registration holds the email
            PasswordTooLong: password exceeds the hasher's input limit
        """
        normalized_email = self._normalize_email(email)
        pending = PendingRegistration(
            id=self._new_id(),
            full_name=full_name.strip(),
            email=normalized_email,
            password_hash=self.hasher.hash(password),
            created_at=self.clock(),
            phone_number=phone_number,
        )

        if not self.store.create_pending_registration(pending):
            raise DuplicateEmail(normalized_email)

        logger.info("Pending registration %s created", pending.id)
        return RegistrationResult(pending_id=pending.id)

    def send_otp(self, pending_id: str, method: OtpMethod | str) -> None:
        """
        Issue a fresh challenge and deliver it.

        Earlier unexpired challenges for the same registration stay valid.

        Raises:
            NotFound: No pending registration with pending_id
            DeliveryFailure: No destination for method, or the notifier failed
        """
        method = OtpMethod(method)
        pending = self.store.find_pending_by_id(pending_id)
        if pending is None:
            raise NotFound(f"pending registration {pending_id}")

        destination = self._destination(pending, method)
        now = self.clock()
        challenge = OtpChallenge(
            id=self._new_id(),
            code=self._generate_otp_code(),
            pending_id=pending_id,
            method=method,
            expires_at=now + self.policy.otp_ttl,
            created_at=now,
        )
        self.store.create_otp_challenge(challenge)

        self._deliver(self.notifier.send_otp, destination, method, challenge.code)
        logger.info("OTP challenge %s sent via %s", challenge.id, method.value)

    def resend_otp(self, pending_id: str, method: OtpMethod | str) -> None:
        """
        send_otp guarded by the per-method resend cooldown.

        Raises:
            TooSoon: The previous challenge for this method is younger than the cooldown
        """
        method = OtpMethod(method)
        latest = self.store.find_latest_otp_challenge(pending_id, method)
        if latest is not None:
            elapsed = self.clock() - latest.created_at
            if elapsed < self.policy.resend_cooldown:
                remaining = self.policy.resend_cooldown - elapsed
                logger.warning("OTP resend for %s rejected by cooldown", pending_id)
                raise TooSoon(max(1, int(remaining.total_seconds())))

        self.send_otp(pending_id, method)

    def verify_otp(self, pending_id: str, code: str) -> AuthResult:
        """
        Consume a challenge and promote the pending registration to an Account.

        Raises:
            InvalidOrExpiredOtp: No usable challenge matches, or it was consumed concurrently
            NotFound: The pending registration is gone (already promoted or purged)
        """
        now = self.clock()
        challenge = self.store.find_usable_otp_challenge(pending_id, code, now)
        if challenge is None:
            if self.store.find_pending_by_id(pending_id) is None:
                raise NotFound(f"pending registration {pending_id}")
            logger.warning("Rejected OTP for pending registration %s", pending_id)
            raise InvalidOrExpiredOtp(pending_id)

        # Consumption point: a challenge never verifies twice
        if not self.store.mark_otp_verified(challenge.id, now):
            raise InvalidOrExpiredOtp(pending_id)

        if self.store.find_pending_by_id(pending_id) is None:
            raise NotFound(f"pending registration {pending_id}")

        account = self.store.promote_pending_registration(
            pending_id, self._new_id(), now
        )
        if account is None:
            # Lost the promotion race to a concurrent verification
            raise NotFound(f"pending registration {pending_id}")

        logger.info("Pending registration %s promoted to account %s", pending_id, account.id)
        view = account.to_view()
        return AuthResult(account=view, access_token=self.token_issuer.issue(view))

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password.

        Unknown email and wrong password raise the same error after the same
        amount of hashing work.

        Raises:
            InvalidCredentials: On any mismatch
        """
        normalized_email = self._normalize_email(email)
        account = self.store.find_account_by_email(normalized_email)
        if account is None:
            self.hasher.verify_dummy(password)
            raise InvalidCredentials("Invalid credentials")

        if not self.hasher.verify(password, account.password_hash):
            raise InvalidCredentials("Invalid credentials")

        view = account.to_view()
        return AuthResult(account=view, access_token=self.token_issuer.issue(view))

    def forgot_password(self, email: str) -> None:
        """
        Store a hashed single-use reset token and mail the plaintext.

        Raises:
            NotFound: No account with email
            DeliveryFailure: The notifier failed
        """
        normalized_email = self._normalize_email(email)
        account = self.store.find_account_by_email(normalized_email)
        if account is None:
            raise NotFound("account")

        token = secrets.token_hex(32)
        expires_at = self.clock() + self.policy.reset_token_ttl
        self.store.set_reset_token(account.id, self.hasher.hash(token), expires_at)

        self._deliver(self.notifier.send_reset_token, account.email, token)
        logger.info("Password reset token issued for account %s", account.id)

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Replace the password of the account whose live reset token verifies.

        Every candidate is checked, even after a match, so the work done
        does not depend on where (or whether) the match sits in the scan.
        First verifying candidate wins; with 256-bit random tokens at most
        one candidate can verify.

        Raises:
            InvalidOrExpiredToken: No live token verifies, or it was consumed concurrently
            PasswordTooLong: new_password exceeds the hasher's input limit
        """
        candidates = self.store.find_reset_candidates(self.clock())
        if not candidates:
            self.hasher.verify_dummy(token)

        matched = None
        for candidate in candidates:
            verified = self.hasher.verify(token, candidate.reset_token_hash or "")
            if verified and matched is None:
                matched = candidate

        if matched is None:
            logger.warning("Password reset rejected: no live token matched")
            raise InvalidOrExpiredToken("Invalid or expired token")

        applied = self.store.complete_password_reset(
            matched.id, matched.reset_token_hash or "", self.hasher.hash(new_password)
        )
        if not applied:
            raise InvalidOrExpiredToken("Invalid or expired token")

        logger.info("Password reset completed for account %s", matched.id)

    def change_password(
        self, account_id: str, current_password: str, new_password: str
    ) -> None:
        """
        Raises:
            NotFound: No account with account_id
            InvalidCurrentPassword: current_password does not match
            PasswordTooLong: new_password exceeds the hasher's input limit
        """
        account = self.store.find_account_by_id(account_id)
        if account is None:
            raise NotFound(f"account {account_id}")

        if not self.hasher.verify(current_password, account.password_hash):
            raise InvalidCurrentPassword(account_id)

        self.store.update_password_hash(account_id, self.hasher.hash(new_password))
        logger.info("Password changed for account %s", account_id)

    def purge_stale_registrations(self) -> int:
        """
        Delete pending registrations older than policy.pending_ttl.

        Never runs implicitly; schedule it from outside.

        Returns:
            Number of pending registrations removed
        """
        cutoff = self.clock() - self.policy.pending_ttl
        purged = self.store.purge_pending_registrations(cutoff)
        if purged:
            logger.info("Purged %d stale pending registration(s)", purged)
        return purged

    def _deliver(self, send: Callable[..., None], *args: object) -> None:
        """Run a notifier call, reporting any failure as DeliveryFailure."""
        try:
            send(*args)
        except CredentialError:
            raise
        except Exception as e:
            logger.error("Notification delivery failed: %s", e)
            raise DeliveryFailure(str(e)) from e

    def _destination(self, pending: PendingRegistration, method: OtpMethod) -> str:
        if method is OtpMethod.EMAIL:
            return pending.email
        if not pending.phone_number:
            raise DeliveryFailure("no phone number on record")
        return pending.phone_number

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _generate_otp_code(self) -> str:
        """
        Generate a cryptographically secure numeric passcode.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self.policy.otp_length))

    def _new_id(self) -> str:
        return str(uuid.uuid4())
