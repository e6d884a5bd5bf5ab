"""
In-memory repository adapter - Implements CredentialStore protocol.

Keeps all records in process memory behind a single lock, so every method
is atomic with respect to the others. Intended for development and tests;
nothing survives a restart.
"""

import threading
from dataclasses import replace
from datetime import datetime

from passgate.domain.exceptions import NotFound
from passgate.domain.models import Account, OtpChallenge, OtpMethod, PendingRegistration


class InMemoryCredentialStore:
    """
    Implements CredentialStore protocol with dicts and a lock.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, PendingRegistration] = {}
        self._accounts: dict[str, Account] = {}
        self._challenges: dict[str, OtpChallenge] = {}

    def create_pending_registration(self, pending: PendingRegistration) -> bool:
        with self._lock:
            if self._email_taken(pending.email):
                return False
            self._pending[pending.id] = pending
            return True

    def find_pending_by_id(self, pending_id: str) -> PendingRegistration | None:
        with self._lock:
            return self._pending.get(pending_id)

    def find_account_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    def find_account_by_email(self, email: str) -> Account | None:
        with self._lock:
            return next((a for a in self._accounts.values() if a.email == email), None)

    def create_otp_challenge(self, challenge: OtpChallenge) -> None:
        with self._lock:
            if challenge.pending_id not in self._pending:
                raise NotFound(f"pending registration {challenge.pending_id}")
            self._challenges[challenge.id] = challenge

    def find_latest_otp_challenge(
        self, pending_id: str, method: OtpMethod
    ) -> OtpChallenge | None:
        with self._lock:
            matches = [
                c
                for c in self._challenges.values()
                if c.pending_id == pending_id and c.method == method
            ]
        return max(matches, key=lambda c: c.created_at, default=None)

    def find_usable_otp_challenge(
        self, pending_id: str, code: str, now: datetime
    ) -> OtpChallenge | None:
        with self._lock:
            matches = [
                c
                for c in self._challenges.values()
                if c.pending_id == pending_id and c.code == code and c.is_usable(now)
            ]
        return min(matches, key=lambda c: c.created_at, default=None)

    def mark_otp_verified(self, challenge_id: str, verified_at: datetime) -> bool:
        with self._lock:
            challenge = self._challenges.get(challenge_id)
            if challenge is None or challenge.verified_at is not None:
                return False
            self._challenges[challenge_id] = replace(challenge, verified_at=verified_at)
            return True

    def promote_pending_registration(
        self, pending_id: str, account_id: str, created_at: datetime
    ) -> Account | None:
        with self._lock:
            pending = self._pending.get(pending_id)
            if pending is None:
                return None
            account = Account(
                id=account_id,
                full_name=pending.full_name,
                email=pending.email,
                password_hash=pending.password_hash,
                created_at=created_at,
            )
            self._accounts[account_id] = account
            self._drop_challenges(pending_id)
            del self._pending[pending_id]
            return account

    def set_reset_token(
        self, account_id: str, token_hash: str, expires_at: datetime
    ) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                self._accounts[account_id] = replace(
                    account, reset_token_hash=token_hash, reset_token_expires_at=expires_at
                )

    def find_reset_candidates(self, now: datetime) -> list[Account]:
        with self._lock:
            return [
                a
                for a in self._accounts.values()
                if a.reset_token_hash is not None
                and a.reset_token_expires_at is not None
                and a.reset_token_expires_at >= now
            ]

    def complete_password_reset(
        self, account_id: str, token_hash: str, password_hash: str
    ) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None or account.reset_token_hash != token_hash:
                return False
            self._accounts[account_id] = replace(
                account,
                password_hash=password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
            )
            return True

    def update_password_hash(self, account_id: str, password_hash: str) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                self._accounts[account_id] = replace(account, password_hash=password_hash)

    def purge_pending_registrations(self, created_before: datetime) -> int:
        with self._lock:
            stale = [p.id for p in self._pending.values() if p.created_at < created_before]
            for pending_id in stale:
                self._drop_challenges(pending_id)
                del self._pending[pending_id]
            return len(stale)

    def _email_taken(self, email: str) -> bool:
        # Caller holds the lock
        return any(a.email == email for a in self._accounts.values()) or any(
            p.email == email for p in self._pending.values()
        )

    def _drop_challenges(self, pending_id: str) -> None:
        # Caller holds the lock
        for challenge_id in [
            c.id for c in self._challenges.values() if c.pending_id == pending_id
        ]:
            del self._challenges[challenge_id]
