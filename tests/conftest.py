"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and cooldown boundaries
- A recording notifier that captures delivered codes and tokens
- A fully wired CredentialService over the in-memory store
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from passgate.adapters.crypto import BcryptPasswordHasher, JwtTokenIssuer
from passgate.adapters.repository.memory import InMemoryCredentialStore
from passgate.domain.credentials import CredentialPolicy, CredentialService
from passgate.domain.models import OtpMethod

TEST_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"

# Settings() requires a signing key; code paths that read settings get this one
os.environ.setdefault("JWT_SECRET_KEY", TEST_SECRET_KEY)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """Notifier double that remembers everything it was asked to send."""

    def __init__(self) -> None:
        self.otps: list[tuple[str, OtpMethod, str]] = []
        self.reset_tokens: list[tuple[str, str]] = []

    def send_otp(self, destination: str, method: OtpMethod, code: str) -> None:
        self.otps.append((destination, method, code))

    def send_reset_token(self, destination: str, token: str) -> None:
        self.reset_tokens.append((destination, token))

    @property
    def last_code(self) -> str:
        return self.otps[-1][2]

    @property
    def last_reset_token(self) -> str:
        return self.reset_tokens[-1][1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(scope="session")
def hasher() -> BcryptPasswordHasher:
    """bcrypt at the minimum work factor to keep the suite fast."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def issuer() -> JwtTokenIssuer:
    return JwtTokenIssuer(secret_key=TEST_SECRET_KEY)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def service(
    store: InMemoryCredentialStore,
    notifier: RecordingNotifier,
    hasher: BcryptPasswordHasher,
    issuer: JwtTokenIssuer,
    clock: FakeClock,
) -> CredentialService:
    """CredentialService over the in-memory store with default policy."""
    return CredentialService(
        store=store,
        notifier=notifier,
        hasher=hasher,
        token_issuer=issuer,
        policy=CredentialPolicy(),
        clock=clock,
    )
