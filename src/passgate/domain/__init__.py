"""
Domain layer - Pure business logic with zero framework imports.

This package contains the credential lifecycle: OTP-confirmed registration,
login, and password recovery. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .credentials import CredentialPolicy, CredentialService
from .exceptions import (
    CredentialError,
    DeliveryFailure,
    DuplicateEmail,
    ErrorKind,
    InvalidCredentials,
    InvalidCurrentPassword,
    InvalidOrExpiredOtp,
    InvalidOrExpiredToken,
    NotFound,
    PasswordTooLong,
    StoreFailure,
    TooSoon,
)
from .models import (
    Account,
    AccountView,
    AuthResult,
    OtpChallenge,
    OtpMethod,
    PendingRegistration,
    RegistrationResult,
)
from .ports import CredentialStore, Notifier, PasswordHasher, TokenIssuer

__all__ = [
    "Account",
    "AccountView",
    "AuthResult",
    "CredentialError",
    "CredentialPolicy",
    "CredentialService",
    "CredentialStore",
    "DeliveryFailure",
    "DuplicateEmail",
    "ErrorKind",
    "InvalidCredentials",
    "InvalidCurrentPassword",
    "InvalidOrExpiredOtp",
    "InvalidOrExpiredToken",
    "Notifier",
    "NotFound",
    "OtpChallenge",
    "OtpMethod",
    "PasswordHasher",
    "PasswordTooLong",
    "PendingRegistration",
    "RegistrationResult",
    "StoreFailure",
    "TokenIssuer",
    "TooSoon",
]
