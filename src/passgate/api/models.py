"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from passgate.adapters.crypto.bcrypt_hasher import BCRYPT_MAX_BYTES
from passgate.domain.models import AccountView, OtpMethod

_PASSWORD_MAX = BCRYPT_MAX_BYTES


def _check_password_bytes(value: str) -> str:
    """Enforce bcrypt's byte limit; max_length only counts characters."""
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
    return value


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(
        ...,
        min_length=8,
        max_length=_PASSWORD_MAX,
        description="User password (min 8 characters)",
    )
    phone_number: str | None = Field(
        default=None,
        pattern=r"^\+?[0-9]{6,15}$",
        description="Optional destination for phone OTP delivery",
    )

    check_password_bytes = field_validator("password")(_check_password_bytes)

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}"


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    status: str
    message: str
    pending_id: str


class OtpRequest(BaseModel):
    """Request model for sending or resending a passcode."""

    pending_id: str = Field(..., min_length=1)
    method: OtpMethod = OtpMethod.EMAIL


class VerifyOtpRequest(BaseModel):
    pending_id: str = Field(..., min_length=1)
    code: str = Field(
        ...,
        min_length=4,
        max_length=10,
        pattern=r"^\d+$",
        description="Numeric one-time passcode",
    )


class AccountResponse(BaseModel):
    """Public account representation. Never carries password material."""

    id: str
    full_name: str
    email: str
    created_at: datetime

    @classmethod
    def from_view(cls, view: AccountView) -> "AccountResponse":
        return cls(
            id=view.id,
            full_name=view.full_name,
            email=view.email,
            created_at=view.created_at,
        )


class AuthResponse(BaseModel):
    """Response model for login."""

    account: AccountResponse
    access_token: str
    token_type: str = "bearer"


class VerifyOtpResponse(AuthResponse):
    status: str
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("password")(_check_password_bytes)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("new_password")(_check_password_bytes)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=_PASSWORD_MAX)
    new_password: str = Field(..., min_length=8, max_length=_PASSWORD_MAX)

    check_password_bytes = field_validator("current_password", "new_password")(_check_password_bytes)


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
