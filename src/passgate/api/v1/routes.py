"""
API v1 routes.

Defines REST endpoints for the credential lifecycle under /v1/auth.
Handlers are plain ``def`` so FastAPI runs them in its threadpool; the
domain service blocks on bcrypt and the database.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from passgate.api.dependencies import get_credential_service, get_current_account_id
from passgate.api.models import (
    AccountResponse,
    AuthResponse,
    ChangePasswordRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    OtpRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from passgate.domain.credentials import CredentialService
from passgate.domain.exceptions import CredentialError, ErrorKind, TooSoon

router = APIRouter(prefix="/auth", tags=["v1"])

# Status code and client-facing message per error kind. Messages stay
# generic: login never reveals whether the email exists.
_ERROR_RESPONSES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.DUPLICATE_EMAIL: (status.HTTP_409_CONFLICT, "Registration failed"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Not found"),
    ErrorKind.INVALID_CREDENTIALS: (status.HTTP_401_UNAUTHORIZED, "Invalid credentials"),
    ErrorKind.INVALID_CURRENT_PASSWORD: (
        status.HTTP_400_BAD_REQUEST,
        "Current password is incorrect",
    ),
    ErrorKind.INVALID_OR_EXPIRED_OTP: (status.HTTP_400_BAD_REQUEST, "Invalid or expired OTP"),
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: (
        status.HTTP_400_BAD_REQUEST,
        "Invalid or expired token",
    ),
    ErrorKind.TOO_SOON: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Please wait before resending OTP",
    ),
    ErrorKind.DELIVERY_FAILURE: (status.HTTP_502_BAD_GATEWAY, "Delivery failed"),
    ErrorKind.STORE_FAILURE: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service temporarily unavailable",
    ),
    ErrorKind.PASSWORD_TOO_LONG: (
        status.HTTP_400_BAD_REQUEST,
        "Password is too long",
    ),
}


def _http_error(exc: CredentialError) -> HTTPException:
    status_code, detail = _ERROR_RESPONSES[exc.kind]
    headers = None
    if isinstance(exc, TooSoon):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def _error_docs(*kinds: ErrorKind) -> dict:
    return {
        _ERROR_RESPONSES[kind][0]: {"model": ErrorResponse, "description": _ERROR_RESPONSES[kind][1]}
        for kind in kinds
    }


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_error_docs(ErrorKind.DUPLICATE_EMAIL, ErrorKind.STORE_FAILURE),
    summary="Register a new user",
    description="Reserve an email address. The account is created once an OTP "
    "requested via /otp/send is verified.",
)
def register(
    request_data: RegisterRequest,
    service: CredentialService = Depends(get_credential_service),
) -> RegisterResponse:
    """
    Register a new user pending OTP verification.

    - **first_name**, **last_name**: Joined into the account's full name
    - **email**: Valid email address to register
    - **password**: Password (minimum 8 characters)
    - **phone_number**: Optional, required only for phone OTP delivery
    """
    try:
        result = service.register(
            request_data.full_name,
            request_data.email,
            request_data.password,
            request_data.phone_number,
        )
    except CredentialError as e:
        raise _http_error(e) from None
    return RegisterResponse(
        status=result.status,
        message="Registration successful. Please verify your account via OTP.",
        pending_id=result.pending_id,
    )


@router.post(
    "/otp/send",
    response_model=MessageResponse,
    responses=_error_docs(ErrorKind.NOT_FOUND, ErrorKind.DELIVERY_FAILURE),
    summary="Send a one-time passcode",
)
def send_otp(
    request_data: OtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        service.send_otp(request_data.pending_id, request_data.method)
    except CredentialError as e:
        raise _http_error(e) from None
    return MessageResponse(message="OTP sent successfully")


@router.post(
    "/otp/resend",
    response_model=MessageResponse,
    responses=_error_docs(
        ErrorKind.NOT_FOUND, ErrorKind.TOO_SOON, ErrorKind.DELIVERY_FAILURE
    ),
    summary="Resend a one-time passcode",
    description="Fails with 429 if the previous code for the same method was "
    "sent less than the cooldown ago.",
)
def resend_otp(
    request_data: OtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        service.resend_otp(request_data.pending_id, request_data.method)
    except CredentialError as e:
        raise _http_error(e) from None
    return MessageResponse(message="OTP sent successfully")


@router.post(
    "/otp/verify",
    response_model=VerifyOtpResponse,
    responses=_error_docs(ErrorKind.INVALID_OR_EXPIRED_OTP, ErrorKind.NOT_FOUND),
    summary="Verify a passcode and activate the account",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: CredentialService = Depends(get_credential_service),
) -> VerifyOtpResponse:
    try:
        result = service.verify_otp(request_data.pending_id, request_data.code)
    except CredentialError as e:
        raise _http_error(e) from None
    return VerifyOtpResponse(
        status="verified",
        message="OTP verified successfully. User registered.",
        account=AccountResponse.from_view(result.account),
        access_token=result.access_token,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses=_error_docs(ErrorKind.INVALID_CREDENTIALS),
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: CredentialService = Depends(get_credential_service),
) -> AuthResponse:
    try:
        result = service.login(request_data.email, request_data.password)
    except CredentialError as e:
        raise _http_error(e) from None
    return AuthResponse(
        account=AccountResponse.from_view(result.account),
        access_token=result.access_token,
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses=_error_docs(ErrorKind.NOT_FOUND, ErrorKind.DELIVERY_FAILURE),
    summary="Request a password reset token",
)
def forgot_password(
    request_data: ForgotPasswordRequest,
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        service.forgot_password(request_data.email)
    except CredentialError as e:
        raise _http_error(e) from None
    return MessageResponse(message="Reset email sent")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses=_error_docs(ErrorKind.INVALID_OR_EXPIRED_TOKEN),
    summary="Reset password with an emailed token",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        service.reset_password(request_data.token, request_data.new_password)
    except CredentialError as e:
        raise _http_error(e) from None
    return MessageResponse(message="Password reset successfully")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses=_error_docs(
        ErrorKind.INVALID_CREDENTIALS,
        ErrorKind.INVALID_CURRENT_PASSWORD,
        ErrorKind.NOT_FOUND,
    ),
    summary="Change password (authenticated)",
    description="Requires an Authorization: Bearer token issued by /login or /otp/verify.",
)
def change_password(
    request_data: ChangePasswordRequest,
    account_id: str = Depends(get_current_account_id),
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    try:
        service.change_password(
            account_id, request_data.current_password, request_data.new_password
        )
    except CredentialError as e:
        raise _http_error(e) from None
    return MessageResponse(message="Password changed successfully")
