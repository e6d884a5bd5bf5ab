"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from passgate.adapters.crypto import BcryptPasswordHasher, JwtTokenIssuer
from passgate.adapters.repository.postgres import PostgresCredentialStore
from passgate.adapters.smtp.console import ConsoleNotifier
from passgate.config.settings import get_settings
from passgate.domain.credentials import CredentialPolicy, CredentialService
from passgate.domain.exceptions import InvalidCredentials

# Module-level singleton - ConsoleNotifier is stateless
_notifier = ConsoleNotifier()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> PostgresCredentialStore:
    """Create store with connection pool from app state."""
    pool = get_pool(request)
    return PostgresCredentialStore(pool)


def get_notifier() -> ConsoleNotifier:
    """Get console notifier (singleton)."""
    return _notifier


@lru_cache
def get_password_hasher() -> BcryptPasswordHasher:
    """bcrypt hasher, built once (its dummy hash costs one full hash)."""
    return BcryptPasswordHasher(rounds=get_settings().bcrypt_cost)


@lru_cache
def get_token_issuer() -> JwtTokenIssuer:
    settings = get_settings()
    return JwtTokenIssuer(
        secret_key=settings.jwt_secret_key,
        expires_in=timedelta(seconds=settings.access_token_expire_seconds),
        algorithm=settings.jwt_algorithm,
    )


def get_policy() -> CredentialPolicy:
    settings = get_settings()
    return CredentialPolicy(
        otp_length=settings.otp_length,
        otp_ttl=timedelta(seconds=settings.otp_ttl_seconds),
        resend_cooldown=timedelta(seconds=settings.resend_cooldown_seconds),
        reset_token_ttl=timedelta(seconds=settings.reset_token_ttl_seconds),
        pending_ttl=timedelta(seconds=settings.pending_ttl_seconds),
    )


def get_credential_service(request: Request) -> CredentialService:
    """
    Create credential service with injected dependencies.

    Wires together store, notifier, hasher and token issuer for the domain service.
    """
    return CredentialService(
        store=get_store(request),
        notifier=get_notifier(),
        hasher=get_password_hasher(),
        token_issuer=get_token_issuer(),
        policy=get_policy(),
    )


# HTTP Bearer security scheme for OpenAPI documentation
http_bearer = HTTPBearer()


def get_current_account_id(
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer),
    issuer: JwtTokenIssuer = Depends(get_token_issuer),
) -> str:
    """
    Resolve the account id from the Authorization: Bearer header.

    FastAPI's HTTPBearer rejects a missing or non-Bearer header before
    this runs; signature and expiry failures are turned into 401 here.
    """
    try:
        return issuer.decode(credentials.credentials)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
