"""Cryptographic adapters - password hashing and bearer tokens."""

from .bcrypt_hasher import BcryptPasswordHasher
from .jwt_issuer import JwtTokenIssuer

__all__ = ["BcryptPasswordHasher", "JwtTokenIssuer"]
