"""
JWT adapter - Implements TokenIssuer protocol with PyJWT.

Tokens bind the account id (``sub``) and email, and expire after a fixed
window taken from configuration.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt

from passgate.domain.exceptions import InvalidCredentials
from passgate.domain.models import AccountView

logger = logging.getLogger(__name__)


class JwtTokenIssuer:
    """
    Implements TokenIssuer protocol via signed JWTs.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        secret_key: str,
        expires_in: timedelta = timedelta(days=1),
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            msg = "JWT secret key cannot be empty"
            raise ValueError(msg)

        self._secret_key = secret_key
        self._expires_in = expires_in
        self._algorithm = algorithm

    def issue(self, account: AccountView) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": account.id,
            "email": account.email,
            "iat": now,
            "exp": now + self._expires_in,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> str:
        """
        Validate token and return the account id it was issued for.

        Raises:
            InvalidCredentials: Expired, tampered or malformed token
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
            account_id = payload["sub"]
        except jwt.ExpiredSignatureError as e:
            raise InvalidCredentials("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected bearer token: %s", e)
            raise InvalidCredentials("Invalid token") from e
        except KeyError as e:
            raise InvalidCredentials("Malformed token payload") from e

        if not isinstance(account_id, str) or not account_id:
            raise InvalidCredentials("Malformed token payload")
        return account_id
