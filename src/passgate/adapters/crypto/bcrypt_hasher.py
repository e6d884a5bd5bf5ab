"""
bcrypt adapter - Implements PasswordHasher protocol.

Used for both account passwords and password-reset tokens. bcrypt's
comparison is constant-time and its cost factor dominates response time,
which masks the remaining timing variation between code paths.
"""

import bcrypt

from passgate.domain.exceptions import PasswordTooLong

# bcrypt input limit, counted in UTF-8 bytes rather than characters
BCRYPT_MAX_BYTES = 72


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, rounds: int = 10) -> None:
        """
        Initialize hasher and precompute the timing-equalization hash.

        Args:
            rounds: bcrypt work factor (log2 iterations)
        """
        self._rounds = rounds
        self._dummy_hash = self.hash("dummy_password_for_timing_safety")

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, secret: str) -> str:
        """
        Raises:
            PasswordTooLong: secret encodes to more than 72 UTF-8 bytes
        """
        encoded = secret.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise PasswordTooLong(f"password exceeds {BCRYPT_MAX_BYTES} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode()

    def verify(self, secret: str, hashed: str) -> bool:
        """Return True on match. Malformed hashes and over-long secrets are simply a mismatch."""
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode())
        except ValueError:
            return False

    def verify_dummy(self, secret: str) -> None:
        self.verify(secret, self._dummy_hash)
