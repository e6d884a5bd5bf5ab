"""
PostgreSQL repository adapter - Implements CredentialStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Race Safety
-----------
1. **Email claim**: a transaction-scoped advisory lock keyed on the email
   serializes the claim against promotion of the same email. Under it, one
   INSERT ... WHERE NOT EXISTS ... ON CONFLICT statement checks accounts and
   pending registrations together; the UNIQUE constraints settle concurrent
   claims.

2. **Challenge consumption**: UPDATE ... WHERE verified_at IS NULL, so
   exactly one caller sees rowcount == 1.

3. **Promotion**: takes the same email advisory lock, then locks the
   pending row with SELECT FOR UPDATE; the account insert and both deletes
   run in the same transaction. A concurrent promotion blocks on the locks
   and then finds no row.

4. **Reset completion**: UPDATE ... WHERE reset_token_hash = <matched hash>
   clears the token in the same statement that replaces the password.

Every psycopg error is reported to the domain as StoreFailure, except a
challenge whose pending registration has vanished, which is NotFound.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from passgate.domain.exceptions import NotFound, StoreFailure
from passgate.domain.models import Account, OtpChallenge, OtpMethod, PendingRegistration

logger = logging.getLogger(__name__)

_PENDING_COLUMNS = "id, full_name, email, password_hash, created_at, phone_number"
_ACCOUNT_COLUMNS = (
    "id, full_name, email, password_hash, created_at, "
    "reset_token_hash, reset_token_expires_at"
)
_CHALLENGE_COLUMNS = "id, code, pending_id, method, expires_at, created_at, verified_at"

# Held until commit; serializes email claims with promotions of the same email
_EMAIL_LOCK_SQL = "SELECT pg_advisory_xact_lock(hashtext(%s))"


def _pending_from_row(row: tuple) -> PendingRegistration:
    return PendingRegistration(*row)


def _account_from_row(row: tuple) -> Account:
    return Account(*row)


def _challenge_from_row(row: tuple) -> OtpChallenge:
    return OtpChallenge(
        id=row[0],
        code=row[1],
        pending_id=row[2],
        method=OtpMethod(row[3]),
        expires_at=row[4],
        created_at=row[5],
        verified_at=row[6],
    )


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def _transaction(self) -> Iterator[psycopg.Cursor]:
        """Yield a cursor inside one transaction, committed on clean exit."""
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                yield cursor
                conn.commit()
        except psycopg.Error as e:
            logger.error("Credential store failure: %s", e)
            raise StoreFailure(str(e)) from e

    def create_pending_registration(self, pending: PendingRegistration) -> bool:
        """
        Atomically claim an email address for a new registration.

        Returns:
            True if the row was inserted, False if an account or another
            pending registration already holds the email
        """
        sql = """
            INSERT INTO pending_registrations
                (id, full_name, email, password_hash, phone_number, created_at)
            SELECT %s, %s, %s, %s, %s, %s
            WHERE NOT EXISTS (SELECT 1 FROM accounts WHERE email = %s)
            ON CONFLICT (email) DO NOTHING
        """
        params = (
            pending.id,
            pending.full_name,
            pending.email,
            pending.password_hash,
            pending.phone_number,
            pending.created_at,
            pending.email,
        )
        with self._transaction() as cursor:
            cursor.execute(_EMAIL_LOCK_SQL, (pending.email,))
            cursor.execute(sql, params)
            return cursor.rowcount == 1

    def find_pending_by_id(self, pending_id: str) -> PendingRegistration | None:
        sql = f"SELECT {_PENDING_COLUMNS} FROM pending_registrations WHERE id = %s"
        with self._transaction() as cursor:
            cursor.execute(sql, (pending_id,))
            row = cursor.fetchone()
        return _pending_from_row(row) if row is not None else None

    def find_account_by_id(self, account_id: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s"
        with self._transaction() as cursor:
            cursor.execute(sql, (account_id,))
            row = cursor.fetchone()
        return _account_from_row(row) if row is not None else None

    def find_account_by_email(self, email: str) -> Account | None:
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s"
        with self._transaction() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _account_from_row(row) if row is not None else None

    def create_otp_challenge(self, challenge: OtpChallenge) -> None:
        """
        Raises:
            NotFound: The pending registration was promoted or purged concurrently
        """
        sql = """
            INSERT INTO otp_challenges
                (id, code, pending_id, method, expires_at, created_at, verified_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            challenge.id,
            challenge.code,
            challenge.pending_id,
            challenge.method.value,
            challenge.expires_at,
            challenge.created_at,
            challenge.verified_at,
        )
        with self._transaction() as cursor:
            try:
                cursor.execute(sql, params)
            except psycopg.errors.ForeignKeyViolation:
                raise NotFound(f"pending registration {challenge.pending_id}") from None

    def find_latest_otp_challenge(
        self, pending_id: str, method: OtpMethod
    ) -> OtpChallenge | None:
        sql = f"""
            SELECT {_CHALLENGE_COLUMNS} FROM otp_challenges
            WHERE pending_id = %s AND method = %s
            ORDER BY created_at DESC
            LIMIT 1
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (pending_id, OtpMethod(method).value))
            row = cursor.fetchone()
        return _challenge_from_row(row) if row is not None else None

    def find_usable_otp_challenge(
        self, pending_id: str, code: str, now: datetime
    ) -> OtpChallenge | None:
        sql = f"""
            SELECT {_CHALLENGE_COLUMNS} FROM otp_challenges
            WHERE pending_id = %s
              AND code = %s
              AND verified_at IS NULL
              AND expires_at >= %s
            ORDER BY created_at ASC
            LIMIT 1
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (pending_id, code, now))
            row = cursor.fetchone()
        return _challenge_from_row(row) if row is not None else None

    def mark_otp_verified(self, challenge_id: str, verified_at: datetime) -> bool:
        sql = """
            UPDATE otp_challenges
            SET verified_at = %s
            WHERE id = %s AND verified_at IS NULL
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (verified_at, challenge_id))
            return cursor.rowcount == 1

    def promote_pending_registration(
        self, pending_id: str, account_id: str, created_at: datetime
    ) -> Account | None:
        """
        Create the account and remove the pending registration atomically.

        Takes the email advisory lock before SELECT FOR UPDATE, the same order
        as the email claim, so a registration for this email cannot slip in
        between the account insert and commit. Concurrent promotions of the
        same pending registration serialize; the loser finds no row and
        returns None.
        """
        email_sql = "SELECT email FROM pending_registrations WHERE id = %s"
        lock_sql = """
            SELECT full_name, email, password_hash
            FROM pending_registrations
            WHERE id = %s
            FOR UPDATE
        """
        insert_sql = f"""
            INSERT INTO accounts (id, full_name, email, password_hash, created_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_ACCOUNT_COLUMNS}
        """

        with self._transaction() as cursor:
            cursor.execute(email_sql, (pending_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            cursor.execute(_EMAIL_LOCK_SQL, (row[0],))

            cursor.execute(lock_sql, (pending_id,))
            pending = cursor.fetchone()
            if pending is None:
                return None

            full_name, email, password_hash = pending
            cursor.execute(insert_sql, (account_id, full_name, email, password_hash, created_at))
            account_row = cursor.fetchone()

            # Deletes last: challenges first (FK), then the pending row itself
            cursor.execute("DELETE FROM otp_challenges WHERE pending_id = %s", (pending_id,))
            cursor.execute("DELETE FROM pending_registrations WHERE id = %s", (pending_id,))

        return _account_from_row(account_row)

    def set_reset_token(
        self, account_id: str, token_hash: str, expires_at: datetime
    ) -> None:
        sql = """
            UPDATE accounts
            SET reset_token_hash = %s, reset_token_expires_at = %s
            WHERE id = %s
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (token_hash, expires_at, account_id))

    def find_reset_candidates(self, now: datetime) -> list[Account]:
        sql = f"""
            SELECT {_ACCOUNT_COLUMNS} FROM accounts
            WHERE reset_token_hash IS NOT NULL
              AND reset_token_expires_at >= %s
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (now,))
            rows = cursor.fetchall()
        return [_account_from_row(row) for row in rows]

    def complete_password_reset(
        self, account_id: str, token_hash: str, password_hash: str
    ) -> bool:
        sql = """
            UPDATE accounts
            SET password_hash = %s,
                reset_token_hash = NULL,
                reset_token_expires_at = NULL
            WHERE id = %s AND reset_token_hash = %s
        """
        with self._transaction() as cursor:
            cursor.execute(sql, (password_hash, account_id, token_hash))
            return cursor.rowcount == 1

    def update_password_hash(self, account_id: str, password_hash: str) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                "UPDATE accounts SET password_hash = %s WHERE id = %s",
                (password_hash, account_id),
            )

    def purge_pending_registrations(self, created_before: datetime) -> int:
        # otp_challenges rows go with their parent via ON DELETE CASCADE
        sql = "DELETE FROM pending_registrations WHERE created_at < %s"
        with self._transaction() as cursor:
            cursor.execute(sql, (created_before,))
            return cursor.rowcount


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/passgate/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).resolve().parents[4] / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
