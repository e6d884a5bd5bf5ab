"""
Unit tests for PostgresCredentialStore without a database.

A MagicMock pool stands in for psycopg_pool; tests verify error mapping
and the locking statements issued around email claims and promotion.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import psycopg
import pytest

from passgate.adapters.repository.postgres import PostgresCredentialStore
from passgate.domain.exceptions import NotFound, StoreFailure
from passgate.domain.models import OtpChallenge, OtpMethod, PendingRegistration

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def pool() -> MagicMock:
    return MagicMock()


@pytest.fixture
def conn(pool: MagicMock) -> MagicMock:
    return pool.connection.return_value.__enter__.return_value


@pytest.fixture
def cursor(conn: MagicMock) -> MagicMock:
    return conn.cursor.return_value.__enter__.return_value


@pytest.fixture
def pg_store(pool: MagicMock) -> PostgresCredentialStore:
    return PostgresCredentialStore(pool)


def executed_sql(cursor: MagicMock) -> list[str]:
    return [" ".join(c.args[0].split()) for c in cursor.execute.call_args_list]


class TestStoreFailureMapping:
    """psycopg errors never leak past the adapter."""

    def test_unreachable_database_raises_store_failure(
        self, pool: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        pool.connection.side_effect = psycopg.OperationalError("connection refused")

        with pytest.raises(StoreFailure) as exc_info:
            pg_store.find_account_by_email("a@x.com")

        assert isinstance(exc_info.value.__cause__, psycopg.OperationalError)

    def test_query_error_raises_store_failure_without_commit(
        self, conn: MagicMock, cursor: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        cursor.execute.side_effect = psycopg.errors.UndefinedTable("relation does not exist")

        with pytest.raises(StoreFailure):
            pg_store.purge_pending_registrations(NOW)

        conn.commit.assert_not_called()

    def test_failure_is_logged(
        self, pool: MagicMock, pg_store: PostgresCredentialStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        pool.connection.side_effect = psycopg.OperationalError("connection refused")

        with pytest.raises(StoreFailure):
            pg_store.find_pending_by_id("p1")

        assert "Credential store failure" in caplog.text


class TestChallengeForVanishedRegistration:
    def test_foreign_key_violation_raises_not_found(
        self, conn: MagicMock, cursor: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        cursor.execute.side_effect = psycopg.errors.ForeignKeyViolation(
            "violates foreign key constraint"
        )
        challenge = OtpChallenge(
            id="c1",
            code="123456",
            pending_id="gone",
            method=OtpMethod.EMAIL,
            expires_at=NOW + timedelta(minutes=5),
            created_at=NOW,
        )

        with pytest.raises(NotFound):
            pg_store.create_otp_challenge(challenge)

        conn.commit.assert_not_called()


class TestEmailLocking:
    """Claims and promotions of one email serialize on an advisory lock."""

    def test_claim_takes_email_lock_before_insert(
        self, cursor: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        cursor.rowcount = 1
        pending = PendingRegistration(
            id="p1",
            full_name="Ada",
            email="a@x.com",
            password_hash="$2b$",
            created_at=NOW,
        )

        assert pg_store.create_pending_registration(pending) is True

        statements = executed_sql(cursor)
        assert statements[0] == "SELECT pg_advisory_xact_lock(hashtext(%s))"
        assert cursor.execute.call_args_list[0].args[1] == ("a@x.com",)
        assert statements[1].startswith("INSERT INTO pending_registrations")

    def test_promotion_takes_email_lock_before_row_lock(
        self, cursor: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        cursor.fetchone.side_effect = [
            ("a@x.com",),
            ("Ada", "a@x.com", "$2b$"),
            ("acc-1", "Ada", "a@x.com", "$2b$", NOW, None, None),
        ]

        account = pg_store.promote_pending_registration("p1", "acc-1", NOW)

        assert account.id == "acc-1"
        statements = executed_sql(cursor)
        lock_index = statements.index("SELECT pg_advisory_xact_lock(hashtext(%s))")
        row_lock_index = next(i for i, s in enumerate(statements) if s.endswith("FOR UPDATE"))
        insert_index = next(i for i, s in enumerate(statements) if s.startswith("INSERT INTO accounts"))
        assert lock_index < row_lock_index < insert_index
        assert cursor.execute.call_args_list[lock_index].args[1] == ("a@x.com",)

    def test_promotion_of_missing_pending_skips_lock(
        self, cursor: MagicMock, pg_store: PostgresCredentialStore
    ) -> None:
        cursor.fetchone.return_value = None

        assert pg_store.promote_pending_registration("gone", "acc-1", NOW) is None
        assert len(cursor.execute.call_args_list) == 1
