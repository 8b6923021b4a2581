"""Unit tests for the pure store-error classifier."""

from __future__ import annotations

import sqlite3
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from matchpoint.services.registration.store_errors import (
    MSG_ALREADY_EXISTS,
    MSG_GENERIC,
    MSG_PREFERRED_SPORT,
    MSG_REQUIRED_MISSING,
    MSG_SKILL_LEVEL,
    MSG_TRY_AGAIN,
    StoreErrorKind,
    classify_store_error,
    sqlstate_of,
)


class _PgError(Exception):
    """Stand-in for a psycopg2 error carrying a SQLSTATE."""

    def __init__(self, pgcode: str, message: str = "", constraint: str | None = None) -> None:
        super().__init__(message)
        self.pgcode = pgcode
        self.diag = SimpleNamespace(constraint_name=constraint)


class _Psycopg3Error(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__("boom")
        self.sqlstate = sqlstate


def _wrap(orig: Exception, cls=DBAPIError, **kwargs):
    return cls("INSERT INTO users ...", {}, orig, **kwargs)


class TestClassifyStoreError:
    @pytest.mark.parametrize(
        "code", ["08000", "08006", "40001", "40P01", "57014", "53300", "57P01", "57P02", "57P03"]
    )
    def test_transient_sqlstates(self, code):
        failure = classify_store_error(_wrap(_PgError(code)))

        assert failure.kind is StoreErrorKind.TRANSIENT
        assert failure.retryable is True
        assert failure.message == MSG_TRY_AGAIN

    def test_psycopg3_sqlstate_attribute(self):
        exc = _wrap(_Psycopg3Error("40P01"))

        assert sqlstate_of(exc) == "40P01"
        assert classify_store_error(exc).kind is StoreErrorKind.TRANSIENT

    def test_unique_violation(self):
        orig = _PgError("23505", 'duplicate key value violates unique constraint "uq_users_email"')
        exc = _wrap(orig, IntegrityError)
        failure = classify_store_error(exc)

        assert failure.kind is StoreErrorKind.UNIQUE
        assert failure.retryable is False
        assert failure.message == MSG_ALREADY_EXISTS
        assert "uq_users_email" not in failure.message

    def test_not_null_violation(self):
        failure = classify_store_error(_wrap(_PgError("23502"), IntegrityError))

        assert failure.kind is StoreErrorKind.NOT_NULL
        assert failure.message == MSG_REQUIRED_MISSING

    @pytest.mark.parametrize(
        ("constraint", "message", "field"),
        [
            ("ck_users_skill_level_range", MSG_SKILL_LEVEL, "skill_level"),
            ("ck_users_preferred_sport_valid", MSG_PREFERRED_SPORT, "preferred_sport"),
        ],
    )
    def test_check_violation_is_field_specific(self, constraint, message, field):
        orig = _PgError("23514", "new row violates check constraint", constraint)
        exc = _wrap(orig, IntegrityError)
        failure = classify_store_error(exc)

        assert failure.kind is StoreErrorKind.CHECK
        assert failure.message == message
        assert failure.field == field

    def test_other_sqlstate_is_generic(self):
        failure = classify_store_error(_wrap(_PgError("22001", "value too long for type")))

        assert failure.kind is StoreErrorKind.UNKNOWN
        assert failure.message == MSG_GENERIC

    def test_invalidated_connection_is_transient(self):
        exc = _wrap(Exception("server closed the connection"), connection_invalidated=True)

        assert classify_store_error(exc).kind is StoreErrorKind.TRANSIENT

    def test_pool_timeout_is_transient(self):
        exc = PoolTimeoutError("QueuePool limit of size 20 overflow 0 reached")

        assert classify_store_error(exc).kind is StoreErrorKind.TRANSIENT

    # -------------------------- SQLite fallback --------------------------- #

    def test_sqlite_unique(self):
        exc = _wrap(sqlite3.IntegrityError("UNIQUE constraint failed: users.email"), IntegrityError)

        assert classify_store_error(exc).kind is StoreErrorKind.UNIQUE

    def test_sqlite_not_null(self):
        exc = _wrap(sqlite3.IntegrityError("NOT NULL constraint failed: users.name"), IntegrityError)

        assert classify_store_error(exc).kind is StoreErrorKind.NOT_NULL

    def test_sqlite_check(self):
        exc = _wrap(
            sqlite3.IntegrityError("CHECK constraint failed: ck_users_skill_level_range"),
            IntegrityError,
        )
        failure = classify_store_error(exc)

        assert failure.kind is StoreErrorKind.CHECK
        assert failure.field == "skill_level"

    def test_sqlite_operational_is_transient(self):
        exc = _wrap(sqlite3.OperationalError("database is locked"), OperationalError)

        assert classify_store_error(exc).kind is StoreErrorKind.TRANSIENT

    def test_non_database_error_is_generic(self):
        failure = classify_store_error(RuntimeError("unique check not null"))

        assert failure.kind is StoreErrorKind.UNKNOWN
        assert failure.message == MSG_GENERIC
