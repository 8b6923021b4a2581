"""
Classification of relational-store errors raised while inserting a profile.

:func:`classify_store_error` is a pure function: it only inspects the
exception, so the retry policy can be unit-tested without a database.
PostgreSQL drivers expose a SQLSTATE (``pgcode`` on psycopg2, ``sqlstate`` on
psycopg 3); SQLite does not, so its messages are matched as a fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

UNIQUE_VIOLATION = "23505"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"

# Exact SQLSTATEs treated as transient, besides the classes below
TRANSIENT_SQLSTATES = frozenset(
    {
        "40001",  # serialization_failure
        "40P01",  # deadlock_detected
        "57014",  # query_canceled (statement timeout)
        "57P01",  # admin_shutdown
        "57P02",  # crash_shutdown
        "57P03",  # cannot_connect_now
    }
)
# SQLSTATE classes: 08 connection exception, 53 insufficient resources
TRANSIENT_SQLSTATE_CLASSES = ("08", "53")

MSG_ALREADY_EXISTS = "An account with this email already exists"
MSG_REQUIRED_MISSING = "Required information is missing"
MSG_SKILL_LEVEL = "Skill level must be between 1.0 and 5.5"
MSG_PREFERRED_SPORT = "Preferred sport must be tennis, pickleball, or both"
MSG_INVALID_DATA = "Invalid profile data"
MSG_TRY_AGAIN = "Service temporarily unavailable. Please try again later"
MSG_GENERIC = "Unable to create account"


class StoreErrorKind(str, Enum):
    TRANSIENT = "transient"
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    CHECK = "check"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class StoreFailure:
    """
    Classified store error.

    :param kind: Error class; only ``TRANSIENT`` is retried.
    :param message: User-facing message, free of constraint internals.
    :param field: Offending column for check violations, if known.
    """

    kind: StoreErrorKind
    message: str
    field: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind is StoreErrorKind.TRANSIENT


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE carried by the DBAPI error wrapped in ``exc``."""
    orig = getattr(exc, "orig", None) or exc
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return str(code) if code else None


def is_transient_sqlstate(code: str) -> bool:
    return code in TRANSIENT_SQLSTATES or code[:2] in TRANSIENT_SQLSTATE_CLASSES


def _check_failure(text: str) -> StoreFailure:
    if "skill_level" in text:
        return StoreFailure(StoreErrorKind.CHECK, MSG_SKILL_LEVEL, "skill_level")
    if "preferred_sport" in text:
        return StoreFailure(StoreErrorKind.CHECK, MSG_PREFERRED_SPORT, "preferred_sport")
    return StoreFailure(StoreErrorKind.CHECK, MSG_INVALID_DATA)


def classify_store_error(exc: BaseException) -> StoreFailure:
    """
    Map a store exception to a :class:`StoreFailure`.

    :param exc: Exception raised by the insert (usually a SQLAlchemy error).
    :type exc: BaseException
    :returns: Classification with a safe user-facing message.
    :rtype: StoreFailure
    """
    if isinstance(exc, PoolTimeoutError):
        return StoreFailure(StoreErrorKind.TRANSIENT, MSG_TRY_AGAIN)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StoreFailure(StoreErrorKind.TRANSIENT, MSG_TRY_AGAIN)

    orig = getattr(exc, "orig", None)
    text = str(orig if orig is not None else exc).lower()
    code = sqlstate_of(exc)

    if code is not None:
        if is_transient_sqlstate(code):
            return StoreFailure(StoreErrorKind.TRANSIENT, MSG_TRY_AGAIN)
        if code == UNIQUE_VIOLATION:
            return StoreFailure(StoreErrorKind.UNIQUE, MSG_ALREADY_EXISTS, "email")
        if code == NOT_NULL_VIOLATION:
            return StoreFailure(StoreErrorKind.NOT_NULL, MSG_REQUIRED_MISSING)
        if code == CHECK_VIOLATION:
            constraint = getattr(getattr(orig, "diag", None), "constraint_name", None) or ""
            return _check_failure(f"{constraint.lower()} {text}")
        return StoreFailure(StoreErrorKind.UNKNOWN, MSG_GENERIC)

    # No SQLSTATE available (SQLite and friends)
    if isinstance(exc, OperationalError):
        return StoreFailure(StoreErrorKind.TRANSIENT, MSG_TRY_AGAIN)
    if not isinstance(exc, DBAPIError):
        return StoreFailure(StoreErrorKind.UNKNOWN, MSG_GENERIC)
    if "unique" in text:
        return StoreFailure(StoreErrorKind.UNIQUE, MSG_ALREADY_EXISTS, "email")
    if "not null" in text:
        return StoreFailure(StoreErrorKind.NOT_NULL, MSG_REQUIRED_MISSING)
    if "check" in text:
        return _check_failure(text)
    return StoreFailure(StoreErrorKind.UNKNOWN, MSG_GENERIC)
