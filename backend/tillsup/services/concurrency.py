# Overview: Row locking, optimistic-lock commits and statement timeouts.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import AuthorizationTimeout, ConcurrencyConflict, ValidationError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def commit_versioned(message: str = "Record was modified by another request"):
    """
    Commit the current session, translating optimistic-lock failures.

    Models with version_id_col emit UPDATE ... WHERE version_id = :read_version.
    When another writer got there first the row count is zero, SQLAlchemy
    raises StaleDataError and the caller gets ConcurrencyConflict.
    A lock wait that fails (SQLite "database is locked", deadlock) is the same
    conflict from the caller's point of view.
    """
    try:
        db.session.commit()
    except (StaleDataError, OperationalError) as exc:
        db.session.rollback()
        raise ConcurrencyConflict(message) from exc


def check_expected_version(record, expected_version, message: str) -> None:
    """
    Compare a client-supplied version_id with the loaded row.

    None skips the check. Anything that is not a whole number is a
    ValidationError, a mismatch is ConcurrencyConflict.
    """
    if expected_version is None:
        return
    try:
        expected = int(expected_version)
    except (TypeError, ValueError):
        raise ValidationError("version_id must be a whole number")
    if expected != record.version_id:
        raise ConcurrencyConflict(message)


def apply_statement_timeout(timeout_ms: int) -> None:
    """
    Bound every statement in the current transaction.

    PostgreSQL honours SET LOCAL statement_timeout; other dialects rely on
    the Deadline checks between lookups.
    """
    if timeout_ms <= 0:
        raise AuthorizationTimeout("No time left to run authorization queries")
    if db.engine.dialect.name != "postgresql":
        return
    # 0 would mean "no limit" to PostgreSQL
    db.session.execute(text(f"SET LOCAL statement_timeout = {max(1, int(timeout_ms))}"))


def translate_timeouts(func, *, stage: str):
    """
    Run a lookup, turning database lock/statement timeouts into AuthorizationTimeout.
    """
    try:
        return func()
    except OperationalError as exc:
        db.session.rollback()
        raise AuthorizationTimeout(f"Database timed out during {stage}") from exc
