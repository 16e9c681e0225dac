"""
Database error handling utilities.

``handle_db_error`` centralizes the pattern every endpoint follows around its
database work:

1. Refuse the operation with 503 while the database circuit is open
2. Roll back the session on error
3. Log the error with context
4. Translate it into an HTTPException with a user-facing message

Usage:
    from app.core.db_error_handling import handle_db_error

    with handle_db_error(db, "create blog"):
        db.add(blog)
        db.commit()
        db.refresh(blog)
        return success_response(...)
"""

import logging
import re
from contextlib import contextmanager
from typing import Callable, Generator, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    db_circuit_breaker,
)
from app.core.error_responses import ErrorMessages, raise_service_unavailable


logger = logging.getLogger(__name__)

T = TypeVar("T")

# "UNIQUE constraint failed: users.email" (SQLite)
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")
# "Key (email)=(a@b.c) already exists." (PostgreSQL)
_POSTGRES_UNIQUE = re.compile(r"Key \((\w+)\)=")
_FOREIGN_KEY_MARKERS = ("FOREIGN KEY constraint failed", "violates foreign key")
_UNIQUE_MARKERS = ("UNIQUE constraint failed", "duplicate key value")


def unique_violation_field(error: IntegrityError) -> Optional[str]:
    """Extract the offending column name from a unique constraint violation."""
    message = str(error.orig) if error.orig is not None else str(error)
    for pattern in (_SQLITE_UNIQUE, _POSTGRES_UNIQUE):
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def _integrity_error_detail(error: IntegrityError) -> str:
    message = str(error.orig) if error.orig is not None else str(error)
    if any(marker in message for marker in _FOREIGN_KEY_MARKERS):
        return ErrorMessages.RELATED_RECORD_NOT_FOUND
    field = unique_violation_field(error)
    if field:
        return ErrorMessages.field_already_exists(field)
    if any(marker in message for marker in _UNIQUE_MARKERS):
        return ErrorMessages.DUPLICATE_RECORD
    return ErrorMessages.CONSTRAINT_VIOLATION


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    breaker: Optional[CircuitBreaker] = None,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy session to roll back on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "create blog", "submit test answers").
        breaker: Circuit breaker guarding the database. Defaults to the
            shared database breaker.
        log_level: Logging level for unexpected database errors.

    Raises:
        HTTPException: 503 while the circuit is open or the database is
            unreachable, 400 for constraint violations, 500 for any other
            SQLAlchemy error. HTTPExceptions raised inside the block are
            re-raised unchanged.
    """
    breaker = breaker or db_circuit_breaker
    try:
        breaker.before_call()
    except CircuitBreakerOpen as e:
        logger.warning(f"Skipping {operation_name}: {e}")
        raise_service_unavailable()

    try:
        yield
    except HTTPException:
        breaker.record_success()
        raise
    except IntegrityError as e:
        db.rollback()
        breaker.record_success()
        detail = _integrity_error_detail(e)
        logger.warning(f"Integrity error during {operation_name}: {e.orig}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    except breaker.failure_exceptions as e:
        db.rollback()
        breaker.record_failure()
        logger.error(f"Database unavailable during {operation_name}: {e}")
        raise_service_unavailable()
    except SQLAlchemyError as e:
        db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ErrorMessages.database_operation_failed(operation_name),
        )
    else:
        breaker.record_success()


def execute_with_circuit_breaker(
    func: Callable[[], T],
    db: Session,
    operation_name: str = "database operation",
    *,
    breaker: Optional[CircuitBreaker] = None,
) -> T:
    """Run a single database call under ``handle_db_error``.

    Function form of the context manager for one-shot lookups:

        user = execute_with_circuit_breaker(
            lambda: db.get(User, user_id), db, "authenticate user"
        )

    Raises:
        HTTPException: 503 "Database service temporarily unavailable, please
            try again later" while the circuit is open, otherwise the same
            mapping as ``handle_db_error``.
    """
    with handle_db_error(db, operation_name, breaker=breaker):
        return func()
