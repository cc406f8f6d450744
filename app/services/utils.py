"""Shared utilities for service layer."""
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


def violated_constraint(exc: IntegrityError, model, *names: str) -> Optional[str]:
    """
    Name of the unique constraint behind an IntegrityError, if it is one of names.

    PostgreSQL reports the constraint name; SQLite only lists the columns
    ("UNIQUE constraint failed: winners.quiz_id, winners.slot"), so the
    column list of each named constraint is matched as well.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)
    table = model.__table__

    for name in names:
        if name in message:
            return name

        constraint = next((c for c in table.constraints if c.name == name), None)
        if constraint is None:
            continue
        columns = ", ".join(f"{table.name}.{column.name}" for column in constraint.columns)
        if f"UNIQUE constraint failed: {columns}" in message:
            return name

    return None


def store_failure(db: Session, exc: SQLAlchemyError, operation: str) -> StoreError:
    """Roll back and wrap an unexpected database failure.

    Returned rather than raised so callers keep ``raise ... from exc``.
    """
    db.rollback()
    logger.error(
        "store_error",
        operation=operation,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return StoreError(f"Database error during {operation}; nothing was written, retry is safe")
