"""
Transaction boundary for engine operations.

Each public operation runs inside atomic(session): one commit on success,
one rollback on any failure. Validation reads inside the block are
check-then-act and can race with a concurrent writer; compare-and-set slot
writes and the unique constraints on GroupSlot are what finally reject a lost
race, and that rejection is surfaced here as GroupStageConflictError.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlmodel import Session

from groupstage.services.errors import GroupStageConflictError, GroupStageError, GroupStageInternalError

logger = logging.getLogger(__name__)

# OperationalError messages that mean "another writer got there first"
_RETRYABLE_MARKERS = ("database is locked", "deadlock", "could not serialize", "lock timeout", "lock wait timeout")


def _is_retryable(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


@contextmanager
def atomic(session: Session, operation: str) -> Iterator[Session]:
    """
    Run one engine operation as a single transaction.

    Raises:
        GroupStageConflictError: uniqueness violation or lock contention
        GroupStageInternalError: any other storage failure
        GroupStageError: engine errors raised inside the block, unchanged
    """
    try:
        yield session
        session.commit()
    except GroupStageError as e:
        session.rollback()
        logger.warning("%s aborted: %s", operation, e)
        raise
    except IntegrityError as e:
        session.rollback()
        logger.warning("%s lost a uniqueness race, transaction rolled back: %s", operation, e.orig)
        raise GroupStageConflictError(
            f"{operation} conflicts with a concurrent change, please retry"
        ) from e
    except OperationalError as e:
        session.rollback()
        if _is_retryable(e):
            logger.warning("%s hit lock contention, transaction rolled back: %s", operation, e.orig)
            raise GroupStageConflictError(f"{operation} timed out waiting for a lock, please retry") from e
        logger.exception("%s failed, transaction rolled back", operation)
        raise GroupStageInternalError(f"{operation} failed: {e.orig}") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("%s failed, transaction rolled back", operation)
        raise GroupStageInternalError(f"{operation} failed: {e}") from e
    except Exception:
        session.rollback()
        raise
