import logging
from contextlib import contextmanager

from sqlalchemy.orm import Session

from splitledger.core.errors import ServiceError, ServerError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, action: str, user_id=None):
    """Commit everything written inside the block, or nothing.

    Service errors are re-raised untouched after the rollback. Anything else is
    logged without payload and surfaced as ``ServerError``.
    """
    try:
        yield db
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.error(f"{action} failed for user {user_id}: {type(exc).__name__}", exc_info=True)
        raise ServerError(f"{action} failed") from exc
