import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from interview_scheduling.base.exceptions import StorageError

logger = logging.getLogger("scheduling")


class SessionStore:
    """Base for stores that own one SQLAlchemy session per request."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Storage] Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e
