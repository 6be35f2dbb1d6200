import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InfrastructureError

logger = logging.getLogger(__name__)


class Repository:
    """Owner-scoped data access over a single SQLAlchemy session.

    Lookups return ``None`` when no row matches; store failures surface as
    ``InfrastructureError`` after the transaction is rolled back.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self, op: str) -> Iterator[Session]:
        try:
            yield self.db
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store failure during %s: %s", op, e)
            raise InfrastructureError(f"store unavailable during {op}", detail=str(e)) from e
