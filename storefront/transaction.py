"""Scoped session and transaction boundary for order placement."""
import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import SessionLocal
from storefront.exceptions import StorageFault
from storefront.monitoring import transaction_rollbacks_counter

logger = logging.getLogger(__name__)


class TransactionScope:
    """
    Run a block of work as one atomic unit over a freshly acquired session.

    On normal exit the transaction is committed. On any exception, including
    cancellation, it is rolled back and the exception propagates. Database
    errors are re-raised as StorageFault. The session goes back to the pool
    exactly once on every exit path.

    Usage:
        with TransactionScope() as session:
            ...
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        """
        Initialize transaction scope.

        Args:
            session_factory: Callable returning a new pool-backed session
        """
        self._session_factory = session_factory
        self.session: Optional[Session] = None

    def __enter__(self) -> Session:
        self.session = self._session_factory()
        try:
            self.session.begin()
        except SQLAlchemyError as e:
            self._release()
            raise StorageFault("Could not begin transaction") from e
        return self.session

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self._commit()
            else:
                self._rollback(exc_type)
                if isinstance(exc, SQLAlchemyError):
                    raise StorageFault("Database error during transaction") from exc
        finally:
            self._release()
        return False

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self._rollback(type(e))
            raise StorageFault("Could not commit transaction") from e

    def _rollback(self, exc_type) -> None:
        transaction_rollbacks_counter.add(1, {"error.type": exc_type.__name__})
        logger.info("Rolling back transaction", extra={"error_type": exc_type.__name__})
        try:
            self.session.rollback()
        except SQLAlchemyError:
            # Closing the session below discards the connection state anyway
            logger.exception("Rollback failed", extra={"error_type": exc_type.__name__})

    def _release(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None
