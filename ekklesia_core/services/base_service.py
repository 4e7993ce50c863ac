"""
Session handling shared by the tenant services.

A service built without a session opens one from the global DatabaseManager
and commits or rolls it back itself. A service handed a session borrows it:
the caller decides when to commit, which lets several services share one
transaction.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from ..db.db_config import get_db_manager
from ..exceptions import BaseError, DatabaseError
from ..utils.logger import ContextAwareLogger, get_logger


class SessionManagedService:
    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        self._owns_session = session is None
        self.session = get_db_manager().session_factory() if session is None else session
        self.logger = logger or get_logger()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield the session; commit or roll back afterwards if this service owns it."""
        try:
            yield self.session
            self.commit()
        except Exception:
            self.rollback()
            raise

    @contextmanager
    def unit_of_work(self, operation: str, entity_id: Optional[str] = None) -> Iterator[Session]:
        """
        ``transaction()`` for one public service operation.

        Domain errors (BaseError) leave unchanged. Any other exception is
        logged and re-raised as a DatabaseError naming ``operation``, with the
        original chained as ``__cause__``.

        Usage:
            with self.unit_of_work("hard_delete", tenant_id):
                ...
        """
        try:
            with self.transaction() as session:
                yield session
        except BaseError:
            raise
        except Exception as e:
            self.logger.error(
                f"Error in {operation}: {e}",
                extra={
                    "operation": operation,
                    "entity_id": entity_id,
                    "error_type": type(e).__name__,
                },
            )
            raise DatabaseError(operation, cause=e, entity_id=entity_id) from e

    def commit(self) -> None:
        if self._owns_session:
            self.session.commit()

    def rollback(self) -> None:
        if self._owns_session:
            self.session.rollback()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()
