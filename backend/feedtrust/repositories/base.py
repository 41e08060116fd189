"""Repository bases.

- Repositories are the only layer permitted to talk to the database.
- Every write method commits its own statement; there is no long-lived
  unit of work spanning service calls.
- ReadOnlyRepository guards data owned by other systems (the feedback event
  log): SELECT statements only.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.engine import Result, RowMapping
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable
from sqlalchemy.sql.dml import Delete, Insert, Update
from sqlalchemy.sql.selectable import Select


class RepositoryReadOnlyViolation(RuntimeError):
    """Raised when a read-only repository detects a write or mutation attempt."""


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository holding an explicitly provided Session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        return self._session.execute(stmt, params or {})

    def _write(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> int:
        """Execute a DML statement and commit. Returns the affected row count."""
        try:
            rowcount = self._session.execute(stmt, params or {}).rowcount
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return rowcount or 0

    def _write_returning(
        self, stmt: Executable, *, params: Optional[dict[str, Any]] = None
    ) -> Optional[RowMapping]:
        """Execute DML ... RETURNING and commit. Returns the first returned row, if any."""
        try:
            row = self._session.execute(stmt, params or {}).mappings().first()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return row


class ReadOnlyRepository(BaseRepository[T]):
    """Repository over data this service must never mutate."""

    def _assert_clean_uow(self) -> None:
        """Reject queries if the session has pending writes."""
        s = self._session
        if s.new or s.dirty or s.deleted:
            raise RepositoryReadOnlyViolation(
                "Repository is read-only: session has pending changes "
                f"(new={len(s.new)}, dirty={len(s.dirty)}, deleted={len(s.deleted)})."
            )

    def _assert_select_only(self, stmt: Executable) -> None:
        if isinstance(stmt, (Insert, Update, Delete)):
            raise RepositoryReadOnlyViolation("Repository is read-only: DML is forbidden.")
        if not isinstance(stmt, Select):
            raise RepositoryReadOnlyViolation(
                f"Repository is read-only: only SELECT statements are allowed (got {type(stmt)!r})."
            )

    def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        self._assert_select_only(stmt)
        self._assert_clean_uow()
        result = self._session.execute(stmt, params or {})
        self._assert_clean_uow()
        return result

    def _write(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> int:
        raise RepositoryReadOnlyViolation("Repository is read-only: writes are forbidden.")

    def _write_returning(
        self, stmt: Executable, *, params: Optional[dict[str, Any]] = None
    ) -> Optional[RowMapping]:
        raise RepositoryReadOnlyViolation("Repository is read-only: writes are forbidden.")
