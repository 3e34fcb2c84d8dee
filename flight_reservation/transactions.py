"""Unit of work wrapping every multi-step reservation operation."""
from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session, sessionmaker

from .errors import TransactionStateError

if TYPE_CHECKING:  # pragma: no cover - import for type hints only
    from .session import SessionState

logger = logging.getLogger(__name__)


class UnitState(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


class UnitOfWork:
    """One serializable transaction bounded by begin and commit-or-rollback.

    Leaving the ``with`` block normally commits. Leaving it through an
    exception rolls back and re-raises, so domain conflicts raised inside
    the block are undone before the caller sees them. A unit is single use
    and at most one unit may be active per :class:`SessionState`.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        owner: Optional["SessionState"] = None,
    ) -> None:
        self._session_factory = session_factory
        self._owner = owner
        self._session: Optional[Session] = None
        self.state = UnitState.IDLE

    @property
    def session(self) -> Session:
        if self.state is not UnitState.ACTIVE or self._session is None:
            raise TransactionStateError(f"unit of work is {self.state.value}, not active")
        return self._session

    def __enter__(self) -> "UnitOfWork":
        if self.state is not UnitState.IDLE:
            raise TransactionStateError("a unit of work cannot be reused")
        if self._owner is not None and self._owner.active_unit is not None:
            raise TransactionStateError("another unit of work is already active for this session")
        self._session = self._session_factory()
        self._session.begin()
        self.state = UnitState.ACTIVE
        if self._owner is not None:
            self._owner.active_unit = self
        logger.debug("Began unit %x", id(self))
        return self

    def commit(self) -> None:
        session = self.session
        try:
            session.commit()
        except Exception:
            self._abort()
            raise
        self.state = UnitState.COMMITTED
        logger.debug("Committed unit %x", id(self))

    def rollback(self) -> None:
        if self.state is not UnitState.ACTIVE:
            raise TransactionStateError(f"cannot roll back a {self.state.value} unit of work")
        self._abort()

    def _abort(self) -> None:
        assert self._session is not None
        try:
            self._session.rollback()
        finally:
            self.state = UnitState.ABORTED
            logger.debug("Rolled back unit %x", id(self))

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if self.state is UnitState.ACTIVE:
                if exc_type is None:
                    self.commit()
                else:
                    self._abort()
        finally:
            if self._session is not None:
                self._session.close()
            if self._owner is not None and self._owner.active_unit is self:
                self._owner.active_unit = None
        return False


__all__ = ["UnitOfWork", "UnitState"]
