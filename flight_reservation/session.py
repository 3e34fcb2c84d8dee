"""Per-client session context: login identity and the last search."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import accounts
from .errors import AlreadyLoggedIn, AuthFailed, InvalidItinerary, NotLoggedIn
from .transactions import UnitOfWork

if TYPE_CHECKING:  # pragma: no cover - import for type hints only
    from .search import Itinerary

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """State owned by exactly one client; never shared between threads."""

    username: Optional[str] = None
    itineraries: Optional[List["Itinerary"]] = None
    active_unit: Optional[UnitOfWork] = field(default=None, repr=False)

    @property
    def logged_in(self) -> bool:
        return self.username is not None

    def require_login(self) -> str:
        if self.username is None:
            raise NotLoggedIn("no user is logged in")
        return self.username

    def itinerary(self, index: int) -> "Itinerary":
        """Return entry ``index`` of the last search."""

        if self.itineraries is None or not 0 <= index < len(self.itineraries):
            raise InvalidItinerary(f"no itinerary {index} in the last search")
        return self.itineraries[index]

    def login(self, session_factory: sessionmaker[Session], username: str, password: str) -> None:
        if self.username is not None:
            raise AlreadyLoggedIn(f"{self.username} is already logged in")
        try:
            with UnitOfWork(session_factory, owner=self) as unit:
                stored = accounts.get_password(unit.session, username)
        except SQLAlchemyError as exc:
            logger.warning("Login lookup failed for %s", username, exc_info=True)
            raise AuthFailed(f"could not verify {username}") from exc
        # Passwords compare case-insensitively for compatibility with existing accounts.
        if stored is None or stored.lower() != password.lower():
            raise AuthFailed(f"bad credentials for {username}")
        self.username = username
        logger.info("Logged in %s", username)
