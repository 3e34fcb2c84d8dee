"""Itinerary search and the per-session result cache."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import catalog
from .errors import NoMatch, SearchFailed
from .models import Flight
from .transactions import UnitOfWork

if TYPE_CHECKING:  # pragma: no cover - import for type hints only
    from .session import SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Itinerary:
    """One or two flights, in travel order."""

    flights: Tuple[Flight, ...]

    @property
    def duration(self) -> int:
        return sum(flight.duration for flight in self.flights)

    @property
    def flight_ids(self) -> List[int]:
        return [flight.id for flight in self.flights]

    @property
    def day(self) -> int:
        return self.flights[0].day_of_month

    @property
    def is_direct(self) -> bool:
        return len(self.flights) == 1


def find_itineraries(
    session: Session,
    origin: str,
    destination: str,
    direct_only: bool,
    day: int,
    limit: int,
) -> List[Itinerary]:
    """Direct itineraries first, then one-stop ones filling up to ``limit``."""

    itineraries = [
        Itinerary((flight,))
        for flight in catalog.find_direct(session, origin, destination, day, limit)
    ]
    remaining = limit - len(itineraries)
    if not direct_only and remaining > 0:
        itineraries.extend(
            Itinerary(pair)
            for pair in catalog.find_connections(session, origin, destination, day, remaining)
        )
    return itineraries


def search(
    state: "SessionState",
    session_factory: sessionmaker[Session],
    origin: str,
    destination: str,
    direct_only: bool,
    day: int,
    limit: int,
) -> Sequence[Itinerary]:
    """Run a search and make its result the session's addressable itineraries.

    A store failure leaves the previous result in place. An empty result
    still replaces it and raises :class:`NoMatch`.
    """

    try:
        with UnitOfWork(session_factory, owner=state) as unit:
            itineraries = find_itineraries(
                unit.session, origin, destination, direct_only, day, limit
            )
    except SQLAlchemyError as exc:
        logger.warning("Search %s -> %s on day %s failed", origin, destination, day, exc_info=True)
        raise SearchFailed(f"search {origin} -> {destination} failed") from exc

    state.itineraries = itineraries
    if not itineraries:
        raise NoMatch(f"no itineraries {origin} -> {destination} on day {day}")
    logger.debug("Found %d itineraries %s -> %s", len(itineraries), origin, destination)
    return itineraries
