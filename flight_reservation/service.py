"""Client-facing operations returning the service's textual responses."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import accounts, protocols, search
from .errors import (
    AlreadyLoggedIn,
    AuthFailed,
    BookingFailed,
    CancelFailed,
    CapacityFull,
    DateConflict,
    Forbidden,
    InsufficientFunds,
    InvalidItinerary,
    NoMatch,
    NotLoggedIn,
    PaymentFailed,
    ReservationNotFound,
    ReservationsUnavailable,
    SearchFailed,
)
from .models import Flight, Reservation
from .session import SessionState
from .transactions import UnitOfWork

logger = logging.getLogger(__name__)


def format_flight(flight: Flight) -> str:
    return (
        f"ID: {flight.id} Day: {flight.day_of_month} Carrier: {flight.carrier} "
        f"Number: {flight.flight_number} Origin: {flight.origin} Dest: {flight.destination} "
        f"Duration: {flight.duration} Capacity: {flight.capacity} Price: {flight.price}\n"
    )


def format_itineraries(itineraries: Iterable[search.Itinerary]) -> str:
    parts: List[str] = []
    for index, itinerary in enumerate(itineraries):
        parts.append(
            f"Itinerary {index}: {len(itinerary.flights)} flight(s), {itinerary.duration} minutes\n"
        )
        parts.extend(format_flight(flight) for flight in itinerary.flights)
    return "".join(parts)


def format_reservations(rows: Iterable[Tuple[Reservation, List[Flight]]]) -> str:
    parts: List[str] = []
    for reservation, flights in rows:
        paid = "true" if reservation.paid else "false"
        parts.append(f"Reservation {reservation.id} paid: {paid}:\n")
        parts.extend(format_flight(flight) for flight in flights)
    return "".join(parts)


class FlightService:
    """One client's view of the reservation store.

    Each instance owns a :class:`SessionState` and must be driven by a single
    thread; separate clients use separate instances over a shared session
    factory. Every ``transaction_*`` method returns the response text and
    never raises for expected outcomes.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        state: Optional[SessionState] = None,
    ) -> None:
        self.session_factory = session_factory
        self.state = state or SessionState()

    def transaction_create_customer(self, username: str, password: str, init_amount: int) -> str:
        try:
            with UnitOfWork(self.session_factory, owner=self.state) as unit:
                accounts.create_user(unit.session, username, password, init_amount)
        except ValueError:
            return "Failed to create user\n"
        except SQLAlchemyError:
            logger.warning("Creating user %s failed", username, exc_info=True)
            return "Failed to create user\n"
        logger.info("Created user %s", username)
        return f"Created user {username}\n"

    def transaction_login(self, username: str, password: str) -> str:
        try:
            self.state.login(self.session_factory, username, password)
        except AlreadyLoggedIn:
            return "User already logged in\n"
        except AuthFailed:
            return "Login failed\n"
        return f"Logged in as {username}\n"

    def transaction_search(
        self,
        origin: str,
        destination: str,
        direct_only: bool,
        day: int,
        limit: int,
    ) -> str:
        try:
            itineraries = search.search(
                self.state, self.session_factory, origin, destination, direct_only, day, limit
            )
        except NoMatch:
            return "No flights match your selection\n"
        except SearchFailed:
            return "Failed to search\n"
        return format_itineraries(itineraries)

    def transaction_book(self, itinerary_id: int) -> str:
        try:
            reservation_id = protocols.book_itinerary(self.state, self.session_factory, itinerary_id)
        except NotLoggedIn:
            return "Cannot book reservations, not logged in\n"
        except InvalidItinerary:
            return f"No such itinerary {itinerary_id}\n"
        except DateConflict:
            return "You cannot book two flights in the same day\n"
        except (CapacityFull, BookingFailed):
            return "Booking failed\n"
        return f"Booked flight(s), reservation ID: {reservation_id}\n"

    def transaction_reservations(self) -> str:
        try:
            rows = protocols.list_reservations(self.state, self.session_factory)
        except NotLoggedIn:
            return "Cannot view reservations, not logged in\n"
        except ReservationsUnavailable:
            return "Failed to retrieve reservations\n"
        if not rows:
            return "No reservations found\n"
        return format_reservations(rows)

    def transaction_pay(self, reservation_id: int) -> str:
        try:
            remaining = protocols.pay_reservation(self.state, self.session_factory, reservation_id)
        except NotLoggedIn:
            return "Cannot pay, not logged in\n"
        except ReservationNotFound:
            return (
                f"Cannot find unpaid reservation {reservation_id} "
                f"under user: {self.state.username}\n"
            )
        except InsufficientFunds as exc:
            return f"User has only {exc.balance} in account but itinerary costs {exc.cost}\n"
        except PaymentFailed:
            return f"Failed to pay for reservation {reservation_id}\n"
        return f"Paid reservation: {reservation_id} remaining balance: {remaining}\n"

    def transaction_cancel(self, reservation_id: int) -> str:
        try:
            protocols.cancel_reservation(self.state, self.session_factory, reservation_id)
        except NotLoggedIn:
            return "Cannot cancel reservations, not logged in\n"
        except (Forbidden, CancelFailed):
            return f"Failed to cancel reservation {reservation_id}\n"
        return f"Canceled reservation {reservation_id}\n"


__all__ = ["FlightService", "format_flight", "format_itineraries", "format_reservations"]
