"""Booking, payment and cancellation, each as one unit of work.

Every function here either returns the committed result or raises a
:mod:`flight_reservation.errors` exception after its unit has been rolled
back. Store errors are logged and re-raised as the operation's generic
failure; the cause stays chained for debugging.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import accounts, catalog, reservations
from .errors import (
    BookingFailed,
    BusinessRuleConflict,
    CancelFailed,
    CapacityFull,
    DateConflict,
    Forbidden,
    InsufficientFunds,
    NotFoundError,
    PaymentFailed,
    ReservationNotFound,
    ReservationsUnavailable,
    UnknownFlight,
)
from .models import Flight, Reservation
from .session import SessionState
from .transactions import UnitOfWork

logger = logging.getLogger(__name__)


def book_itinerary(
    state: SessionState,
    session_factory: sessionmaker[Session],
    itinerary_index: int,
) -> int:
    username = state.require_login()
    itinerary = state.itinerary(itinerary_index)
    try:
        with UnitOfWork(session_factory, owner=state) as unit:
            if reservations.has_same_day_conflict(unit.session, username, itinerary.flight_ids[0]):
                raise DateConflict(f"{username} already flies on day {itinerary.day}")
            for flight_id in itinerary.flight_ids:
                if reservations.is_full(unit.session, flight_id):
                    raise CapacityFull(flight_id)
            reservation_id = reservations.book(unit.session, username, itinerary)
    except BusinessRuleConflict as exc:
        logger.info("Booking for %s rejected: %s", username, exc)
        raise
    except (SQLAlchemyError, UnknownFlight) as exc:
        logger.warning("Booking for %s failed", username, exc_info=True)
        raise BookingFailed(f"booking itinerary {itinerary_index} failed") from exc
    logger.info("Booked reservation %d for %s", reservation_id, username)
    return reservation_id


def pay_reservation(
    state: SessionState,
    session_factory: sessionmaker[Session],
    reservation_id: int,
) -> int:
    """Pay for an unpaid reservation and return the remaining balance."""

    username = state.require_login()
    try:
        with UnitOfWork(session_factory, owner=state) as unit:
            if not reservations.find_unpaid(unit.session, username, reservation_id):
                raise ReservationNotFound(
                    f"no unpaid reservation {reservation_id} for {username}"
                )
            cost = reservations.price_of(unit.session, reservation_id)
            remaining = accounts.debit(unit.session, username, cost)
            reservations.set_paid(unit.session, reservation_id)
    except (ReservationNotFound, InsufficientFunds) as exc:
        logger.info("Payment of %d by %s rejected: %s", reservation_id, username, exc)
        raise
    except (SQLAlchemyError, NotFoundError) as exc:
        logger.warning("Payment of %d by %s failed", reservation_id, username, exc_info=True)
        raise PaymentFailed(f"paying reservation {reservation_id} failed") from exc
    logger.info("Paid reservation %d for %s", reservation_id, username)
    return remaining


def cancel_reservation(
    state: SessionState,
    session_factory: sessionmaker[Session],
    reservation_id: int,
) -> None:
    """Cancel a reservation owned by the caller, refunding it if paid."""

    username = state.require_login()
    try:
        with UnitOfWork(session_factory, owner=state) as unit:
            record = reservations.owner_and_paid(unit.session, reservation_id)
            if record is None or record[0] != username:
                raise Forbidden(f"{username} does not hold reservation {reservation_id}")
            if record[1]:
                refund = reservations.price_of(unit.session, reservation_id)
                accounts.credit(unit.session, username, refund)
            reservations.cancel(unit.session, reservation_id)
    except Forbidden as exc:
        logger.info("Cancellation of %d rejected: %s", reservation_id, exc)
        raise
    except (SQLAlchemyError, NotFoundError) as exc:
        logger.warning("Cancellation of %d by %s failed", reservation_id, username, exc_info=True)
        raise CancelFailed(f"cancelling reservation {reservation_id} failed") from exc
    logger.info("Canceled reservation %d for %s", reservation_id, username)


def list_reservations(
    state: SessionState,
    session_factory: sessionmaker[Session],
) -> List[Tuple[Reservation, List[Flight]]]:
    username = state.require_login()
    rows: List[Tuple[Reservation, List[Flight]]] = []
    try:
        with UnitOfWork(session_factory, owner=state) as unit:
            for reservation in reservations.list_for_user(unit.session, username):
                flights = []
                for flight_id in reservation.flight_ids:
                    flight = catalog.get_flight(unit.session, flight_id)
                    if flight is None:
                        raise UnknownFlight(f"flight {flight_id} not found")
                    flights.append(flight)
                rows.append((reservation, flights))
    except (SQLAlchemyError, UnknownFlight) as exc:
        logger.warning("Listing reservations for %s failed", username, exc_info=True)
        raise ReservationsUnavailable(f"reservations of {username} unavailable") from exc
    return rows


__all__ = ["book_itinerary", "pay_reservation", "cancel_reservation", "list_reservations"]
