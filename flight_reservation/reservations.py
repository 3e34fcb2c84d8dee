"""Reservation ledger: capacity, same-day checks and the id allocator."""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .errors import ReservationNotFound, TransactionStateError, UnknownFlight
from .models import RESERVATION_COUNTER, Flight, Reservation, ReservationCounter

if TYPE_CHECKING:  # pragma: no cover - import for type hints only
    from .search import Itinerary


def _load_flight(session: Session, flight_id: int) -> Flight:
    flight = session.get(Flight, flight_id)
    if flight is None:
        raise UnknownFlight(f"flight {flight_id} not found")
    return flight


def has_same_day_conflict(session: Session, username: str, flight_id: int) -> bool:
    """True when ``username`` already holds a reservation on the flight's day.

    An empty lookup means no conflict. Store errors and unknown flights
    propagate instead of being read as either answer.
    """

    day = _load_flight(session, flight_id).day_of_month
    stmt = (
        select(Reservation.id)
        .where(Reservation.username == username, Reservation.flight_date == day)
        .limit(1)
    )
    return session.scalar(stmt) is not None


def reserved_count(session: Session, flight_id: int) -> int:
    stmt = (
        select(func.count())
        .select_from(Reservation)
        .where(or_(Reservation.flight_id_1 == flight_id, Reservation.flight_id_2 == flight_id))
    )
    return int(session.scalar(stmt) or 0)


def is_full(session: Session, flight_id: int) -> bool:
    capacity = _load_flight(session, flight_id).capacity
    return reserved_count(session, flight_id) >= capacity


def allocate_id(session: Session) -> int:
    """Hand out the next reservation id and advance the watermark.

    Must run in the same unit as the insert that uses the id; concurrent
    allocations then conflict on the counter row instead of sharing an id.
    """

    counter = session.get(ReservationCounter, RESERVATION_COUNTER, with_for_update=True)
    if counter is None:
        raise TransactionStateError("reservation counter missing; run init_db first")
    reservation_id = counter.next_id
    counter.next_id = reservation_id + 1
    session.flush()
    return reservation_id


def book(session: Session, username: str, itinerary: "Itinerary") -> int:
    flight_ids = itinerary.flight_ids
    first = _load_flight(session, flight_ids[0])
    reservation_id = allocate_id(session)
    session.add(
        Reservation(
            id=reservation_id,
            username=username,
            flight_id_1=first.id,
            flight_id_2=flight_ids[1] if len(flight_ids) > 1 else 0,
            flight_date=first.day_of_month,
            paid=False,
        )
    )
    session.flush()
    return reservation_id


def find_unpaid(session: Session, username: str, reservation_id: int) -> bool:
    stmt = select(Reservation.id).where(
        Reservation.id == reservation_id,
        Reservation.username == username,
        Reservation.paid.is_(False),
    )
    return session.scalar(stmt) is not None


def price_of(session: Session, reservation_id: int) -> int:
    reservation = session.get(Reservation, reservation_id)
    if reservation is None:
        return 0
    return sum(_load_flight(session, fid).price for fid in reservation.flight_ids)


def _load_reservation(session: Session, reservation_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id, with_for_update=True)
    if reservation is None:
        raise ReservationNotFound(f"reservation {reservation_id} not found")
    return reservation


def owner_and_paid(session: Session, reservation_id: int) -> Optional[Tuple[Optional[str], bool]]:
    reservation = session.get(Reservation, reservation_id, with_for_update=True)
    if reservation is None:
        return None
    return reservation.username, reservation.paid


def set_paid(session: Session, reservation_id: int) -> None:
    _load_reservation(session, reservation_id).paid = True
    session.flush()


def cancel(session: Session, reservation_id: int) -> None:
    """Release the seats of a reservation, keeping its id retired."""

    reservation = _load_reservation(session, reservation_id)
    reservation.username = None
    reservation.flight_id_1 = 0
    reservation.flight_id_2 = 0
    reservation.flight_date = 0
    reservation.paid = False
    session.flush()


def list_for_user(session: Session, username: str) -> List[Reservation]:
    stmt = select(Reservation).where(Reservation.username == username).order_by(Reservation.id)
    return list(session.scalars(stmt))


def summarize_capacity(session: Session, *, only_reserved: bool = True) -> List[dict]:
    reserved = (
        select(func.count(Reservation.id))
        .where(or_(Reservation.flight_id_1 == Flight.id, Reservation.flight_id_2 == Flight.id))
        .scalar_subquery()
    )
    stmt = select(
        Flight.id,
        Flight.carrier,
        Flight.flight_number,
        Flight.origin,
        Flight.destination,
        Flight.day_of_month,
        Flight.capacity,
        reserved.label("reserved"),
    ).order_by(Flight.id)
    if only_reserved:
        stmt = stmt.where(reserved > 0)
    return [
        {
            "flight": row.id,
            "carrier": f"{row.carrier} {row.flight_number}",
            "route": f"{row.origin} - {row.destination}",
            "day": row.day_of_month,
            "reserved": row.reserved,
            "capacity": row.capacity,
        }
        for row in session.execute(stmt)
    ]
