"""Read-only lookups against the flight dataset."""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, aliased

from .models import Flight


def get_flight(session: Session, flight_id: int) -> Optional[Flight]:
    return session.get(Flight, flight_id)


def find_direct(
    session: Session,
    origin: str,
    destination: str,
    day: int,
    limit: int,
) -> List[Flight]:
    """Non-canceled direct flights, shortest first with ties broken by id."""

    if limit <= 0:
        return []
    stmt = (
        select(Flight)
        .where(
            Flight.origin == origin,
            Flight.destination == destination,
            Flight.day_of_month == day,
            Flight.canceled.is_(False),
        )
        .order_by(Flight.duration, Flight.id)
        .limit(limit)
    )
    return list(session.scalars(stmt))


def find_connections(
    session: Session,
    origin: str,
    destination: str,
    day: int,
    limit: int,
) -> List[Tuple[Flight, Flight]]:
    """One-stop pairs on ``day`` ordered by total duration, then leg ids."""

    if limit <= 0:
        return []
    first = aliased(Flight, name="first_leg")
    second = aliased(Flight, name="second_leg")
    stmt = (
        select(first, second)
        .join(
            second,
            and_(
                first.destination == second.origin,
                first.day_of_month == second.day_of_month,
            ),
        )
        .where(
            first.origin == origin,
            second.destination == destination,
            first.day_of_month == day,
            first.canceled.is_(False),
            second.canceled.is_(False),
        )
        .order_by(first.duration + second.duration, first.id, second.id)
        .limit(limit)
    )
    return [(row[0], row[1]) for row in session.execute(stmt)]
