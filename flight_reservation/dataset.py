"""Loading the external flight dataset, plus sample data for tests and demos."""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Dict, Sequence, Union

import pandas as pd
from sqlalchemy import insert
from sqlalchemy.orm import Session, sessionmaker

from .database import session_scope
from .models import Flight

logger = logging.getLogger(__name__)

# Column layout of the headerless flights CSV the catalog is published as.
FLIGHT_CSV_COLUMNS: Sequence[str] = (
    "fid",
    "month_id",
    "day_of_month",
    "day_of_week_id",
    "carrier_id",
    "flight_num",
    "origin_city",
    "origin_state",
    "dest_city",
    "dest_state",
    "departure_delay",
    "taxi_out",
    "arrival_delay",
    "canceled",
    "actual_time",
    "distance",
    "capacity",
    "price",
)

_CSV_TO_MODEL: Dict[str, str] = {
    "fid": "id",
    "day_of_month": "day_of_month",
    "carrier_id": "carrier",
    "flight_num": "flight_number",
    "origin_city": "origin",
    "dest_city": "destination",
    "actual_time": "duration",
    "capacity": "capacity",
    "price": "price",
    "canceled": "canceled",
}
_INTEGER_COLUMNS = ("id", "day_of_month", "flight_number", "duration", "capacity", "price")

CITIES: Sequence[str] = (
    "Seattle WA",
    "Boston MA",
    "Chicago IL",
    "New York NY",
    "Los Angeles CA",
    "Denver CO",
    "Atlanta GA",
    "Dallas/Fort Worth TX",
)
CARRIERS = ("AS", "AA", "DL", "UA", "B6", "WN")


def add_flight(
    session: Session,
    *,
    flight_id: int,
    day_of_month: int,
    carrier: str,
    flight_number: int,
    origin: str,
    destination: str,
    duration: int,
    capacity: int,
    price: int,
    canceled: bool = False,
) -> Flight:
    """Insert one catalog row."""

    flight = Flight(
        id=flight_id,
        day_of_month=day_of_month,
        carrier=carrier,
        flight_number=flight_number,
        origin=origin,
        destination=destination,
        duration=duration,
        capacity=capacity,
        price=price,
        canceled=canceled,
    )
    session.add(flight)
    session.flush()
    return flight


def load_flights_csv(
    session_factory: sessionmaker[Session],
    path: Union[str, Path],
    *,
    chunksize: int = 10_000,
) -> int:
    """Bulk load a flights CSV and return the number of rows inserted."""

    reader = pd.read_csv(
        path,
        header=None,
        names=list(FLIGHT_CSV_COLUMNS),
        usecols=list(_CSV_TO_MODEL),
        chunksize=chunksize,
    )
    loaded = 0
    for chunk in reader:
        frame = chunk.rename(columns=_CSV_TO_MODEL)
        frame[list(_INTEGER_COLUMNS)] = frame[list(_INTEGER_COLUMNS)].fillna(0).astype(int)
        frame["canceled"] = frame["canceled"].fillna(0).astype(int) != 0
        frame["carrier"] = frame["carrier"].astype(str)
        records = frame.astype(object).to_dict(orient="records")
        if not records:
            continue
        with session_scope(session_factory) as session:
            session.execute(insert(Flight), records)
        loaded += len(records)
    logger.info("Loaded %d flights from %s", loaded, path)
    return loaded


def generate_sample_flights(
    session_factory: sessionmaker[Session],
    *,
    flights: int = 200,
    days: int = 3,
    first_id: int = 1,
) -> Dict[str, int]:
    """Populate the catalog with deterministic pseudo-random flights."""

    rng = random.Random(42)
    with session_scope(session_factory) as session:
        for offset in range(flights):
            origin, destination = rng.sample(CITIES, 2)
            add_flight(
                session,
                flight_id=first_id + offset,
                day_of_month=rng.randint(1, days),
                carrier=rng.choice(CARRIERS),
                flight_number=rng.randint(100, 9999),
                origin=origin,
                destination=destination,
                duration=rng.randint(60, 400),
                capacity=rng.choice((1, 2, 5, 10, 20)),
                price=rng.randint(50, 1000),
                canceled=rng.random() < 0.05,
            )
    return {"flights": flights, "days": days}
