from __future__ import annotations

import tempfile
from pathlib import Path

from sqlalchemy.exc import OperationalError

from flight_reservation import catalog
from flight_reservation.database import init_db
from flight_reservation.dataset import add_flight
from flight_reservation.service import FlightService

SEATTLE = "Seattle WA"
BOSTON = "Boston MA"
CHICAGO = "Chicago IL"
DENVER = "Denver CO"

CATALOG = [
    # id, day, origin, destination, duration, canceled
    (10, 1, SEATTLE, BOSTON, 300, False),
    (11, 1, SEATTLE, BOSTON, 250, False),
    (12, 1, SEATTLE, BOSTON, 250, False),
    (13, 1, SEATTLE, BOSTON, 400, False),
    (14, 1, SEATTLE, BOSTON, 100, True),
    (15, 2, SEATTLE, BOSTON, 50, False),
    (20, 1, SEATTLE, CHICAGO, 100, False),
    (21, 1, CHICAGO, BOSTON, 150, False),
    (22, 1, CHICAGO, BOSTON, 120, False),
    (23, 1, CHICAGO, BOSTON, 10, True),
    (24, 2, CHICAGO, BOSTON, 5, False),
    (25, 1, SEATTLE, DENVER, 90, False),
    (26, 1, DENVER, BOSTON, 130, False),
]


def make_session_factory():
    db_file = Path(tempfile.mkstemp(prefix="flights-search", suffix=".db")[1])
    session_factory = init_db(f"sqlite+pysqlite:///{db_file}")
    with session_factory() as session:
        for flight_id, day, origin, destination, duration, canceled in CATALOG:
            add_flight(
                session,
                flight_id=flight_id,
                day_of_month=day,
                carrier="AS",
                flight_number=flight_id,
                origin=origin,
                destination=destination,
                duration=duration,
                capacity=5,
                price=100 + flight_id,
                canceled=canceled,
            )
        session.commit()
    return session_factory


def cached_ids(service: FlightService):
    return [itinerary.flight_ids for itinerary in service.state.itineraries]


def test_find_direct_orders_by_duration_then_id():
    session_factory = make_session_factory()
    with session_factory() as session:
        flights = catalog.find_direct(session, SEATTLE, BOSTON, 1, 10)
        assert [flight.id for flight in flights] == [11, 12, 10, 13]
        assert catalog.find_direct(session, SEATTLE, BOSTON, 1, 0) == []


def test_find_connections_skips_canceled_and_other_days():
    session_factory = make_session_factory()
    with session_factory() as session:
        pairs = catalog.find_connections(session, SEATTLE, BOSTON, 1, 10)
        assert [(first.id, second.id) for first, second in pairs] == [(20, 22), (25, 26), (20, 21)]
        assert catalog.get_flight(session, 99) is None


def test_direct_only_search_truncates_to_limit():
    session_factory = make_session_factory()
    service = FlightService(session_factory)

    service.transaction_search(SEATTLE, BOSTON, True, 1, 3)

    assert cached_ids(service) == [[11], [12], [10]]


def test_mixed_search_does_not_backfill_when_direct_fills_limit():
    session_factory = make_session_factory()
    service = FlightService(session_factory)

    service.transaction_search(SEATTLE, BOSTON, False, 1, 3)

    assert cached_ids(service) == [[11], [12], [10]]


def test_mixed_search_backfills_with_connections():
    session_factory = make_session_factory()
    service = FlightService(session_factory)

    service.transaction_search(SEATTLE, BOSTON, False, 1, 6)
    assert cached_ids(service) == [[11], [12], [10], [13], [20, 22], [25, 26]]

    service.transaction_search(SEATTLE, BOSTON, False, 1, 10)
    assert cached_ids(service) == [[11], [12], [10], [13], [20, 22], [25, 26], [20, 21]]


def test_search_output_format():
    session_factory = make_session_factory()
    service = FlightService(session_factory)

    assert service.transaction_search(SEATTLE, BOSTON, True, 2, 5) == (
        "Itinerary 0: 1 flight(s), 50 minutes\n"
        "ID: 15 Day: 2 Carrier: AS Number: 15 Origin: Seattle WA Dest: Boston MA "
        "Duration: 50 Capacity: 5 Price: 115\n"
    )

    output = service.transaction_search(SEATTLE, BOSTON, False, 1, 5)
    assert output.startswith("Itinerary 0: 1 flight(s), 250 minutes\nID: 11 Day: 1")
    assert output.endswith(
        "Itinerary 4: 2 flight(s), 220 minutes\n"
        "ID: 20 Day: 1 Carrier: AS Number: 20 Origin: Seattle WA Dest: Chicago IL "
        "Duration: 100 Capacity: 5 Price: 120\n"
        "ID: 22 Day: 1 Carrier: AS Number: 22 Origin: Chicago IL Dest: Boston MA "
        "Duration: 120 Capacity: 5 Price: 122\n"
    )


def test_no_match_replaces_previous_results():
    session_factory = make_session_factory()
    service = FlightService(session_factory)
    service.transaction_search(SEATTLE, BOSTON, True, 1, 3)

    assert service.transaction_search(BOSTON, SEATTLE, False, 1, 3) == "No flights match your selection\n"
    assert service.state.itineraries == []
    assert service.transaction_search(SEATTLE, BOSTON, True, 1, 0) == "No flights match your selection\n"


def test_store_error_keeps_previous_results(monkeypatch):
    session_factory = make_session_factory()
    service = FlightService(session_factory)
    service.transaction_search(SEATTLE, BOSTON, True, 1, 2)
    previous = service.state.itineraries

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT flights", {}, Exception("connection lost"))

    monkeypatch.setattr(catalog, "find_direct", unavailable)

    assert service.transaction_search(SEATTLE, BOSTON, True, 1, 2) == "Failed to search\n"
    assert service.state.itineraries is previous
    assert service.state.active_unit is None


def test_itinerary_properties():
    session_factory = make_session_factory()
    service = FlightService(session_factory)
    service.transaction_search(SEATTLE, BOSTON, False, 1, 5)

    direct = service.state.itinerary(0)
    connection = service.state.itinerary(4)
    assert direct.is_direct and direct.duration == 250 and direct.day == 1
    assert not connection.is_direct
    assert connection.duration == 220
    assert connection.flight_ids == [20, 22]
