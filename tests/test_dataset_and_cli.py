from __future__ import annotations

import io
import tempfile
from pathlib import Path

import pytest

from flight_reservation import cli
from flight_reservation.config import Settings, load_settings
from flight_reservation.database import init_db
from flight_reservation.dataset import add_flight, generate_sample_flights, load_flights_csv
from flight_reservation.models import Flight
from flight_reservation.service import FlightService

FLIGHTS_CSV = (
    "1,7,1,3,AS,24,Seattle WA,Washington,Boston MA,Massachusetts,0,10,5,0,300,2496,12,500\n"
    "2,7,1,3,AA,100,Seattle WA,Washington,Chicago IL,Illinois,,,,1,,1721,3,150\n"
)


def make_db_url() -> str:
    db_file = Path(tempfile.mkstemp(prefix="flights-cli", suffix=".db")[1])
    return f"sqlite+pysqlite:///{db_file}"


def test_load_flights_csv(tmp_path):
    csv_path = tmp_path / "flights-small.csv"
    csv_path.write_text(FLIGHTS_CSV)
    session_factory = init_db(make_db_url())

    assert load_flights_csv(session_factory, csv_path) == 2

    with session_factory() as session:
        first = session.get(Flight, 1)
        second = session.get(Flight, 2)
    assert (first.carrier, first.flight_number, first.origin, first.destination) == (
        "AS",
        24,
        "Seattle WA",
        "Boston MA",
    )
    assert (first.day_of_month, first.duration, first.capacity, first.price) == (1, 300, 12, 500)
    assert first.canceled is False
    assert second.canceled is True
    assert second.duration == 0


def test_generate_sample_flights_is_deterministic():
    first_factory = init_db(make_db_url())
    second_factory = init_db(make_db_url())

    summary = generate_sample_flights(first_factory, flights=25)
    generate_sample_flights(second_factory, flights=25)

    assert summary == {"flights": 25, "days": 3}
    with first_factory() as one, second_factory() as two:
        assert one.query(Flight).count() == 25
        assert [(f.origin, f.price) for f in one.query(Flight).order_by(Flight.id)] == [
            (f.origin, f.price) for f in two.query(Flight).order_by(Flight.id)
        ]


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("FLIGHTS_DB_URL", "sqlite+pysqlite:///other.db")
    monkeypatch.setenv("FLIGHTS_ECHO_SQL", "yes")
    monkeypatch.setenv("FLIGHTS_LOG_LEVEL", "debug")
    monkeypatch.setenv("FLIGHTS_BUSY_TIMEOUT", "2.5")

    assert load_settings() == Settings(
        db_url="sqlite+pysqlite:///other.db",
        echo_sql=True,
        log_level="DEBUG",
        busy_timeout=2.5,
    )
    assert load_settings({}) == Settings()
    with pytest.raises(ValueError):
        load_settings({"FLIGHTS_BUSY_TIMEOUT": "soon"})


def test_cli_session_round_trip():
    db_url = make_db_url()
    session_factory = init_db(db_url)
    with session_factory() as session:
        add_flight(
            session,
            flight_id=1,
            day_of_month=1,
            carrier="AS",
            flight_number=24,
            origin="Seattle WA",
            destination="Boston MA",
            duration=300,
            capacity=3,
            price=20,
        )
        session.commit()

    commands = "\n".join(
        [
            "create alice pw 1000",
            "login alice pw",
            'search "Seattle WA" "Boston MA" 1 1 1',
            "book 0",
            "pay 1",
            "reservations",
            "capacity",
            "book",
            "quit",
            "login bob pw",
        ]
    )
    stdout = io.StringIO()

    assert cli.main(["--db-url", db_url], stdin=io.StringIO(commands + "\n"), stdout=stdout) == 0

    output = stdout.getvalue()
    assert "Created user alice\n" in output
    assert "Logged in as alice\n" in output
    assert "Itinerary 0: 1 flight(s), 300 minutes\n" in output
    assert "Booked flight(s), reservation ID: 1\n" in output
    assert "Paid reservation: 1 remaining balance: 980\n" in output
    assert "Reservation 1 paid: true:\n" in output
    assert "Seattle WA - Boston MA" in output
    assert "Error: Please provide a single numeric id for book\n" in output
    assert output.endswith("Goodbye\n")
    assert "bob" not in output


def test_execute_command_rejects_malformed_input():
    service = FlightService(init_db(make_db_url()))

    assert cli.execute_command(service, "   ") == ""
    assert cli.execute_command(service, "quit") is None
    assert cli.execute_command(service, "create alice pw lots").startswith("Error:")
    assert cli.execute_command(service, "search Seattle Boston 1 1").startswith("Error:")
    assert cli.execute_command(service, "fly away").startswith("Error: unrecognized command 'fly'")
