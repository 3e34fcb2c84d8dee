"""Transactional core of a flight reservation service."""
from .config import Settings, configure_logging, load_settings
from .database import clear_tables, create_session_factory, init_db, session_scope
from .dataset import add_flight, generate_sample_flights, load_flights_csv
from .protocols import book_itinerary, cancel_reservation, list_reservations, pay_reservation
from .search import Itinerary
from .service import FlightService
from .session import SessionState
from .transactions import UnitOfWork, UnitState

__all__ = [
    "Settings",
    "configure_logging",
    "load_settings",
    "init_db",
    "create_session_factory",
    "clear_tables",
    "session_scope",
    "add_flight",
    "generate_sample_flights",
    "load_flights_csv",
    "book_itinerary",
    "cancel_reservation",
    "list_reservations",
    "pay_reservation",
    "Itinerary",
    "FlightService",
    "SessionState",
    "UnitOfWork",
    "UnitState",
]
