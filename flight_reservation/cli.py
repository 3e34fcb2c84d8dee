"""Command line harness driving one client session over stdin."""
from __future__ import annotations

import argparse
import shlex
import sys
from typing import Callable, Dict, Iterable, List, Optional, TextIO

from sqlalchemy.orm import Session, sessionmaker
from tabulate import tabulate

from . import database, dataset, reservations
from .config import configure_logging, load_settings
from .service import FlightService

PROMPT = "> "

_USAGE = (
    "*** Please enter one of the following commands ***\n"
    "> create <username> <password> <initial amount>\n"
    "> login <username> <password>\n"
    "> search <origin city> <destination city> <direct> <day> <num itineraries>\n"
    "> book <itinerary id>\n"
    "> pay <reservation id>\n"
    "> reservations\n"
    "> cancel <reservation id>\n"
    "> capacity\n"
    "> quit\n"
)


def _render_capacity(session_factory: sessionmaker[Session]) -> str:
    with database.session_scope(session_factory) as session:
        rows = reservations.summarize_capacity(session)
    if not rows:
        return "No reservations found\n"
    headers = {
        "flight": "Flight",
        "carrier": "Carrier",
        "route": "Route",
        "day": "Day",
        "reserved": "Reserved",
        "capacity": "Capacity",
    }
    return tabulate(rows, headers=headers, tablefmt="github") + "\n"


def _int_args(args: List[str], count: int) -> Optional[List[int]]:
    if len(args) != count:
        return None
    try:
        return [int(arg) for arg in args]
    except ValueError:
        return None


def execute_command(service: FlightService, line: str) -> Optional[str]:
    """Run one command line and return its response, or ``None`` on quit."""

    try:
        tokens = shlex.split(line)
    except ValueError:
        return "Error: Please provide a valid command\n"
    if not tokens:
        return ""
    command, args = tokens[0].lower(), tokens[1:]

    if command == "quit":
        return None
    if command == "create":
        amount = _int_args(args[2:], 1) if len(args) == 3 else None
        if amount is None:
            return "Error: Please provide a username, password, and initial amount in the account\n"
        return service.transaction_create_customer(args[0], args[1], amount[0])
    if command == "login":
        if len(args) != 2:
            return "Error: Please provide a username and password\n"
        return service.transaction_login(args[0], args[1])
    if command == "search":
        numbers = _int_args(args[2:], 3) if len(args) == 5 else None
        if numbers is None:
            return (
                "Error: Please provide all search parameters "
                "<origin_city> <dest_city> <direct> <date> <nb itineraries>\n"
            )
        direct, day, count = numbers
        return service.transaction_search(args[0], args[1], direct == 1, day, count)
    if command in ("book", "pay", "cancel"):
        numbers = _int_args(args, 1)
        if numbers is None:
            return f"Error: Please provide a single numeric id for {command}\n"
        handlers: Dict[str, Callable[[int], str]] = {
            "book": service.transaction_book,
            "pay": service.transaction_pay,
            "cancel": service.transaction_cancel,
        }
        return handlers[command](numbers[0])
    if command == "reservations":
        return service.transaction_reservations()
    if command == "capacity":
        return _render_capacity(service.session_factory)
    return "Error: unrecognized command '" + command + "'\n" + _USAGE


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Interactive flight reservation client.")
    parser.add_argument(
        "--db-url",
        default=settings.db_url,
        help="SQLAlchemy database URL (default: $FLIGHTS_DB_URL or a local SQLite file).",
    )
    parser.add_argument(
        "--load-flights",
        metavar="CSV",
        help="Load the flight catalog from a headerless flights CSV before starting.",
    )
    parser.add_argument(
        "--sample-flights",
        type=int,
        default=0,
        metavar="N",
        help="Generate N pseudo-random flights before starting.",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete users and reservations and restart reservation ids at 1.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (default: $FLIGHTS_LOG_LEVEL or WARNING).",
    )
    parser.add_argument("--echo-sql", action="store_true", default=settings.echo_sql)
    parser.set_defaults(busy_timeout=settings.busy_timeout)
    return parser.parse_args(list(argv))


def main(
    argv: Iterable[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    interactive = stdin.isatty()

    try:
        configure_logging(args.log_level)
        session_factory = database.init_db(
            args.db_url, echo=args.echo_sql, busy_timeout=args.busy_timeout
        )
        if args.clear:
            database.clear_tables(session_factory)
        if args.load_flights:
            dataset.load_flights_csv(session_factory, args.load_flights)
        if args.sample_flights > 0:
            dataset.generate_sample_flights(session_factory, flights=args.sample_flights)
    except Exception as exc:  # pragma: no cover - CLI entry point
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    service = FlightService(session_factory)
    if interactive:
        stdout.write(_USAGE)
    while True:
        if interactive:
            stdout.write(PROMPT)
            stdout.flush()
        line = stdin.readline()
        if not line:
            break
        response = execute_command(service, line)
        if response is None:
            stdout.write("Goodbye\n")
            break
        stdout.write(response)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
