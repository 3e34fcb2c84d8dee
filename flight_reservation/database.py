"""Database helpers for the flight reservation core."""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from sqlalchemy import create_engine, delete, event, make_url
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from .config import DEFAULT_BUSY_TIMEOUT, DEFAULT_DB_URL
from .models import RESERVATION_COUNTER, Base, Reservation, ReservationCounter, User

logger = logging.getLogger(__name__)


def _install_sqlite_serializable(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, so the reads of a unit
    # would run outside it. Take over transaction control and start every
    # unit with BEGIN IMMEDIATE so writers are serialized across connections.

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _shared_memory_url(url: URL) -> URL:
    # Each connection to a plain :memory: URL opens a private empty database.
    # A named shared-cache database is seen by every pooled connection while
    # each unit still runs on its own connection.
    return url.set(
        database=f"file:flights-{uuid.uuid4().hex}",
        query={"mode": "memory", "cache": "shared", "uri": "true"},
    )


def create_session_factory(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    connect_args: Dict[str, object] | None = None,
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair with serializable transactions.

    Units never share a DBAPI connection, in-memory SQLite included.
    """

    url = make_url(db_url)
    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        final_connect_args: Dict[str, object] = {
            "check_same_thread": False,
            "timeout": busy_timeout,
        }
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    engine_kwargs: Dict[str, object] = {"echo": echo, "connect_args": final_connect_args}
    if not is_sqlite:
        engine_kwargs["isolation_level"] = "SERIALIZABLE"
    elif url.database in (None, "", ":memory:"):
        url = _shared_memory_url(url)
        engine_kwargs["poolclass"] = QueuePool

    engine = create_engine(url, **engine_kwargs)
    if is_sqlite:
        _install_sqlite_serializable(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, session_factory


def _ensure_counter(session: Session) -> None:
    if session.get(ReservationCounter, RESERVATION_COUNTER) is None:
        session.add(ReservationCounter(name=RESERVATION_COUNTER, next_id=1))


def init_db(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
) -> sessionmaker[Session]:
    """Create all tables, seed the id counter and return a session factory."""

    engine, session_factory = create_session_factory(db_url, echo=echo, busy_timeout=busy_timeout)
    Base.metadata.create_all(engine)
    with session_scope(session_factory) as session:
        _ensure_counter(session)
    logger.debug("Initialized schema at %s", engine.url.render_as_string(hide_password=True))
    return session_factory


def clear_tables(session_factory: sessionmaker[Session]) -> None:
    """Remove users and reservations and restart reservation ids at 1.

    The flights table is external data and is left alone.
    """

    with session_scope(session_factory) as session:
        session.execute(delete(Reservation))
        session.execute(delete(User))
        session.execute(delete(ReservationCounter))
        session.add(ReservationCounter(name=RESERVATION_COUNTER, next_id=1))
    logger.info("Cleared users and reservations")


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
