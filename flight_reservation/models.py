"""SQLAlchemy models for the flight reservation core."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

RESERVATION_COUNTER = "reservations"


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_balance_non_negative"),)

    username: Mapped[str] = mapped_column(String(256), primary_key=True)
    password: Mapped[str] = mapped_column(String(256), nullable=False)
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Flight(Base):
    """A row of the external flight dataset; never written by the core."""

    __tablename__ = "flights"
    __table_args__ = (
        Index("ix_flights_route_day", "origin", "destination", "day_of_month"),
        CheckConstraint("capacity >= 0", name="ck_capacity_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    carrier: Mapped[str] = mapped_column(String(7), nullable=False)
    flight_number: Mapped[int] = mapped_column(Integer, nullable=False)
    origin: Mapped[str] = mapped_column(String(34), nullable=False)
    destination: Mapped[str] = mapped_column(String(34), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    canceled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Reservation(Base):
    """A booking of one or two flights.

    Cancelling clears ``username``, both flight ids, ``flight_date`` and
    ``paid`` but keeps the row so the id is never handed out again. A
    ``flight_id_2`` of 0 means the itinerary had a single flight.
    """

    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_user_day", "username", "flight_date"),
        Index("ix_reservations_flight_1", "flight_id_1"),
        Index("ix_reservations_flight_2", "flight_id_2"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    username: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    flight_id_1: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    flight_id_2: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    flight_date: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def flight_ids(self) -> list[int]:
        return [fid for fid in (self.flight_id_1, self.flight_id_2) if fid]

    @property
    def is_cancelled(self) -> bool:
        return self.username is None


class ReservationCounter(Base):
    """Single-row watermark holding the next reservation id."""

    __tablename__ = "reservation_counter"
    __table_args__ = (CheckConstraint("next_id > 0", name="ck_next_id_positive"),)

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    next_id: Mapped[int] = mapped_column(Integer, nullable=False)
