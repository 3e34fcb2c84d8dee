"""Customer accounts and balances."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from .errors import InsufficientFunds, UnknownUser
from .models import User


def create_user(session: Session, username: str, password: str, balance: int) -> User:
    if balance < 0:
        raise ValueError("initial balance must not be negative")
    user = User(username=username, password=password, balance=balance)
    session.add(user)
    session.flush()
    return user


def get_password(session: Session, username: str) -> Optional[str]:
    user = session.get(User, username)
    return None if user is None else user.password


def _load_user(session: Session, username: str) -> User:
    user = session.get(User, username, with_for_update=True)
    if user is None:
        raise UnknownUser(f"user {username} not found")
    return user


def get_balance(session: Session, username: str) -> int:
    return _load_user(session, username).balance


def debit(session: Session, username: str, amount: int) -> int:
    """Take ``amount`` from the balance and return what is left.

    Raises :class:`InsufficientFunds` without touching the row when the
    balance cannot cover it.
    """

    if amount < 0:
        raise ValueError("debit amount must not be negative")
    user = _load_user(session, username)
    if user.balance < amount:
        raise InsufficientFunds(user.balance, amount)
    user.balance -= amount
    session.flush()
    return user.balance


def credit(session: Session, username: str, amount: int) -> int:
    if amount < 0:
        raise ValueError("credit amount must not be negative")
    user = _load_user(session, username)
    user.balance += amount
    session.flush()
    return user.balance
