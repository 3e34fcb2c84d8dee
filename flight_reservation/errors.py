"""Exception hierarchy for the flight reservation core."""
from __future__ import annotations


class FlightServiceError(RuntimeError):
    """Base class for every error raised by the reservation core."""


class TransactionStateError(FlightServiceError):
    """Raised when a unit of work is used outside its state machine."""


# Authorization


class AuthorizationError(FlightServiceError):
    pass


class NotLoggedIn(AuthorizationError):
    """Raised when an operation needs a logged in user."""


class AlreadyLoggedIn(AuthorizationError):
    """Raised when a session tries to log in a second time."""


class Forbidden(AuthorizationError):
    """Raised when a user touches a reservation they do not own."""


# Business rule conflicts, always resolved by rolling the unit back


class BusinessRuleConflict(FlightServiceError):
    pass


class DateConflict(BusinessRuleConflict):
    """Raised when the user already flies on the itinerary's day."""


class CapacityFull(BusinessRuleConflict):
    """Raised when a flight of the itinerary has no seats left."""

    def __init__(self, flight_id: int):
        super().__init__(f"flight {flight_id} is full")
        self.flight_id = flight_id


class InsufficientFunds(BusinessRuleConflict):
    """Raised when a balance cannot cover a reservation's cost."""

    def __init__(self, balance: int, cost: int):
        super().__init__(f"balance {balance} is below cost {cost}")
        self.balance = balance
        self.cost = cost


# Not found


class NotFoundError(FlightServiceError):
    pass


class AuthFailed(NotFoundError):
    """Raised when a username/password pair does not match."""


class InvalidItinerary(NotFoundError):
    """Raised when an itinerary index is not part of the last search."""


class ReservationNotFound(NotFoundError):
    """Raised when no unpaid reservation matches the id and owner."""


class NoMatch(NotFoundError):
    """Raised when a search produced no itineraries."""


class UnknownUser(NotFoundError):
    pass


class UnknownFlight(NotFoundError):
    """Raised when a reservation references a flight missing from the catalog."""


# Store failures reduced to a per-operation message


class OperationFailed(FlightServiceError):
    pass


class SearchFailed(OperationFailed):
    pass


class BookingFailed(OperationFailed):
    pass


class PaymentFailed(OperationFailed):
    pass


class CancelFailed(OperationFailed):
    pass


class AccountCreationFailed(OperationFailed):
    pass


class ReservationsUnavailable(OperationFailed):
    pass


__all__ = [
    "FlightServiceError",
    "TransactionStateError",
    "AuthorizationError",
    "NotLoggedIn",
    "AlreadyLoggedIn",
    "Forbidden",
    "BusinessRuleConflict",
    "DateConflict",
    "CapacityFull",
    "InsufficientFunds",
    "NotFoundError",
    "AuthFailed",
    "InvalidItinerary",
    "ReservationNotFound",
    "NoMatch",
    "UnknownUser",
    "UnknownFlight",
    "OperationFailed",
    "SearchFailed",
    "BookingFailed",
    "PaymentFailed",
    "CancelFailed",
    "AccountCreationFailed",
    "ReservationsUnavailable",
]
