"""
Error taxonomy for the circulation engine.

Every failure the core reports is a synchronous business-rule violation
detected before anything is mutated. None of them are retried internally;
the caller decides whether to retry or give up.

    CirculationError
    ├── NotFoundError
    ├── AlreadyExistsError
    ├── InvalidStateError
    │   ├── NotAvailableError
    │   ├── NotCheckedOutError
    │   ├── BookInUseError
    │   └── BookUnavailableError
    ├── LimitExceededError
    │   └── CheckoutLimitExceededError
    ├── InvalidDetailsError
    ├── WrongHolderError
    ├── ReservationNotNeededError
    ├── NoSuchReservationError
    └── TransferLockTimeoutError
"""


class CirculationError(Exception):
    """Base exception for circulation operations."""


class NotFoundError(CirculationError):
    """Raised when a book, patron, branch or transaction is absent."""


class AlreadyExistsError(CirculationError):
    """Raised when adding an entity whose key is already taken."""


class InvalidStateError(CirculationError):
    """Raised when a book's status does not allow the requested operation."""


class NotAvailableError(InvalidStateError):
    """Raised when checking out a book that is not available to the patron."""


class NotCheckedOutError(InvalidStateError):
    """Raised when returning a book that is not checked out."""


class BookInUseError(InvalidStateError):
    """Raised when removing a book that is checked out."""


class BookUnavailableError(InvalidStateError):
    """Raised when transferring a book that is circulating or waitlisted."""


class LimitExceededError(CirculationError):
    """Raised when a patron bound would be exceeded."""


class CheckoutLimitExceededError(LimitExceededError):
    """Raised when a patron already holds the maximum number of books."""


class InvalidDetailsError(CirculationError, ValueError):
    """Raised when new book or patron details fail validation."""


class WrongHolderError(CirculationError):
    """Raised when a patron returns a book they do not hold."""


class ReservationNotNeededError(CirculationError):
    """Raised when reserving a book that can be checked out right away."""


class NoSuchReservationError(CirculationError):
    """Raised when cancelling a reservation that does not exist."""


class TransferLockTimeoutError(CirculationError):
    """Raised when a transfer cannot lock both branches in time."""
