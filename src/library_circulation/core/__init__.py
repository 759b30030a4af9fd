"""
Circulation core.

- commands: checkout / return state transitions with undo
- reservations: per-book FIFO waitlist and hold policy
- notifications: the notify(patron, book) capability
- branch: per-branch inventory that wires the above together
- registry: all branches plus cross-branch transfer
- queries: catalog search and statistics
- errors: the exception hierarchy
"""

from .branch import BranchInventory
from .commands import CommandResult, checkout, return_book
from .errors import (
    AlreadyExistsError,
    BookInUseError,
    BookUnavailableError,
    CheckoutLimitExceededError,
    CirculationError,
    InvalidDetailsError,
    InvalidStateError,
    LimitExceededError,
    NoSuchReservationError,
    NotAvailableError,
    NotCheckedOutError,
    NotFoundError,
    ReservationNotNeededError,
    TransferLockTimeoutError,
    WrongHolderError,
)
from .notifications import LoggingNotifier, Notifier, RecordingNotifier
from .queries import SearchField, SystemStatistics, search_books
from .registry import LibraryRegistry
from .reservations import ReservationManager

__all__ = [
    "AlreadyExistsError",
    "BookInUseError",
    "BookUnavailableError",
    "BranchInventory",
    "CheckoutLimitExceededError",
    "CirculationError",
    "CommandResult",
    "InvalidDetailsError",
    "InvalidStateError",
    "LibraryRegistry",
    "LimitExceededError",
    "LoggingNotifier",
    "NoSuchReservationError",
    "NotAvailableError",
    "NotCheckedOutError",
    "NotFoundError",
    "Notifier",
    "RecordingNotifier",
    "ReservationManager",
    "ReservationNotNeededError",
    "SearchField",
    "SystemStatistics",
    "TransferLockTimeoutError",
    "WrongHolderError",
    "checkout",
    "return_book",
    "search_books",
]
