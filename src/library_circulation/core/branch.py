"""
Branch inventory: the per-location owner of books, patrons, the
transaction log and the active reservation waitlists.

Every public mutation runs under the branch's re-entrant lock, so the book
map, each book's status and branch reference, the patron map and the
waitlists change together with respect to any single branch operation.
Cross-branch transfers take this same lock (see LibraryRegistry.transfer).

Control flow for circulation:

    checkout -> commands.checkout -> log, fulfil waitlist head if it was held
    return   -> commands.return_book -> log -> ReservationManager.on_book_returned
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from ..config import CirculationConfig, get_config
from ..models.book import Book, BookStatus
from ..models.circulation import Transaction, TransactionType
from ..models.patron import Patron
from . import commands
from .errors import (
    AlreadyExistsError,
    BookInUseError,
    CheckoutLimitExceededError,
    CirculationError,
    InvalidDetailsError,
    NoSuchReservationError,
    NotFoundError,
)
from .notifications import LoggingNotifier, Notifier
from .queries import SearchField, search_books
from .reservations import ReservationManager

logger = logging.getLogger(__name__)


class BranchInventory:
    """
    Inventory and circulation state for one library branch.

    Book and patron keys are unique within the branch. Lookups return None
    for unknown keys; operations that need an entity raise NotFoundError.
    """

    def __init__(
        self,
        branch_id: str,
        name: str,
        address: str = "",
        *,
        config: CirculationConfig | None = None,
        notifier: Notifier | None = None,
    ):
        if not branch_id or not branch_id.strip():
            raise ValueError("Branch id cannot be empty")
        if not name or not name.strip():
            raise ValueError("Branch name cannot be empty")

        self.branch_id = branch_id
        self.name = name
        self.address = address
        self.config = config or get_config()
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.lock = threading.RLock()

        self._books: dict[str, Book] = {}
        self._patrons: dict[str, Patron] = {}
        self._transactions: list[Transaction] = []
        self._reservations: dict[str, ReservationManager] = {}

        logger.info("Library branch created: %s (ID: %s)", name, branch_id)

    def __repr__(self) -> str:
        return f"BranchInventory(branch_id={self.branch_id!r}, name={self.name!r})"

    # =========================================================================
    # Books
    # =========================================================================

    def add_book(self, book: Book) -> Book:
        """
        Add a book to this branch and point it at the branch.

        Raises:
            AlreadyExistsError: If a book with the same key is already here
        """
        with self.lock:
            if book.isbn in self._books:
                logger.warning("Book with ISBN %s already exists in %s", book.isbn, self.name)
                raise AlreadyExistsError(
                    f"Book {book.isbn} already exists in branch {self.branch_id}"
                )

            book.move_to(self.branch_id)
            self._books[book.isbn] = book
            logger.info("Book added to branch %s: %s", self.name, book.title)
            return book

    def remove_book(self, isbn: str) -> Book:
        """
        Take a book out of this branch's inventory.

        Any waitlist for the book is dropped along with it.

        Raises:
            NotFoundError: If the book is not in this branch
            BookInUseError: If the book is checked out
        """
        with self.lock:
            book = self._require_book(isbn)
            if book.status == BookStatus.CHECKED_OUT:
                raise BookInUseError(f"Cannot remove checked-out book {isbn}")

            manager = self._reservations.pop(isbn, None)
            if manager is not None and manager.waitlist_size:
                logger.warning(
                    "Dropping waitlist of %d for removed book %s",
                    manager.waitlist_size,
                    isbn,
                )
                if book.status == BookStatus.RESERVED:
                    book.set_status(BookStatus.AVAILABLE)

            del self._books[isbn]
            book.move_to(None)
            logger.info("Book removed from branch %s: %s", self.name, isbn)
            return book

    def update_book(self, isbn: str, **changes: Any) -> Book:
        """
        Change a book's descriptive details in place, keeping status and branch.

        Raises:
            NotFoundError: If the book is not in this branch
            InvalidDetailsError: If a non-descriptive field is given or a value is invalid
        """
        with self.lock:
            book = self._require_book(isbn)
            try:
                book.update_details(**changes)
            except ValueError as e:
                logger.info("Update of book %s rejected: %s", isbn, e)
                raise InvalidDetailsError(f"Invalid details for book {isbn}: {e}") from e

            logger.info("Book updated in branch %s: %s", self.name, isbn)
            return book

    def get_book(self, isbn: str) -> Book | None:
        return self._books.get(isbn)

    def list_books(self) -> list[Book]:
        with self.lock:
            return list(self._books.values())

    def list_available_books(self) -> list[Book]:
        with self.lock:
            return [b for b in self._books.values() if b.is_available]

    def search_books(self, field: SearchField | str, query: str) -> list[Book]:
        """Search this branch's catalog by title, author, isbn or year."""
        return search_books(self.list_books(), field, query)

    # =========================================================================
    # Patrons
    # =========================================================================

    def add_patron(self, patron: Patron) -> Patron:
        """
        Register a patron with this branch.

        A patron created without an explicit checkout limit takes the
        branch's configured limit.

        Raises:
            AlreadyExistsError: If the patron id is already registered
            CheckoutLimitExceededError: If the patron already holds more books
                than the branch limit allows
        """
        with self.lock:
            if patron.id in self._patrons:
                logger.warning("Patron %s already exists in %s", patron.id, self.name)
                raise AlreadyExistsError(
                    f"Patron {patron.id} already exists in branch {self.branch_id}"
                )

            if "checkout_limit" not in patron.model_fields_set:
                limit = self.config.checkout_limit
                if len(patron.current_checkouts) > limit:
                    raise CheckoutLimitExceededError(
                        f"Patron {patron.id} holds more than the branch limit of {limit}"
                    )
                patron.checkout_limit = limit

            self._patrons[patron.id] = patron
            logger.info("Patron added to branch %s: %s", self.name, patron.name)
            return patron

    def update_patron(
        self,
        patron_id: str,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> Patron:
        """
        Change a patron's contact details.

        Raises:
            NotFoundError: If the patron is not registered here
            InvalidDetailsError: If any new value is invalid; nothing is changed
        """
        with self.lock:
            patron = self._require_patron(patron_id)
            try:
                patron.update_contact(name=name, email=email, phone=phone)
            except ValidationError as e:
                logger.info("Update of patron %s rejected: %s", patron_id, e)
                raise InvalidDetailsError(f"Invalid details for patron {patron_id}: {e}") from e
            logger.info("Patron updated in branch %s: %s", self.name, patron_id)
            return patron

    def get_patron(self, patron_id: str) -> Patron | None:
        return self._patrons.get(patron_id)

    def list_patrons(self) -> list[Patron]:
        with self.lock:
            return list(self._patrons.values())

    # =========================================================================
    # Circulation
    # =========================================================================

    def checkout(self, isbn: str, patron_id: str, now: datetime | None = None) -> Transaction:
        """
        Lend a book to a patron and log the CHECKOUT transaction.

        A RESERVED book can only go to the waitlist head it is held for; that
        checkout also fulfils the reservation.

        Raises:
            NotFoundError: If the book or patron is unknown
            NotAvailableError: If the book cannot be lent to this patron
            CheckoutLimitExceededError: If the patron is at the checkout limit
        """
        with self.lock:
            book = self._require_book(isbn)
            patron = self._require_patron(patron_id)
            manager = self._reservations.get(isbn)
            held_for = manager.held_for if manager else None

            try:
                result = commands.checkout(
                    book,
                    patron,
                    now=now,
                    loan_period_days=self.config.loan_period_days,
                    reserved_for=held_for,
                )
            except CirculationError as e:
                logger.info("Checkout of %s by %s rejected: %s", isbn, patron_id, e)
                raise

            self._transactions.append(result.transaction)

            if manager is not None and held_for == patron_id:
                manager.fulfill_head()
                self._discard_if_idle(isbn)

            logger.info(
                "Book %s checked out by patron %s at branch %s", isbn, patron_id, self.name
            )
            return result.transaction

    def return_book(self, isbn: str, patron_id: str, now: datetime | None = None) -> Transaction:
        """
        Take a book back, log the RETURN transaction and run the waitlist.

        Raises:
            NotFoundError: If the book or patron is unknown
            NotCheckedOutError: If the book is not checked out
            WrongHolderError: If the patron does not hold the book
        """
        with self.lock:
            book = self._require_book(isbn)
            patron = self._require_patron(patron_id)

            try:
                result = commands.return_book(
                    book,
                    patron,
                    open_checkout=self._open_checkout(isbn, patron_id),
                    now=now,
                )
            except CirculationError as e:
                logger.info("Return of %s by %s rejected: %s", isbn, patron_id, e)
                raise

            self._transactions.append(result.transaction)

            manager = self._reservations.get(isbn)
            if manager is not None:
                manager.on_book_returned(now)
                self._discard_if_idle(isbn)

            logger.info("Book %s returned by patron %s at branch %s", isbn, patron_id, self.name)
            return result.transaction

    # =========================================================================
    # Reservations
    # =========================================================================

    def reserve(self, isbn: str, patron_id: str) -> int:
        """
        Put a patron on the waitlist for a book that is not available.

        Reserving twice is harmless; the patron keeps their original place.

        Returns:
            The patron's 1-based position in the waitlist

        Raises:
            NotFoundError: If the book or patron is unknown
            ReservationNotNeededError: If the book is available
        """
        with self.lock:
            book = self._require_book(isbn)
            patron = self._require_patron(patron_id)

            manager = self._reservations.get(isbn)
            if manager is None:
                # Validate before creating a manager so a rejected reserve leaves none behind.
                manager = ReservationManager(book, self.notifier)
                manager.reserve(patron)
                self._reservations[isbn] = manager
            else:
                manager.reserve(patron)

            logger.info(
                "Patron %s reserved book %s at branch %s", patron_id, isbn, self.name
            )
            return manager.waitlist.index(patron_id) + 1

    def cancel_reservation(self, isbn: str, patron_id: str, now: datetime | None = None) -> None:
        """
        Take a patron off a book's waitlist.

        Raises:
            NoSuchReservationError: If the book has no waitlist or the patron is not on it
        """
        with self.lock:
            manager = self._reservations.get(isbn)
            if manager is None:
                raise NoSuchReservationError(f"No reservations for book {isbn}")

            manager.cancel(patron_id, now)
            self._discard_if_idle(isbn)
            logger.info("Patron %s cancelled reservation for book %s", patron_id, isbn)

    def expire_holds(self, now: datetime | None = None) -> list[tuple[str, str]]:
        """
        Pass on every hold whose notified patron did not act in time.

        Returns:
            (isbn, patron_id) pairs for each hold that lapsed
        """
        hold = timedelta(hours=self.config.reservation_hold_hours)
        now = now or datetime.now()
        lapsed: list[tuple[str, str]] = []

        with self.lock:
            for isbn, manager in list(self._reservations.items()):
                patron = manager.expire_hold(hold, now)
                if patron is not None:
                    lapsed.append((isbn, patron.id))
                    self._discard_if_idle(isbn)

        return lapsed

    def waitlist_size(self, isbn: str) -> int:
        manager = self._reservations.get(isbn)
        return manager.waitlist_size if manager else 0

    def waitlist(self, isbn: str) -> tuple[str, ...]:
        """Waiting patron ids for a book, head first."""
        manager = self._reservations.get(isbn)
        return manager.waitlist if manager else ()

    def has_waitlist(self, isbn: str) -> bool:
        return isbn in self._reservations

    # =========================================================================
    # Transaction log
    # =========================================================================

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Read-only view of the branch log, oldest first."""
        return tuple(self._transactions)

    def patron_transactions(self, patron_id: str) -> list[Transaction]:
        return [t for t in self._transactions if t.patron_id == patron_id]

    def overdue_transactions(self, now: datetime | None = None) -> list[Transaction]:
        now = now or datetime.now()
        return [t for t in self._transactions if t.is_overdue(now)]

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_book(self, isbn: str) -> Book:
        book = self._books.get(isbn)
        if book is None:
            raise NotFoundError(f"Book {isbn} not found in branch {self.branch_id}")
        return book

    def _require_patron(self, patron_id: str) -> Patron:
        patron = self._patrons.get(patron_id)
        if patron is None:
            raise NotFoundError(f"Patron {patron_id} not found in branch {self.branch_id}")
        return patron

    def _open_checkout(self, isbn: str, patron_id: str) -> Transaction | None:
        return next(
            (
                t
                for t in reversed(self._transactions)
                if t.type == TransactionType.CHECKOUT
                and t.isbn == isbn
                and t.patron_id == patron_id
                and t.return_date is None
            ),
            None,
        )

    def _discard_if_idle(self, isbn: str) -> None:
        manager = self._reservations.get(isbn)
        if manager is not None and manager.is_disposable:
            del self._reservations[isbn]
            logger.debug("Waitlist for book %s discarded", isbn)
