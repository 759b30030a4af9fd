"""
Checkout and return as state transitions.

Each operation is a plain function that validates every precondition
first and only then mutates the book and patron, so a failure never leaves
a half-applied change behind. On success it returns a CommandResult holding
the new log transaction and an ``undo`` callable that applies the
compensating action.

The caller (normally a BranchInventory) is responsible for appending the
transaction to its log and for handing a returned book to its waitlist.
Undo is never invoked by the default flow; it exists for callers that need
compensating transactions. It leaves the log and the borrowing history in
place, because both are append-only.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..models.book import Book, BookStatus
from ..models.circulation import BorrowingRecord, Transaction
from ..models.patron import Patron
from .errors import (
    CheckoutLimitExceededError,
    NotAvailableError,
    NotCheckedOutError,
    WrongHolderError,
)

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of a successful checkout or return."""

    transaction: Transaction
    undo: Callable[[], None]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def checkout(
    book: Book,
    patron: Patron,
    *,
    now: datetime | None = None,
    loan_period_days: int = 14,
    reserved_for: str | None = None,
) -> CommandResult:
    """
    Lend a book to a patron.

    A RESERVED book may be checked out only by the patron it is being held
    for, passed as ``reserved_for``.

    The returned ``undo`` makes the book available again and takes it off
    the patron's checkouts. The borrowing record stays in the history but
    is closed at undo time, so ``open_record_for`` never returns the
    cancelled loan when the same book is borrowed again.

    Args:
        book: Book to lend
        patron: Borrowing patron
        now: Event time (defaults to the current time)
        loan_period_days: Days until the book is due
        reserved_for: Patron id currently holding the reservation, if any

    Returns:
        CommandResult with the CHECKOUT transaction

    Raises:
        NotAvailableError: If the book cannot be lent to this patron
        CheckoutLimitExceededError: If the patron is at the checkout limit
    """
    held_for_patron = book.status == BookStatus.RESERVED and reserved_for == patron.id
    if not (book.is_available or held_for_patron):
        raise NotAvailableError(
            f"Book {book.isbn} is not available for checkout (status: {book.status})"
        )

    if not patron.can_checkout:
        raise CheckoutLimitExceededError(
            f"Patron {patron.id} has reached the checkout limit of {patron.checkout_limit}"
        )

    now = now or datetime.now()
    transaction = Transaction.checkout(
        book.isbn, patron.id, when=now, loan_period_days=loan_period_days
    )
    record = BorrowingRecord(isbn=book.isbn, checkout_date=now)

    book.set_status(BookStatus.CHECKED_OUT)
    patron.add_checkout(book.isbn)
    patron.record_borrowing(record)

    logger.info("Checkout executed: book %s by patron %s", book.isbn, patron.id)

    def undo() -> None:
        book.set_status(BookStatus.AVAILABLE)
        patron.remove_checkout(book.isbn)
        # The record stays in the history; close it so no stale open loan remains.
        if not record.is_returned:
            record.close(max(datetime.now(), record.checkout_date))
        logger.info("Checkout undone for book %s", book.isbn)

    return CommandResult(transaction=transaction, undo=undo)


def return_book(
    book: Book,
    patron: Patron,
    *,
    open_checkout: Transaction | None = None,
    now: datetime | None = None,
) -> CommandResult:
    """
    Take a book back from the patron holding it.

    The book becomes AVAILABLE here; a branch with an active waitlist for it
    then decides the final status.

    Args:
        book: Book being returned
        patron: Patron returning it
        open_checkout: The unreturned CHECKOUT transaction to close, if known
        now: Event time (defaults to the current time)

    Returns:
        CommandResult with the RETURN transaction

    Raises:
        NotCheckedOutError: If the book is not checked out
        WrongHolderError: If this patron does not hold the book
    """
    if book.status != BookStatus.CHECKED_OUT:
        raise NotCheckedOutError(f"Book {book.isbn} is not checked out (status: {book.status})")

    if not patron.holds(book.isbn):
        raise WrongHolderError(f"Patron {patron.id} did not check out book {book.isbn}")

    now = now or datetime.now()
    record = patron.open_record_for(book.isbn)
    if record is not None and now < record.checkout_date:
        raise ValueError(f"Return time {now} is before checkout time {record.checkout_date}")
    transaction = Transaction.return_(book.isbn, patron.id, when=now)

    book.set_status(BookStatus.AVAILABLE)
    patron.remove_checkout(book.isbn)
    if record is not None:
        record.close(now)
    if open_checkout is not None:
        open_checkout.return_date = now

    logger.info("Return executed: book %s by patron %s", book.isbn, patron.id)

    def undo() -> None:
        if not patron.can_checkout:
            raise CheckoutLimitExceededError(
                f"Cannot undo return of {book.isbn}: patron {patron.id} is at the checkout limit"
            )
        book.set_status(BookStatus.CHECKED_OUT)
        patron.add_checkout(book.isbn)
        if record is not None:
            record.reopen()
        if open_checkout is not None:
            open_checkout.return_date = None
        logger.info("Return undone for book %s", book.isbn)

    return CommandResult(transaction=transaction, undo=undo)
