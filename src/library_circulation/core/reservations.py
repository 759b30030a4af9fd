"""
Per-book reservation waitlist.

A ReservationManager exists for a (branch, book) pair while at least one
patron is waiting for that book. It keeps a FIFO queue of patrons and, when
the book comes back, decides its next status:

- someone is waiting: the book becomes RESERVED and only the head of the
  queue is notified; the head stays queued until they check the book out
  (``fulfill_head``), cancel, or let the hold lapse (``expire_hold``)
- nobody is waiting: the book becomes AVAILABLE and the manager can be
  discarded by its branch
"""

import logging
from collections import deque
from datetime import datetime, timedelta

from ..models.book import Book, BookStatus
from ..models.patron import Patron
from .errors import NoSuchReservationError, ReservationNotNeededError
from .notifications import Notifier

logger = logging.getLogger(__name__)


class ReservationManager:
    """FIFO waitlist for one book in one branch."""

    def __init__(self, book: Book, notifier: Notifier):
        self.book = book
        self._notifier = notifier
        self._queue: deque[Patron] = deque()
        self._notified_at: datetime | None = None

    # === Queries ===

    @property
    def waitlist_size(self) -> int:
        return len(self._queue)

    @property
    def waitlist(self) -> tuple[str, ...]:
        """Waiting patron ids, head first."""
        return tuple(p.id for p in self._queue)

    @property
    def head(self) -> Patron | None:
        return self._queue[0] if self._queue else None

    @property
    def notified_at(self) -> datetime | None:
        """When the current head was told the book is waiting, if they were."""
        return self._notified_at

    @property
    def held_for(self) -> str | None:
        """Id of the patron the book is currently set aside for."""
        if self.book.status == BookStatus.RESERVED and self.head is not None:
            return self.head.id
        return None

    @property
    def is_disposable(self) -> bool:
        """Nobody is waiting and no hold is active."""
        return not self._queue and self.book.status != BookStatus.RESERVED

    def contains(self, patron_id: str) -> bool:
        return any(p.id == patron_id for p in self._queue)

    # === Events ===

    def reserve(self, patron: Patron) -> bool:
        """
        Put a patron at the back of the queue.

        Returns:
            True if the patron was added, False if they were already waiting

        Raises:
            ReservationNotNeededError: If the book is available right now
        """
        if self.book.is_available:
            raise ReservationNotNeededError(
                f"Book {self.book.isbn} is available; check it out instead of reserving"
            )

        if self.contains(patron.id):
            logger.debug("Patron %s already waiting for book %s", patron.id, self.book.isbn)
            return False

        self._queue.append(patron)
        logger.info(
            "Patron %s added to waitlist for book %s (position %d)",
            patron.id,
            self.book.isbn,
            len(self._queue),
        )
        return True

    def cancel(self, patron_id: str, now: datetime | None = None) -> Patron:
        """
        Remove a patron from the queue, wherever they are.

        If the book was being held for that patron, the hold passes to the
        next in line (or the book becomes available).

        Raises:
            NoSuchReservationError: If the patron is not waiting
        """
        patron = next((p for p in self._queue if p.id == patron_id), None)
        if patron is None:
            raise NoSuchReservationError(
                f"Patron {patron_id} has no reservation for book {self.book.isbn}"
            )

        releases_hold = self.held_for == patron_id
        self._queue.remove(patron)
        logger.info("Patron %s removed from waitlist for book %s", patron_id, self.book.isbn)

        if releases_hold:
            self._notified_at = None
            self.on_book_returned(now)

        return patron

    def on_book_returned(self, now: datetime | None = None) -> None:
        """Decide the returned book's status and notify the head, if any."""
        head = self.head
        if head is None:
            self._notified_at = None
            self.book.set_status(BookStatus.AVAILABLE)
            return

        self.book.set_status(BookStatus.RESERVED)
        self._notified_at = now or datetime.now()
        self._notify(head)

    def fulfill_head(self) -> Patron:
        """
        Dequeue the head once they have acted on their notification.

        Raises:
            NoSuchReservationError: If nobody is waiting
        """
        if not self._queue:
            raise NoSuchReservationError(f"No reservations for book {self.book.isbn}")

        patron = self._queue.popleft()
        self._notified_at = None
        logger.info("Reservation for book %s fulfilled by patron %s", self.book.isbn, patron.id)
        return patron

    def expire_hold(self, hold: timedelta, now: datetime | None = None) -> Patron | None:
        """
        Drop a notified head whose hold has lapsed and pass the book on.

        Returns:
            The patron who lost the hold, or None if no hold has lapsed
        """
        if self.held_for is None or self._notified_at is None:
            return None

        now = now or datetime.now()
        if now - self._notified_at < hold:
            return None

        lapsed = self._queue.popleft()
        logger.warning(
            "Hold on book %s for patron %s expired after %s",
            self.book.isbn,
            lapsed.id,
            hold,
        )
        self.on_book_returned(now)
        return lapsed

    def _notify(self, patron: Patron) -> None:
        # Delivery problems must never fail the return that triggered them.
        try:
            self._notifier.notify(patron, self.book)
        except Exception:
            logger.exception(
                "Failed to notify patron %s about book %s", patron.id, self.book.isbn
            )
