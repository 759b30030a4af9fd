"""
Availability notification capability.

The circulation engine only needs to tell one patron that a reserved book
is waiting for them; how that message travels (email, SMS, push) is
outside the engine. Anything with a ``notify(patron, book)`` method can be
plugged in.
"""

import logging
from typing import Protocol, runtime_checkable

from ..models.book import Book
from ..models.patron import Patron

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Delivers a "your reserved book is available" message."""

    def notify(self, patron: Patron, book: Book) -> None:
        """Send the message. Must not block on delivery."""


class LoggingNotifier:
    """Notifier that writes the message to the log instead of sending it."""

    def notify(self, patron: Patron, book: Book) -> None:
        logger.info(
            "NOTIFICATION: Dear %s, the book '%s' is now available for checkout",
            patron.name,
            book.title,
        )
        if patron.email:
            logger.info("Email queued to %s about book: %s", patron.email, book.title)


class RecordingNotifier:
    """Notifier that remembers who was told about what, in order."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def notify(self, patron: Patron, book: Book) -> None:
        self.sent.append((patron.id, book.isbn))

    def notified_patrons(self, isbn: str | None = None) -> list[str]:
        """Patron ids notified so far, optionally for a single book."""
        return [patron_id for patron_id, key in self.sent if isbn is None or key == isbn]

    def clear(self) -> None:
        self.sent.clear()
