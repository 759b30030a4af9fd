"""
System registry: owns every branch and moves books between them.

The registry is an ordinary object created by whoever runs the process
and passed to the code that needs it. Several independent registries can
coexist, which keeps tests isolated.

Transfer protocol (both branch locks held, taken in branch-id order):

    validate  -> journal STARTED
    remove from source, set branch + IN_TRANSIT -> journal IN_TRANSIT
    add to destination, set AVAILABLE           -> journal COMPLETED

A journal entry left IN_TRANSIT means the book left its source but never
reached its destination and needs manual reconciliation.
"""

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime

from ..config import CirculationConfig, get_config
from ..models.book import Book, BookStatus
from ..models.circulation import TransferRecord, TransferState
from .branch import BranchInventory
from .errors import (
    AlreadyExistsError,
    BookUnavailableError,
    InvalidStateError,
    NotFoundError,
    TransferLockTimeoutError,
)
from .notifications import Notifier
from .queries import SystemStatistics

logger = logging.getLogger(__name__)


class LibraryRegistry:
    """All branches of one library system."""

    def __init__(self, config: CirculationConfig | None = None):
        self.config = config or get_config()
        self._branches: dict[str, BranchInventory] = {}
        self._transfers: list[TransferRecord] = []
        self._lock = threading.RLock()
        logger.info("Library registry initialized")

    # =========================================================================
    # Branches
    # =========================================================================

    def add_branch(self, branch: BranchInventory) -> BranchInventory:
        """
        Register a branch.

        Raises:
            AlreadyExistsError: If the branch id is taken
        """
        with self._lock:
            if branch.branch_id in self._branches:
                raise AlreadyExistsError(f"Branch {branch.branch_id} already exists")
            self._branches[branch.branch_id] = branch
            logger.info("Branch added to registry: %s", branch.name)
            return branch

    def create_branch(
        self,
        branch_id: str,
        name: str,
        address: str = "",
        notifier: Notifier | None = None,
    ) -> BranchInventory:
        """Build a branch that shares this registry's config and register it."""
        branch = BranchInventory(
            branch_id, name, address, config=self.config, notifier=notifier
        )
        return self.add_branch(branch)

    def get_branch(self, branch_id: str) -> BranchInventory:
        """
        Raises:
            NotFoundError: If no such branch is registered
        """
        branch = self._branches.get(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch

    def list_branches(self) -> list[BranchInventory]:
        with self._lock:
            return list(self._branches.values())

    # =========================================================================
    # Cross-branch queries
    # =========================================================================

    def find_book_across_branches(self, isbn: str) -> dict[str, Book]:
        """Map of branch id -> book for every branch holding ``isbn``."""
        results: dict[str, Book] = {}
        for branch in self.list_branches():
            book = branch.get_book(isbn)
            if book is not None:
                results[branch.branch_id] = book
        return results

    def statistics(self) -> SystemStatistics:
        """Totals across all branches."""
        branches = self.list_branches()
        return SystemStatistics(
            total_branches=len(branches),
            total_books=sum(len(b.list_books()) for b in branches),
            available_books=sum(len(b.list_available_books()) for b in branches),
            total_patrons=sum(len(b.list_patrons()) for b in branches),
            total_transactions=sum(len(b.transactions) for b in branches),
        )

    # =========================================================================
    # Transfers
    # =========================================================================

    def transfer(
        self,
        isbn: str,
        from_branch_id: str,
        to_branch_id: str,
        now: datetime | None = None,
    ) -> TransferRecord:
        """
        Move a book from one branch's inventory to another's.

        All checks run before the book leaves the source, so a failed
        transfer leaves it where it was.

        Returns:
            The completed journal entry

        Raises:
            NotFoundError: If either branch is unknown or the book is not in the source
            InvalidStateError: If source and destination are the same branch
            BookUnavailableError: If the book is checked out or has a waitlist
            AlreadyExistsError: If the destination already has a book with this key
            TransferLockTimeoutError: If both branches cannot be locked in time
        """
        source = self.get_branch(from_branch_id)
        destination = self.get_branch(to_branch_id)

        if source is destination:
            raise InvalidStateError(f"Cannot transfer book {isbn} to its own branch")

        with self._locked(source, destination):
            book = source.get_book(isbn)
            if book is None:
                raise NotFoundError(f"Book {isbn} not found in branch {from_branch_id}")
            if book.status == BookStatus.CHECKED_OUT:
                raise BookUnavailableError(f"Cannot transfer checked-out book {isbn}")
            if source.has_waitlist(isbn):
                raise BookUnavailableError(
                    f"Cannot transfer book {isbn} while patrons are waiting for it"
                )
            if destination.get_book(isbn) is not None:
                raise AlreadyExistsError(f"Book {isbn} already exists in branch {to_branch_id}")

            record = TransferRecord(
                isbn=isbn,
                from_branch_id=from_branch_id,
                to_branch_id=to_branch_id,
                started_at=now or datetime.now(),
            )
            with self._lock:
                self._transfers.append(record)

            source.remove_book(isbn)
            book.move_to(to_branch_id)
            book.set_status(BookStatus.IN_TRANSIT)
            record.state = TransferState.IN_TRANSIT

            destination.add_book(book)
            book.set_status(BookStatus.AVAILABLE)
            record.state = TransferState.COMPLETED
            record.completed_at = max(now or datetime.now(), record.started_at)

        logger.info(
            "Book %s transferred from %s to %s", isbn, source.name, destination.name
        )
        return record

    @property
    def transfers(self) -> tuple[TransferRecord, ...]:
        """Read-only view of the transfer journal, oldest first."""
        return tuple(self._transfers)

    def get_transfer(self, transfer_id: str) -> TransferRecord:
        """
        Raises:
            NotFoundError: If no transfer with this id was ever started
        """
        record = next((t for t in self._transfers if t.id == transfer_id), None)
        if record is None:
            raise NotFoundError(f"Transfer {transfer_id} not found")
        return record

    def transfer_anomalies(self) -> list[TransferRecord]:
        """Transfers that left their source but never reached their destination."""
        return [t for t in self._transfers if t.is_anomalous]

    @contextmanager
    def _locked(self, *branches: BranchInventory) -> Generator[None, None, None]:
        # Fixed global order prevents deadlock between opposite-direction transfers.
        ordered = sorted(branches, key=lambda b: b.branch_id)
        timeout = self.config.transfer_lock_timeout_seconds
        acquired: list[BranchInventory] = []
        try:
            for branch in ordered:
                if not branch.lock.acquire(timeout=timeout):
                    raise TransferLockTimeoutError(
                        f"Timed out after {timeout}s waiting for branch {branch.branch_id}"
                    )
                acquired.append(branch)
            yield
        finally:
            for branch in reversed(acquired):
                branch.lock.release()
