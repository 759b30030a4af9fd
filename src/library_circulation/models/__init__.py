"""
Library circulation models.

Pydantic models for the records the circulation engine manages:
- Book: a circulating copy and its lifecycle status
- Patron: a borrower with a bounded set of current checkouts
- BorrowingRecord: one loan in a patron's history
- Transaction: an append-only checkout/return log entry
- TransferRecord: a cross-branch transfer journal entry
"""

from .book import Book, BookStatus
from .circulation import (
    BorrowingRecord,
    Transaction,
    TransactionType,
    TransferRecord,
    TransferState,
)
from .patron import Patron

__all__ = [
    "Book",
    "BookStatus",
    "BorrowingRecord",
    "Patron",
    "Transaction",
    "TransactionType",
    "TransferRecord",
    "TransferState",
]
