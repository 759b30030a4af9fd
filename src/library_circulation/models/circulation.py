"""
Circulation records for the library circulation engine.

These models capture what happened to a book, as opposed to what state it
is in now:
- BorrowingRecord: a patron's personal history entry for one loan
- Transaction: an append-only branch log entry for a checkout or a return
- TransferRecord: a registry journal entry for a cross-branch transfer

Records are created by the core and never deleted. Apart from the few
fields that close a record (return dates, transfer completion) they are
immutable once created.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def new_transaction_id() -> str:
    """Generate a unique transaction identifier."""
    return f"txn_{uuid.uuid4().hex}"


def new_transfer_id() -> str:
    """Generate a unique transfer identifier."""
    return f"transfer_{uuid.uuid4().hex[:12]}"


class TransactionType(str, Enum):
    """Kind of circulation event recorded in a branch log."""

    CHECKOUT = "checkout"
    RETURN = "return"


class TransferState(str, Enum):
    """Progress of a cross-branch transfer."""

    STARTED = "started"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"


class BorrowingRecord(BaseModel):
    """
    One entry in a patron's borrowing history.

    Opened on checkout and closed on return. A patron holds at most one open
    record per book at any time.
    """

    isbn: str = Field(
        ...,
        description="Catalog key of the borrowed book",
        min_length=1,
        frozen=True,
    )

    checkout_date: datetime = Field(
        default_factory=datetime.now,
        description="When the book was checked out",
        frozen=True,
    )

    return_date: datetime | None = Field(
        None,
        description="When the book was returned; None while still borrowed",
    )

    @model_validator(mode="after")
    def validate_dates(self) -> "BorrowingRecord":
        """Ensure the return does not precede the checkout."""
        if self.return_date and self.return_date < self.checkout_date:
            raise ValueError("Return date cannot be before checkout date")
        return self

    @property
    def is_returned(self) -> bool:
        """Check if this loan has been closed."""
        return self.return_date is not None

    def close(self, when: datetime | None = None) -> None:
        """Mark the loan as returned."""
        if self.is_returned:
            raise ValueError("Borrowing record already closed")
        self.return_date = when or datetime.now()

    def reopen(self) -> None:
        """Clear the return date (used when a return is undone)."""
        self.return_date = None

    model_config = ConfigDict(
        validate_assignment=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "isbn": "9780441172719",
                "checkout_date": "2024-03-01T10:30:00",
                "return_date": None,
            }
        },
    )


class Transaction(BaseModel):
    """
    Represents a checkout or return event in a branch transaction log.

    Checkout transactions carry a due date and are later closed by setting
    ``return_date`` when the matching return happens; overdue reporting is
    driven by those two fields.
    """

    id: str = Field(
        default_factory=new_transaction_id,
        description="Unique identifier for the transaction",
        pattern=r"^txn_[a-f0-9]{32}$",
        frozen=True,
    )

    isbn: str = Field(
        ...,
        description="Catalog key of the book involved",
        min_length=1,
        frozen=True,
    )

    patron_id: str = Field(
        ...,
        description="Key of the patron involved",
        min_length=1,
        frozen=True,
    )

    type: TransactionType = Field(
        ...,
        description="Checkout or return",
        frozen=True,
    )

    transaction_date: datetime = Field(
        default_factory=datetime.now,
        description="When the event happened",
        frozen=True,
    )

    due_date: datetime | None = Field(
        None,
        description="When a checked out book is due back (checkouts only)",
        frozen=True,
    )

    return_date: datetime | None = Field(
        None,
        description="When a checkout was closed by a return",
    )

    @classmethod
    def checkout(
        cls,
        isbn: str,
        patron_id: str,
        when: datetime,
        loan_period_days: int = 14,
    ) -> "Transaction":
        """Create a checkout transaction due ``loan_period_days`` after ``when``."""
        return cls(
            isbn=isbn,
            patron_id=patron_id,
            type=TransactionType.CHECKOUT,
            transaction_date=when,
            due_date=when + timedelta(days=loan_period_days),
        )

    @classmethod
    def return_(cls, isbn: str, patron_id: str, when: datetime) -> "Transaction":
        """Create a return transaction."""
        return cls(
            isbn=isbn,
            patron_id=patron_id,
            type=TransactionType.RETURN,
            transaction_date=when,
        )

    @model_validator(mode="after")
    def validate_due_date(self) -> "Transaction":
        """Checkouts carry a due date after the event; returns carry none."""
        if self.type == TransactionType.CHECKOUT:
            if self.due_date is None:
                raise ValueError("Checkout transactions require a due date")
            if self.due_date <= self.transaction_date:
                raise ValueError("Due date must be after transaction date")
        elif self.due_date is not None:
            raise ValueError("Return transactions do not have a due date")

        if self.return_date and self.return_date < self.transaction_date:
            raise ValueError("Return date cannot be before transaction date")

        return self

    @property
    def is_open(self) -> bool:
        """Check if this is a checkout that has not been returned yet."""
        return self.type == TransactionType.CHECKOUT and self.return_date is None

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Check if the checkout is past due and still unreturned."""
        if self.due_date is None or self.return_date is not None:
            return False
        return (now or datetime.now()) > self.due_date

    def days_overdue(self, now: datetime | None = None) -> int:
        """Calculate number of whole days overdue."""
        now = now or datetime.now()
        if not self.is_overdue(now):
            return 0
        return (now - self.due_date).days

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "id": "txn_3f1c2b9a8e7d4c6b9a0f1e2d3c4b5a69",
                "isbn": "9780441172719",
                "patron_id": "P1",
                "type": "checkout",
                "transaction_date": "2024-03-01T10:30:00",
                "due_date": "2024-03-15T10:30:00",
                "return_date": None,
            }
        },
    )


class TransferRecord(BaseModel):
    """
    Journal entry for a cross-branch transfer.

    The state distinguishes a transfer that never started (no record), one
    that left the source but never reached the destination (``in_transit``)
    and one that finished (``completed``).
    """

    id: str = Field(
        default_factory=new_transfer_id,
        description="Unique identifier for the transfer",
        frozen=True,
    )

    isbn: str = Field(..., min_length=1, frozen=True)

    from_branch_id: str = Field(..., min_length=1, frozen=True)

    to_branch_id: str = Field(..., min_length=1, frozen=True)

    state: TransferState = Field(default=TransferState.STARTED)

    started_at: datetime = Field(default_factory=datetime.now, frozen=True)

    completed_at: datetime | None = None

    @property
    def is_anomalous(self) -> bool:
        """Check if the book left its source but never reached its destination."""
        return self.state == TransferState.IN_TRANSIT

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=True,
        populate_by_name=True,
        validate_default=True,
    )
